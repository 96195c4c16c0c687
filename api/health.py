from flask import Blueprint, current_app

bp = Blueprint("health", __name__)


@bp.get("/health")
def health():
    """
    Health check
    ---
    tags:
      - Health
    responses:
      200:
        description: API is up
        schema:
          type: object
          properties:
            status:
              type: string
              example: ok
            version:
              type: string
              example: 1.0.0
            worker:
              type: string
              example: running
            queued:
              type: integer
    """
    worker = current_app.extensions["aggregate_worker"]
    return {
        "status": "ok",
        "version": "1.0.0",
        "worker": "running" if worker.is_running else "stopped",
        "queued": len(current_app.extensions["work_queue"]),
    }, 200
