"""
Metric endpoints:
- POST /metrics/calculate-average  queue a metric for background averaging (202)
- POST /metrics/samples            record a temperature sample (Admin)
- GET  /stats/requests             per-route request counts (Admin)
"""
from __future__ import annotations

from flask import Blueprint, request, jsonify, g, current_app

from models.device_stat import DeviceStat
from models.schemas.metric import ColumnRequestSchema, DeviceStatCreateSchema, DeviceStatOutSchema
from models.user import ROLE_ADMIN, ROLE_USER
from services.live import EVENT_ENTITY_CHANGED
from utils.decorators import roles_required

bp = Blueprint("metrics", __name__)

column_request_schema = ColumnRequestSchema()
device_stat_create_schema = DeviceStatCreateSchema()
device_stat_out_schema = DeviceStatOutSchema()


@bp.post("/metrics/calculate-average")
@roles_required([ROLE_ADMIN, ROLE_USER])
def calculate_average():
    """
    Queue a metric for background averaging. The result is pushed live.
    ---
    tags:
      - Metrics
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          properties:
            column_name: { type: string, example: temperature }
    responses:
      202:
        description: Accepted for processing
      400:
        description: Column name is required
    """
    payload = request.get_json(silent=True) or {}
    data = column_request_schema.load(payload)

    current_app.extensions["work_queue"].enqueue(data["column_name"])
    return jsonify({"message": f"{data['column_name']} queued for calculation"}), 202


@bp.post("/metrics/samples")
@roles_required([ROLE_ADMIN])
def create_sample():
    """
    Record a temperature sample
    ---
    tags:
      - Metrics
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          properties:
            device_name: { type: string }
            temperature: { type: number }
    responses:
      201:
        description: Created
      400:
        description: Validation error
    """
    payload = request.get_json(silent=True) or {}
    data = device_stat_create_schema.load(payload)

    storage = current_app.extensions["storage"]
    sample = DeviceStat(device_name=data.get("device_name"), temperature=data["temperature"])
    storage.new(sample)
    storage.save()

    current_app.extensions["notifications"].push_live(
        EVENT_ENTITY_CHANGED,
        {"entity": "DeviceStat", "id": sample.id, "action": "created", "by": g.current_user["username"]},
    )
    return jsonify({"data": device_stat_out_schema.dump(sample)}), 201


@bp.get("/stats/requests")
@roles_required([ROLE_ADMIN])
def request_stats():
    """
    Request counts per "METHOD /path"
    ---
    tags:
      - Metrics
    security:
      - Bearer: []
    responses:
      200: { description: OK }
    """
    return jsonify({"data": current_app.extensions["request_counter"].snapshot()}), 200
