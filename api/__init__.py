import atexit
import logging

from flask import Flask, request
from flasgger import Swagger
from flask_cors import CORS
from flask_socketio import SocketIO

from .config import get_config
from .errors import register_error_handlers
from models import storage  # DBStorage singleton (scoped_session)
from services.aggregate_worker import AggregateWorker
from services.credentials import CredentialStore
from services.live import LivePublisher
from services.notifications import NotificationService
from services.request_counter import RequestCounter
from services.sessions import SessionManager
from services.work_queue import WorkQueue

logger = logging.getLogger(__name__)

# Minimal Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0",
    "info": {
        "title": "Device Inventory API",
        "version": "1.0.0",
        "description": "Sessions, live notifications and background metric aggregation for the device inventory.",
    },
    "basePath": "/",  # blueprints are mounted under /api/v1
    "schemes": ["http"],
    "securityDefinitions": {
        "Bearer": {
            "type": "apiKey",
            "name": "Authorization",
            "in": "header",
            "description": "Enter the token with the `Bearer ` prefix, e.g. \"Bearer abcde12345\"."
        }
    }
}

SWAGGER_CONFIG = {
    "headers": [],
    "specs": [
        {
            "endpoint": "apispec_1",
            "route": "/swagger.json",
            "rule_filter": lambda rule: True,   # include all endpoints
            "model_filter": lambda tag: True,   # include all models
        }
    ],
    "static_url_path": "/flasgger_static",
    "swagger_ui": True,
    "specs_route": "/apidocs/",
}


def _init_services(app: Flask, socketio: SocketIO) -> None:
    """Build the services once per app and expose them via app.extensions."""
    cfg = app.config
    credentials = CredentialStore(storage)
    sessions = SessionManager(
        storage,
        credentials,
        secret=cfg["JWT_SECRET"],
        algorithm=cfg["JWT_ALGORITHM"],
        issuer=cfg["JWT_ISSUER"],
        audience=cfg["JWT_AUDIENCE"],
        access_expires=cfg["ACCESS_TOKEN_EXPIRES"],
        refresh_expires=cfg["REFRESH_TOKEN_EXPIRES"],
    )
    notifications = NotificationService(storage, LivePublisher(socketio))
    work_queue = WorkQueue()
    worker = AggregateWorker(
        work_queue,
        notifications,
        storage,
        idle_interval=cfg["WORKER_IDLE_INTERVAL"],
        error_backoff=cfg["WORKER_ERROR_BACKOFF"],
        notify=cfg["NOTIFY_ON_AVERAGE"],
    )

    app.extensions.update(
        {
            "storage": storage,
            "credentials": credentials,
            "session_manager": sessions,
            "notifications": notifications,
            "work_queue": work_queue,
            "aggregate_worker": worker,
            "request_counter": RequestCounter(),
        }
    )


def create_app(config_name: str | None = None, test_config: dict | None = None) -> Flask:
    """
    Application factory: creates and configures the Flask app.
    `test_config` overrides individual settings (tests point DATABASE_URL at a
    temporary file). The SocketIO server is at app.extensions["socketio"].
    """
    app = Flask(__name__)

    # Load configuration (reads .env via get_config)
    app.config.from_object(get_config(config_name))
    if test_config:
        app.config.update(test_config)

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    storage.reload(app.config["DATABASE_URL"])

    # Cross-Origin Resource Sharing: enable for dev, configurable for prod
    CORS(app, resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", "*")}}, supports_credentials=True)

    # Swagger UI and JSON
    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    # Live channel; init_app registers itself as app.extensions["socketio"]
    socketio = SocketIO(app, async_mode="threading", cors_allowed_origins=app.config.get("CORS_ORIGINS", "*"))

    # Register global error handlers that return the uniform error envelope
    register_error_handlers(app)

    _init_services(app, socketio)

    from .live import register_live_handlers
    register_live_handlers(socketio, app.extensions["session_manager"])

    from .health import bp as health_bp
    from .auth import bp as auth_bp
    from .notifications import bp as notifications_bp
    from .metrics import bp as metrics_bp

    app.register_blueprint(health_bp, url_prefix="/api/v1")
    app.register_blueprint(auth_bp, url_prefix="/api/v1/auth")
    app.register_blueprint(notifications_bp, url_prefix="/api/v1/notifications")
    app.register_blueprint(metrics_bp, url_prefix="/api/v1")

    @app.before_request
    def count_request():
        key = f"{request.method} {request.path.lower()}"
        hits = app.extensions["request_counter"].increment(key)
        logger.debug("%s has been called %d times.", key, hits)

    # Ensure the DB session is removed at the end of each request/app context
    @app.teardown_appcontext
    def remove_session(exception=None):
        # This calls scoped_session.remove(), preventing connection leaks
        storage.close()

    if app.config["SEED_ADMIN"]:
        app.extensions["credentials"].seed_admin(app.config["ADMIN_USERNAME"], app.config["ADMIN_PASSWORD"])
        storage.close()

    if app.config["WORKER_ENABLED"]:
        worker = app.extensions["aggregate_worker"]
        worker.start()
        atexit.register(worker.stop, 5)

    @app.route("/")
    def root():
        return {
            "message": "Welcome to Device Inventory API",
            "docs": "/apidocs/",
            "health": "/api/v1/health",
        }, 200

    return app
