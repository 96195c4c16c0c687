"""
Environment-aware configuration.
Every value can be overridden from the environment (or a .env file).
"""
import os
from dotenv import load_dotenv
from datetime import timedelta

load_dotenv()  # Read .env if present


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")  # Set a strong key in production
    DEBUG = False
    TESTING = False
    # CORS: in dev we usually allow '*', in prod supply a comma-separated list in env
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    APP_ENV = os.getenv("APP_ENV", "dev")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///device-inventory.db")

    # Access tokens (JWT) and refresh tokens (opaque, stored)
    JWT_SECRET = os.getenv("JWT_SECRET", "dev-secret-change-me")
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_ISSUER = os.getenv("JWT_ISSUER", "device-inventory-api")
    JWT_AUDIENCE = os.getenv("JWT_AUDIENCE", "device-inventory-clients")
    ACCESS_TOKEN_EXPIRES = timedelta(seconds=int(os.getenv("ACCESS_TOKEN_EXPIRES_SECONDS", "900")))
    REFRESH_TOKEN_EXPIRES = timedelta(seconds=int(os.getenv("REFRESH_TOKEN_EXPIRES_SECONDS", "604800")))
    AUTH_COOKIE_SECURE = _flag("AUTH_COOKIE_SECURE", "true")
    AUTH_COOKIE_SAMESITE = os.getenv("AUTH_COOKIE_SAMESITE", "None")

    # Background aggregation
    WORKER_ENABLED = _flag("WORKER_ENABLED", "true")
    WORKER_IDLE_INTERVAL = float(os.getenv("WORKER_IDLE_INTERVAL", "1.0"))
    WORKER_ERROR_BACKOFF = float(os.getenv("WORKER_ERROR_BACKOFF", "2.0"))
    NOTIFY_ON_AVERAGE = _flag("NOTIFY_ON_AVERAGE", "true")

    NOTIFICATIONS_LATEST_LIMIT = int(os.getenv("NOTIFICATIONS_LATEST_LIMIT", "10"))

    # First admin account, created at startup when no admin exists
    SEED_ADMIN = _flag("SEED_ADMIN", "true")
    ADMIN_USERNAME = os.getenv("ADMIN_USERNAME", "admin")
    ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "Admin@123")


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    # browsers only send SameSite=None cookies over https
    AUTH_COOKIE_SECURE = _flag("AUTH_COOKIE_SECURE", "false")
    AUTH_COOKIE_SAMESITE = os.getenv("AUTH_COOKIE_SAMESITE", "Lax")


class ProductionConfig(BaseConfig):
    DEBUG = False
    SEED_ADMIN = _flag("SEED_ADMIN", "false")


class TestingConfig(BaseConfig):
    TESTING = True
    DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite:///test-device-inventory.db")
    JWT_SECRET = "test-jwt-secret-for-pytest-32chars!"
    AUTH_COOKIE_SECURE = False
    AUTH_COOKIE_SAMESITE = "Lax"
    WORKER_ENABLED = False
    WORKER_IDLE_INTERVAL = 0.05
    WORKER_ERROR_BACKOFF = 0.05
    SEED_ADMIN = False
    LOG_LEVEL = "DEBUG"


def get_config(name: str | None):
    """
    Select config class.
    - If name is provided, choose by name.
    - Else choose based on APP_ENV (dev/prod/test).
    """
    if name:
        name = name.lower()
    env = (name or os.getenv("APP_ENV", "dev")).lower()
    if env in ["prod", "production"]:
        return ProductionConfig
    if env in ["test", "testing"]:
        return TestingConfig
    return DevelopmentConfig
