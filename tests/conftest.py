"""Shared pytest fixtures for the device inventory API tests."""
import os
import sys
from datetime import timedelta

import pytest

# Add project root to path
_PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, _PROJECT_ROOT)

# Deterministic environment, set BEFORE any api module reads its config
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("WORKER_ENABLED", "false")
os.environ.setdefault("SEED_ADMIN", "false")

from api import create_app  # noqa: E402
from models import storage  # noqa: E402
from models.base_model import utcnow  # noqa: E402


class FakeClock:
    """Callable clock for SessionManager/NotificationService; naive UTC."""

    def __init__(self, now=None):
        self.now = now or utcnow()

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def app(tmp_path):
    app = create_app("testing", {"DATABASE_URL": f"sqlite:///{tmp_path / 'test.db'}"})
    yield app
    app.extensions["aggregate_worker"].stop(timeout=2)
    storage.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def services(app):
    """The app's service objects, keyed like app.extensions."""
    return app.extensions


@pytest.fixture
def clock():
    return FakeClock()


def register(client, username, password="secret123", role=None):
    body = {"username": username, "password": password}
    if role:
        body["role"] = role
    return client.post("/api/v1/auth/register", json=body)


def login(client, username, password="secret123"):
    return client.post("/api/v1/auth/login", json={"username": username, "password": password})


def auth_header(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_token(client):
    register(client, "alice")
    return login(client, "alice").get_json()["access_token"]


@pytest.fixture
def admin_token(client):
    register(client, "root", role="Admin")
    return login(client, "root").get_json()["access_token"]
