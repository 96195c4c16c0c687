import threading
from datetime import timedelta

import pytest

from models import storage
from models.refresh_token import RefreshToken
from services.errors import InvalidSession, NotFound, Unauthorized
from services.sessions import SessionManager


@pytest.fixture
def manager(app, clock):
    return SessionManager(
        storage,
        app.extensions["credentials"],
        secret="session-test-secret-with-32-bytes!",
        issuer="device-inventory-api",
        audience="device-inventory-clients",
        clock=clock,
    )


@pytest.fixture
def alice(app):
    return app.extensions["credentials"].create_user("alice", "secret123")


def _row(value, fresh=True):
    if fresh:
        storage.close()
    return storage.get_session().query(RefreshToken).filter(RefreshToken.token == value).one()


def test_issue_then_validate(manager, alice):
    tokens = manager.issue_session(alice, "10.0.0.1")
    claims = manager.validate_access_token(tokens.access_token)
    assert claims["user_id"] == alice.id
    assert claims["username"] == "alice"
    assert claims["role"] == "User"
    assert tokens.refresh_expires_at - tokens.access_expires_at == timedelta(days=7) - timedelta(minutes=15)

    row = _row(tokens.refresh_token)
    assert row.created_by_ip == "10.0.0.1"
    assert row.is_active(manager.clock())


def test_validate_rejects_garbage(manager):
    with pytest.raises(Unauthorized):
        manager.validate_access_token("not.a.jwt")
    with pytest.raises(Unauthorized):
        manager.validate_access_token("")


def test_login_errors(manager, alice):
    with pytest.raises(NotFound):
        manager.login("nobody", "secret123")
    with pytest.raises(Unauthorized):
        manager.login("alice", "wrong-pass")


def test_rotate_links_parent_to_child(manager, alice):
    first = manager.issue_session(alice)
    second = manager.rotate(first.refresh_token, "10.0.0.2")
    assert second.refresh_token != first.refresh_token

    parent = _row(first.refresh_token)
    child = _row(second.refresh_token, fresh=False)
    assert parent.revoked_at is not None
    assert parent.revoked_by_ip == "10.0.0.2"
    assert parent.replaced_by_id == child.id
    assert parent.replaced_by.token == second.refresh_token
    assert child.is_active(manager.clock())


def test_rotated_token_cannot_be_replayed(manager, alice, caplog):
    first = manager.issue_session(alice)
    second = manager.rotate(first.refresh_token)

    with pytest.raises(InvalidSession):
        manager.rotate(first.refresh_token)
    assert "Revoked refresh token presented again" in caplog.text

    # the legitimate child is unaffected by the replay
    third = manager.rotate(second.refresh_token)
    assert third.refresh_token


def test_rotate_unknown_token(manager):
    with pytest.raises(InvalidSession):
        manager.rotate("does-not-exist")


def test_rotate_expired_token(manager, alice, clock):
    tokens = manager.issue_session(alice)
    clock.advance(days=7, seconds=1)
    with pytest.raises(InvalidSession, match="expired"):
        manager.rotate(tokens.refresh_token)


def test_concurrent_rotation_has_single_winner(manager, alice):
    tokens = manager.issue_session(alice)
    storage.close()

    barrier = threading.Barrier(2)
    results, errors = [], []

    def attempt():
        barrier.wait()
        try:
            results.append(manager.rotate(tokens.refresh_token))
        except InvalidSession as e:
            errors.append(e)
        finally:
            storage.close()

    threads = [threading.Thread(target=attempt) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert len(results) == 1
    assert len(errors) == 1

    parent = _row(tokens.refresh_token)
    child = _row(results[0].refresh_token)
    assert parent.replaced_by_id == child.id
    assert child.revoked_at is None


def test_revoke_is_idempotent(manager, alice):
    tokens = manager.issue_session(alice)
    assert manager.revoke_by_value(tokens.refresh_token, "10.0.0.3") is True
    first_revoked_at = _row(tokens.refresh_token).revoked_at

    assert manager.revoke_by_value(tokens.refresh_token) is False
    assert _row(tokens.refresh_token).revoked_at == first_revoked_at
    assert manager.revoke_by_value("unknown") is False

    with pytest.raises(InvalidSession):
        manager.rotate(tokens.refresh_token)


def test_access_expiry_follows_injected_clock(manager, alice, clock):
    clock.advance(days=30)
    tokens = manager.issue_session(alice)
    assert manager.validate_access_token(tokens.access_token)["user_id"] == alice.id

    clock.advance(minutes=14)
    manager.validate_access_token(tokens.access_token)

    clock.advance(minutes=1)
    with pytest.raises(Unauthorized, match="expired"):
        manager.validate_access_token(tokens.access_token)
