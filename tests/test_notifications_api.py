from tests.conftest import auth_header, login, register


def test_welcome_notification_on_register(client, user_token):
    resp = client.get("/api/v1/notifications", headers=auth_header(user_token))
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert len(data) == 1
    assert data[0]["message"] == "Welcome, alice!"
    assert data[0]["is_read"] is False

    resp = client.get("/api/v1/notifications/unread-count", headers=auth_header(user_token))
    assert resp.get_json() == {"count": 1}


def test_mark_read_and_read_all(client, app, user_token):
    headers = auth_header(user_token)
    notifications = app.extensions["notifications"]
    notifications.broadcast_to_all_users("maintenance tonight")

    rows = client.get("/api/v1/notifications", headers=headers).get_json()["data"]
    assert len(rows) == 2

    resp = client.put(f"/api/v1/notifications/{rows[0]['id']}/read", headers=headers)
    assert resp.status_code == 200
    assert client.get("/api/v1/notifications/unread-count", headers=headers).get_json()["count"] == 1

    resp = client.put("/api/v1/notifications/read-all", headers=headers)
    assert resp.get_json()["updated"] == 1
    resp = client.put("/api/v1/notifications/read-all", headers=headers)
    assert resp.get_json()["updated"] == 0
    assert client.get("/api/v1/notifications/unread-count", headers=headers).get_json()["count"] == 0


def test_mark_read_unknown_is_404(client, user_token):
    resp = client.put("/api/v1/notifications/nope/read", headers=auth_header(user_token))
    assert resp.status_code == 404


def test_cannot_mark_someone_elses_notification(client, user_token):
    register(client, "bob")
    bob_token = login(client, "bob").get_json()["access_token"]
    bob_row = client.get("/api/v1/notifications", headers=auth_header(bob_token)).get_json()["data"][0]

    resp = client.put(f"/api/v1/notifications/{bob_row['id']}/read", headers=auth_header(user_token))
    assert resp.status_code == 404


def test_paged_listing(client, app, user_token):
    headers = auth_header(user_token)
    for i in range(4):
        app.extensions["notifications"].broadcast_to_all_users(f"b{i}")

    resp = client.get("/api/v1/notifications/paged?page=2&page_size=2", headers=headers)
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["meta"] == {"page": 2, "page_size": 2, "total": 5}
    assert len(body["data"]) == 2

    resp = client.get("/api/v1/notifications/paged?page_size=500", headers=headers)
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "VALIDATION_ERROR"


def test_admin_sees_every_recipient_row(client, user_token, admin_token):
    resp = client.get("/api/v1/notifications/paged", headers=auth_header(admin_token))
    # one welcome row each for alice and root
    assert resp.get_json()["meta"]["total"] == 2


def test_requires_authentication(app):
    assert app.test_client().get("/api/v1/notifications").status_code == 401
