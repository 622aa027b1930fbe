import pytest
from fastapi.testclient import TestClient

from stocknotify.db.session import get_db
from stocknotify.main import app
from stocknotify.services.channels import MultiChannelSender, set_channel_sender
from stocknotify.services.channels.in_app_channel import InAppChannel


@pytest.fixture
def client(session_factory, sender):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def _setup(client, stock: int = 0) -> tuple[int, int]:
    user = client.post("/api/users", json={"name": "Ada", "email": "ada@example.com"}).json()
    product = client.post("/api/products", json={"name": "Linen shirt", "initial_stock": stock}).json()
    return user["id"], product["id"]


def test_health(client) -> None:
    assert client.get("/health").json() == {"status": "ok"}


def test_subscribe_restock_and_logs(client, sender) -> None:
    user_id, product_id = _setup(client)

    resp = client.post("/api/notifications/subscribe", json={"user_id": user_id, "product_id": product_id})
    assert resp.status_code == 200
    sub = resp.json()["subscription"]
    assert sub["is_sent"] is False

    out = client.put(f"/api/products/{product_id}/stock", json={"stock": 10}).json()
    assert out["restock_fired"] is True and out["sent"] == 1

    again = client.put(f"/api/products/{product_id}/stock", json={"stock": 12}).json()
    assert again["restock_fired"] is False and again["attempted"] == 0

    logs = client.get(f"/api/notifications/logs/user/{user_id}").json()["logs"]
    assert [l["status"] for l in logs] == ["sent"]
    subs = client.get(f"/api/notifications/product/{product_id}").json()["subscriptions"]
    assert subs[0]["is_sent"] is True
    assert client.get(f"/api/products/{product_id}").json()["stock"] == 12


def test_failed_delivery_listed_and_retried(client, sender) -> None:
    user_id, product_id = _setup(client)
    client.post("/api/notifications/subscribe", json={"user_id": user_id, "product_id": product_id})
    sender.fail = True
    client.put(f"/api/products/{product_id}/stock", json={"stock": 3})

    failed = client.get("/api/notifications/logs/status/failed").json()["logs"]
    assert len(failed) == 1 and failed[0]["retry_count"] == 0

    sender.fail = False
    resp = client.post(f"/api/notifications/logs/{failed[0]['id']}/retry").json()
    assert resp["ok"] is True
    assert resp["log"]["status"] == "retried"
    assert resp["log"]["retry_count"] == 1
    assert client.get("/api/notifications/logs/status/failed").json()["count"] == 0

    assert client.post("/api/notifications/logs/retry-all").json()["attempted"] == 0


def test_retry_non_positive_log_id_is_400(client) -> None:
    resp = client.post("/api/notifications/logs/0/retry")

    assert resp.status_code == 400
    assert "log_id" in resp.json()["detail"]


def test_subscribe_unknown_user_is_404(client) -> None:
    _, product_id = _setup(client)

    resp = client.post("/api/notifications/subscribe", json={"user_id": 999, "product_id": product_id})

    assert resp.status_code == 404
    assert "user 999" in resp.json()["detail"]


def test_negative_stock_is_400(client) -> None:
    _, product_id = _setup(client, stock=2)

    assert client.put(f"/api/products/{product_id}/stock", json={"stock": -1}).status_code == 400


def test_unsubscribe(client) -> None:
    user_id, product_id = _setup(client)
    sub = client.post("/api/notifications/subscribe", json={"user_id": user_id, "product_id": product_id}).json()
    sub_id = sub["subscription"]["id"]

    assert client.delete(f"/api/notifications/{sub_id}").json()["removed"] is True
    assert client.delete(f"/api/notifications/{sub_id}").json()["removed"] is False
    assert client.get(f"/api/notifications/user/{user_id}").json()["count"] == 0


def test_preferences_round_trip(client) -> None:
    user_id, _ = _setup(client)

    prefs = client.get(f"/api/notifications/preferences/{user_id}").json()
    assert (prefs["email_enabled"], prefs["push_enabled"], prefs["sms_enabled"], prefs["in_app_enabled"]) == (
        True, False, False, True,
    )

    body = {"email_enabled": False, "push_enabled": True, "sms_enabled": False, "in_app_enabled": True}
    updated = client.put(f"/api/notifications/preferences/{user_id}", json=body).json()
    assert updated["push_enabled"] is True and updated["email_enabled"] is False
    assert updated["id"] == prefs["id"]

    assert client.put("/api/notifications/preferences/999", json=body).status_code == 404


def test_in_app_inbox(client) -> None:
    set_channel_sender(MultiChannelSender([InAppChannel()]))
    user_id, product_id = _setup(client)
    body = {"email_enabled": False, "push_enabled": False, "sms_enabled": False, "in_app_enabled": True}
    client.put(f"/api/notifications/preferences/{user_id}", json=body)
    client.post("/api/notifications/subscribe", json={"user_id": user_id, "product_id": product_id})

    assert client.put(f"/api/products/{product_id}/stock", json={"stock": 1}).json()["sent"] == 1

    inbox = client.get(f"/api/inbox/{user_id}").json()
    assert inbox["unread_count"] == 1
    note_id = inbox["notifications"][0]["id"]
    assert client.patch(f"/api/inbox/{user_id}/{note_id}/read").json()["ok"] is True
    assert client.get(f"/api/inbox/{user_id}", params={"unread_only": True}).json()["notifications"] == []
    assert client.post(f"/api/inbox/{user_id}/mark-all-read").json()["marked_count"] == 0


def test_register_push_token_is_idempotent(client) -> None:
    user_id, _ = _setup(client)
    body = {"user_id": user_id, "device_token": "abc123", "platform": "ios"}

    assert client.post("/api/push/register", json=body).json()["message"] == "Token registered"
    assert client.post("/api/push/register", json=body).json()["message"] == "Token already registered"
