from __future__ import annotations

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from main import create_app
from mint_alerts.domain.entities import NotificationChannel
from mint_alerts.infrastructure.channels import InAppChannel
from mint_alerts.infrastructure.queue import FixedWindowRateLimiter, NotificationDispatcher
from mint_alerts.infrastructure.repositories import NotificationRepository


@pytest.fixture()
def client():
    with TestClient(create_app()) as test_client:
        yield test_client


@pytest.fixture()
def dispatch_all(session_factory, fake_channel_cls):
    """Run one dispatch cycle with fake adapters for every channel."""

    def _dispatch():
        dispatcher = NotificationDispatcher(
            session_factory,
            {channel: fake_channel_cls(channel) for channel in NotificationChannel},
            rate_limiter=FixedWindowRateLimiter(1000, 5.0),
            worker_id="api-test",
        )
        return dispatcher.run_cycle()

    return _dispatch


def _create(client, **overrides):
    payload = {
        "user_id": 7,
        "type": "SECURITY_ALERT",
        "title": "New sign-in",
        "message": "A new device signed in to your account.",
        "priority": "URGENT",
        "channels": ["IN_APP"],
    }
    payload.update(overrides)
    return client.post("/notifications/", json=payload)


def test_create_notification_validates_and_enqueues(client) -> None:
    rejected = _create(client, type="BIRTHDAY")
    assert rejected.status_code == 400
    assert _create(client, channels=[]).status_code == 400

    response = _create(client, data={"device": "Pixel 8"})
    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "PENDING"
    assert body["retry_count"] == 0
    assert body["data"] == {"device": "Pixel 8"}

    fetched = client.get(f"/notifications/{body['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["title"] == "New sign-in"
    assert client.get("/notifications/9999").status_code == 404


def test_mark_read_only_after_dispatch(client, dispatch_all) -> None:
    notification_id = _create(client).json()["id"]

    conflict = client.post(f"/notifications/{notification_id}/read", params={"user_id": 7})
    assert conflict.status_code == 409

    reports = dispatch_all()
    assert [report.notification_id for report in reports] == [notification_id]

    sent = client.get(f"/notifications/{notification_id}").json()
    assert sent["status"] == "SENT"
    assert sent["sent_at"] is not None
    assert sent["delivered_channels"] == ["IN_APP"]

    wrong_user = client.post(f"/notifications/{notification_id}/read", params={"user_id": 8})
    assert wrong_user.status_code == 404

    read = client.post(f"/notifications/{notification_id}/read", params={"user_id": 7})
    assert read.status_code == 200
    assert read.json()["status"] == "READ"
    assert read.json()["read_at"] is not None


def test_cancelled_notification_is_never_dispatched(client, dispatch_all) -> None:
    cancelled_id = _create(client).json()["id"]
    kept_id = _create(client, priority="LOW").json()["id"]

    response = client.delete(f"/notifications/{cancelled_id}/queue", params={"user_id": 7})
    assert response.status_code == 200
    assert response.json()["status"] == "FAILED"
    assert response.json()["failure_reason"] == "Cancelled before dispatch"

    reports = dispatch_all()
    assert [report.notification_id for report in reports] == [kept_id]
    assert client.get(f"/notifications/{cancelled_id}").json()["status"] == "FAILED"

    already_sent = client.delete(f"/notifications/{kept_id}/queue")
    assert already_sent.status_code == 409
    assert client.delete(f"/notifications/{kept_id}/queue", params={"user_id": 8}).status_code == 404
    assert client.delete("/notifications/9999/queue").status_code == 404


def test_list_filters_and_unread(client, dispatch_all) -> None:
    first = _create(client, type="SECURITY_ALERT").json()["id"]
    second = _create(client, type="SYSTEM_UPDATE", priority="LOW").json()["id"]
    _create(client, user_id=8)
    dispatch_all()
    client.post("/notifications/read", json={"user_id": 7, "ids": [first, first]})

    everything = client.get("/notifications/", params={"user_id": 7})
    assert {item["id"] for item in everything.json()} == {first, second}

    security = client.get("/notifications/", params={"user_id": 7, "type": "security_alert"})
    assert [item["id"] for item in security.json()] == [first]

    read = client.get("/notifications/", params={"user_id": 7, "status": ["READ", "FAILED"]})
    assert [item["id"] for item in read.json()] == [first]

    unread = client.get("/notifications/unread", params={"user_id": 7})
    assert [item["id"] for item in unread.json()] == [second]

    assert client.get("/notifications/", params={"user_id": 7, "status": "LOST"}).status_code == 400
    assert client.get("/notifications/").status_code == 422


def test_queue_status_counts_each_stage(client, dispatch_all) -> None:
    _create(client)
    _create(client, scheduled_at="2099-01-01T00:00:00+00:00")
    _create(client, channels=["EMAIL"])

    before = client.get("/notifications/queue/status").json()
    assert before == {"waiting": 2, "delayed": 1, "active": 0, "completed": 0, "failed": 0}

    dispatch_all()

    after = client.get("/notifications/queue/status").json()
    assert after["waiting"] == 0
    assert after["delayed"] == 1
    assert after["completed"] == 2


def test_provider_bounce_webhook(client, session, dispatch_all) -> None:
    notification_id = _create(client, channels=["EMAIL"]).json()["id"]
    dispatch_all()
    NotificationRepository(session).update(notification_id, {"external_message_id": "sg-abc"})

    response = client.post(
        "/webhooks/delivery",
        json={"external_message_id": "sg-abc", "status": "bounced", "reason": "mailbox full"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "BOUNCED"
    assert body["sent_at"] is None
    assert body["failure_reason"] == "mailbox full"

    missing = client.post("/webhooks/delivery", json={"status": "delivered"})
    assert missing.status_code == 400


def test_recipient_upsert(client) -> None:
    response = client.put(
        "/recipients/7",
        json={"email": "ana@example.com", "device_token": "tok-1", "platform": "IOS"},
    )
    assert response.status_code == 200
    assert response.json()["platform"] == "ios"

    replaced = client.put("/recipients/7", json={"email": "ana@mint.test"})
    assert replaced.json()["email"] == "ana@mint.test"
    assert replaced.json()["device_token"] is None

    assert client.put("/recipients/7", json={"email": "not-an-email"}).status_code == 400


def test_transaction_write_raises_a_budget_warning(client) -> None:
    created = client.post(
        "/budgets", json={"user_id": 7, "category": "Groceries", "amount": "1000"}
    )
    assert created.status_code == 201
    budget_id = created.json()["id"]

    recorded = client.post(
        "/transactions",
        json={"budget_id": budget_id, "amount": "800", "date": "2024-03-10T12:00:00+00:00"},
    )
    assert recorded.status_code == 201
    body = recorded.json()
    assert Decimal(body["transaction"]["amount"]) == Decimal("800")
    assert body["notification"]["type"] == "BUDGET_WARNING"
    assert body["notification"]["user_id"] == 7

    again = client.post(
        "/transactions",
        json={"budget_id": budget_id, "amount": "10", "date": "2024-03-11T12:00:00+00:00"},
    )
    assert again.json()["notification"] is None

    missing = client.post("/transactions", json={"budget_id": 999, "amount": "5"})
    assert missing.status_code == 404
    assert client.post(
        "/budgets", json={"user_id": 7, "category": "Rent", "amount": "0"}
    ).status_code == 400


def test_budget_status_reports_last_notified_threshold(client) -> None:
    budget_id = client.post(
        "/budgets", json={"user_id": 7, "category": "Dining", "amount": "200"}
    ).json()["id"]
    client.post("/transactions", json={"budget_id": budget_id, "amount": "150"})

    response = client.get(f"/budgets/{budget_id}/status")

    assert response.status_code == 200
    body = response.json()
    assert Decimal(body["spent"]) == Decimal("150")
    assert Decimal(body["remaining"]) == Decimal("50")
    assert body["current_band"]["percent"] == 75
    assert body["last_notified_threshold"] == 75
    assert client.get("/budgets/999/status").status_code == 404


def test_websocket_ping_init_and_ack(client, dispatch_all) -> None:
    notification_id = _create(client).json()["id"]
    dispatch_all()

    with client.websocket_connect("/notifications/ws?user_id=7") as websocket:
        init = websocket.receive_json()
        assert init["type"] == "init"
        assert [item["id"] for item in init["data"]] == [notification_id]

        websocket.send_json({"type": "ping"})
        assert websocket.receive_json() == {"type": "pong"}

        websocket.send_json({"type": "ack", "ids": [notification_id, 12345]})
        assert websocket.receive_json() == {"type": "ack", "ids": [notification_id]}

    assert client.get(f"/notifications/{notification_id}").json()["status"] == "READ"


def test_websocket_receives_in_app_deliveries(client, make_notification) -> None:
    notification = make_notification(user_id=7)

    with client.websocket_connect("/notifications/ws?user_id=7") as websocket:
        websocket.send_json({"type": "ping"})
        assert websocket.receive_json() == {"type": "pong"}

        result = InAppChannel(realtime_timeout=5.0).attempt_delivery(notification, None)
        assert result.is_delivered

        pushed = websocket.receive_json()
        assert pushed["type"] == "notification"
        assert pushed["data"]["id"] == notification.id
        assert pushed["data"]["status"] == "SENT"


def test_websocket_rejects_missing_user(client) -> None:
    from starlette.websockets import WebSocketDisconnect

    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/notifications/ws") as websocket:
            websocket.receive_json()
