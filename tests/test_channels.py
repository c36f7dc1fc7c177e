"""Unit tests for the push, email and in-app channel adapters."""

from __future__ import annotations

import types

import httpx
import pytest

from mint_alerts.domain.entities import (
    DeliveryOutcome,
    Notification,
    NotificationChannel,
    NotificationPriority,
    NotificationType,
    RecipientProfile,
)
from mint_alerts.infrastructure.channels import EmailChannel, InAppChannel, PushChannel
from mint_alerts.infrastructure.channels import email as email_module
from mint_alerts.infrastructure.channels.push import build_fcm_message

FCM_ENDPOINT = "https://fcm.example.test/v1/projects/{project_id}/messages:send"


def _notification(**overrides) -> Notification:
    values = {
        "id": 11,
        "user_id": 5,
        "type": NotificationType.BUDGET_EXCEEDED,
        "priority": NotificationPriority.HIGH,
        "title": "Dining budget exceeded",
        "message": "You've spent 1050 of your 1000 Dining budget.",
        "data": {"budget_id": 3, "threshold": 100},
        "channels": (NotificationChannel.PUSH, NotificationChannel.EMAIL),
    }
    values.update(overrides)
    return Notification(**values)


RECIPIENT = RecipientProfile(
    user_id=5, email="ana@example.com", device_token="device-token", platform="ios"
)


def _push_channel(handler) -> PushChannel:
    return PushChannel(
        project_id="mint-lite",
        access_token="token-123",
        endpoint=FCM_ENDPOINT,
        client=httpx.Client(transport=httpx.MockTransport(handler)),
    )


def test_fcm_message_carries_string_data_and_platform_priority() -> None:
    message = build_fcm_message(_notification(), "device-token")["message"]

    assert message["token"] == "device-token"
    assert message["notification"]["title"] == "Dining budget exceeded"
    assert message["data"] == {
        "budget_id": "3",
        "threshold": "100",
        "notification_id": "11",
        "type": "BUDGET_EXCEEDED",
    }
    assert message["android"]["priority"] == "high"
    assert message["apns"]["headers"]["apns-priority"] == "10"


def test_push_delivery_returns_the_fcm_message_name() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        return httpx.Response(200, json={"name": "projects/mint-lite/messages/0:123"})

    result = _push_channel(handler).attempt_delivery(_notification(), RECIPIENT)

    assert result.is_delivered
    assert result.external_message_id == "projects/mint-lite/messages/0:123"
    assert seen["url"] == "https://fcm.example.test/v1/projects/mint-lite/messages:send"
    assert seen["auth"] == "Bearer token-123"


@pytest.mark.parametrize(
    ("status_code", "payload", "expected"),
    [
        (
            404,
            {"error": {"status": "NOT_FOUND", "message": "Requested entity was not found.",
                       "details": [{"errorCode": "UNREGISTERED"}]}},
            DeliveryOutcome.PERMANENT_FAILURE,
        ),
        (
            400,
            {"error": {"status": "INVALID_ARGUMENT", "message": "Invalid registration token"}},
            DeliveryOutcome.PERMANENT_FAILURE,
        ),
        (503, {"error": {"status": "UNAVAILABLE", "message": "Try later"}}, DeliveryOutcome.TRANSIENT_FAILURE),
        (429, {"error": {"status": "RESOURCE_EXHAUSTED", "message": "Quota"}}, DeliveryOutcome.TRANSIENT_FAILURE),
    ],
)
def test_push_errors_map_to_result_kinds(status_code, payload, expected) -> None:
    channel = _push_channel(lambda request: httpx.Response(status_code, json=payload))

    result = channel.attempt_delivery(_notification(), RECIPIENT)

    assert result.outcome is expected
    assert str(status_code) in result.reason


def test_push_network_timeout_is_transient() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("connect timed out", request=request)

    result = _push_channel(handler).attempt_delivery(_notification(), RECIPIENT)

    assert result.is_transient
    assert "timed out" in result.reason


def test_push_without_device_token_or_configuration_is_permanent() -> None:
    channel = _push_channel(lambda request: httpx.Response(200, json={}))
    no_token = RecipientProfile(user_id=5, email="ana@example.com")

    assert channel.attempt_delivery(_notification(), no_token).outcome is (
        DeliveryOutcome.PERMANENT_FAILURE
    )
    assert channel.attempt_delivery(_notification(), None).outcome is (
        DeliveryOutcome.PERMANENT_FAILURE
    )

    unconfigured = PushChannel(project_id=None, access_token=None, endpoint=FCM_ENDPOINT)
    result = unconfigured.attempt_delivery(_notification(), RECIPIENT)
    assert result.outcome is DeliveryOutcome.PERMANENT_FAILURE
    unconfigured.close()


class _RecordingClient:
    """Stand-in for ``SendGridAPIClient`` that records messages."""

    sent: list = []
    instances: list = []
    response = types.SimpleNamespace(status_code=202, body=b"", headers={"X-Message-Id": "sg-42"})
    error: Exception | None = None

    def __init__(self, api_key: str) -> None:
        self.api_key = api_key
        self.client = types.SimpleNamespace(timeout=None)
        self.instances.append(self)

    def send(self, message):
        if self.error is not None:
            raise self.error
        self.sent.append(message)
        return self.response


@pytest.fixture()
def sendgrid_client(monkeypatch: pytest.MonkeyPatch):
    client_cls = type("Client", (_RecordingClient,), {"sent": [], "instances": [], "error": None})
    monkeypatch.setattr(email_module, "SendGridAPIClient", client_cls)
    return client_cls


def test_email_delivery_returns_the_sendgrid_message_id(sendgrid_client) -> None:
    channel = EmailChannel(api_key="SG.key", sender="alerts@mint.test")

    result = channel.attempt_delivery(_notification(), RECIPIENT)

    assert result.is_delivered
    assert result.external_message_id == "sg-42"
    assert len(sendgrid_client.sent) == 1


def test_email_requests_carry_the_delivery_timeout(sendgrid_client) -> None:
    channel = EmailChannel(api_key="SG.key", sender="alerts@mint.test", timeout=4.5)

    channel.attempt_delivery(_notification(), RECIPIENT)

    assert [client.client.timeout for client in sendgrid_client.instances] == [4.5]


class _SendGridHTTPError(Exception):
    def __init__(self, status_code: int, body: bytes) -> None:
        super().__init__(f"HTTP Error {status_code}")
        self.status_code = status_code
        self.body = body


@pytest.mark.parametrize(
    ("status_code", "expected"),
    [
        (400, DeliveryOutcome.PERMANENT_FAILURE),
        (403, DeliveryOutcome.PERMANENT_FAILURE),
        (429, DeliveryOutcome.TRANSIENT_FAILURE),
        (502, DeliveryOutcome.TRANSIENT_FAILURE),
    ],
)
def test_email_http_errors_map_to_result_kinds(sendgrid_client, status_code, expected) -> None:
    sendgrid_client.error = _SendGridHTTPError(
        status_code, b'{"errors": [{"message": "The to email does not contain a valid address."}]}'
    )
    channel = EmailChannel(api_key="SG.key", sender="alerts@mint.test")

    result = channel.attempt_delivery(_notification(), RECIPIENT)

    assert result.outcome is expected
    assert "valid address" in result.reason


def test_email_connection_errors_are_transient(sendgrid_client) -> None:
    sendgrid_client.error = ConnectionError("connection reset")
    channel = EmailChannel(api_key="SG.key", sender="alerts@mint.test")

    assert channel.attempt_delivery(_notification(), RECIPIENT).is_transient


def test_email_needs_configuration_and_an_address(sendgrid_client) -> None:
    configured = EmailChannel(api_key="SG.key", sender="alerts@mint.test")
    unconfigured = EmailChannel(api_key=None, sender=None)
    no_email = RecipientProfile(user_id=5, device_token="device-token")

    assert configured.attempt_delivery(_notification(), no_email).outcome is (
        DeliveryOutcome.PERMANENT_FAILURE
    )
    assert unconfigured.attempt_delivery(_notification(), RECIPIENT).outcome is (
        DeliveryOutcome.PERMANENT_FAILURE
    )
    assert sendgrid_client.sent == []


def test_email_body_escapes_html() -> None:
    html = email_module.render_notification_html(
        _notification(title="<b>Alert</b>", message="Spent > limit")
    )

    assert "&lt;b&gt;Alert&lt;/b&gt;" in html
    assert "Spent &gt; limit" in html


class _Publisher:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.dispatched: list[Notification] = []

    def dispatch(self, notification, *, timeout=None):
        if self.error is not None:
            raise self.error
        self.dispatched.append(notification)
        return True


def test_in_app_delivery_publishes_a_sent_copy() -> None:
    publisher = _Publisher()

    result = InAppChannel(publisher).attempt_delivery(_notification(), None)

    assert result.is_delivered
    assert publisher.dispatched[0].status.value == "SENT"
    assert publisher.dispatched[0].sent_at is not None


def test_in_app_delivery_survives_realtime_errors() -> None:
    publisher = _Publisher(error=TimeoutError("loop busy"))

    result = InAppChannel(publisher).attempt_delivery(_notification(), None)

    assert result.is_delivered
