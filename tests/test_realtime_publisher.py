"""Tests for pushing notifications to websocket subscribers from worker threads."""

from __future__ import annotations

import time

import anyio
from anyio.from_thread import start_blocking_portal
from anyio.lowlevel import current_token

from mint_alerts.domain.entities import (
    Notification,
    NotificationChannel,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
)
from mint_alerts.infrastructure.notifications import (
    NotificationConnectionManager,
    NotificationPublisher,
)


class _RecordingWebSocket:
    def __init__(self, *, send_delay: float = 0.0) -> None:
        self.accepted = False
        self.sent: list[dict] = []
        self.send_delay = send_delay

    async def accept(self) -> None:
        self.accepted = True

    async def send_json(self, message: dict) -> None:
        if self.send_delay:
            await anyio.sleep(self.send_delay)
        self.sent.append(message)


def _notification(user_id: int = 7) -> Notification:
    return Notification(
        id=31,
        user_id=user_id,
        type=NotificationType.SECURITY_ALERT,
        priority=NotificationPriority.URGENT,
        title="New sign-in",
        message="A new device signed in to your account.",
        channels=(NotificationChannel.IN_APP,),
        status=NotificationStatus.SENT,
    )


def test_worker_thread_push_reaches_the_loop_behind_the_token() -> None:
    manager = NotificationConnectionManager()
    publisher = NotificationPublisher(manager)
    websocket = _RecordingWebSocket()

    with start_blocking_portal() as portal:
        manager.bind_token(portal.call(current_token))
        portal.call(manager.connect, 7, websocket)

        assert publisher.dispatch(_notification(), timeout=1.0) is True
        assert publisher.dispatch(_notification(user_id=8), timeout=1.0) is False

    assert websocket.accepted
    assert [message["type"] for message in websocket.sent] == ["notification"]
    assert websocket.sent[0]["data"]["id"] == 31
    assert websocket.sent[0]["data"]["status"] == "SENT"


def test_slow_subscriber_is_abandoned_after_the_timeout() -> None:
    manager = NotificationConnectionManager()
    publisher = NotificationPublisher(manager)
    websocket = _RecordingWebSocket(send_delay=5.0)

    with start_blocking_portal() as portal:
        portal.call(manager.connect, 7, websocket)

        started = time.monotonic()
        assert publisher.dispatch(_notification(), timeout=0.05) is True
        elapsed = time.monotonic() - started

    assert elapsed < 2.0
    assert websocket.sent == []


def test_push_without_a_running_loop_is_skipped() -> None:
    manager = NotificationConnectionManager()
    publisher = NotificationPublisher(manager)
    websocket = _RecordingWebSocket()

    with start_blocking_portal() as portal:
        portal.call(manager.connect, 7, websocket)
        manager.bind_token(None)
        assert publisher.dispatch(_notification(), timeout=1.0) is False

        manager.bind_token(portal.call(current_token))

    assert publisher.dispatch(_notification(), timeout=1.0) is False
    assert websocket.sent == []
