"""Utility helpers to push notifications to websocket subscribers."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import anyio
from anyio import from_thread

from mint_alerts.domain.entities import Notification

from .manager import NotificationConnectionManager, notification_manager

logger = logging.getLogger(__name__)


class NotificationPublisher:
    """Serialize notifications and schedule their delivery."""

    def __init__(self, manager: NotificationConnectionManager) -> None:
        self._manager = manager

    def dispatch(self, notification: Notification, *, timeout: float | None = None) -> bool:
        """Send ``notification`` to the user's open websockets.

        Callable from the event loop (the send is scheduled) or from any other
        thread (the send runs on the loop behind the manager's token and is
        awaited for at most ``timeout`` seconds). Returns ``False`` when nobody
        is listening.
        """

        if not self._manager.has_connections(notification.user_id):
            return False

        message = {"type": "notification", "data": serialize_notification(notification)}
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            token = self._manager.token
            if token is None:
                return False
            try:
                from_thread.run(
                    self._send, notification.user_id, message, timeout, token=token
                )
            except anyio.RunFinishedError:
                logger.debug("Event loop stopped; realtime push for %s dropped", notification.id)
                return False
        else:
            loop.create_task(
                self._manager.send_to_user(notification.user_id, message)
            )
        return True

    async def _send(self, user_id: int, message: dict[str, Any], timeout: float | None) -> None:
        with anyio.move_on_after(timeout) as scope:
            await self._manager.send_to_user(user_id, message)
        if scope.cancelled_caught:
            logger.warning("Realtime push to user %s timed out after %ss", user_id, timeout)


def serialize_notification(notification: Notification) -> dict[str, Any]:
    """Return the JSON representation used by websocket and REST clients."""

    return {
        "id": notification.id,
        "user_id": notification.user_id,
        "type": notification.type.value,
        "priority": notification.priority.value,
        "title": notification.title,
        "message": notification.message,
        "data": notification.data or {},
        "channels": [channel.value for channel in notification.channels],
        "status": notification.status.value,
        "retry_count": notification.retry_count,
        "failure_reason": notification.failure_reason,
        "scheduled_at": _iso_or_none(notification.scheduled_at),
        "sent_at": _iso_or_none(notification.sent_at),
        "read_at": _iso_or_none(notification.read_at),
        "created_at": _iso_or_none(notification.created_at),
        "updated_at": _iso_or_none(notification.updated_at),
    }


def _iso_or_none(value) -> str | None:
    return value.isoformat() if value else None


notification_publisher = NotificationPublisher(notification_manager)


__all__ = [
    "NotificationPublisher",
    "notification_publisher",
    "serialize_notification",
]
