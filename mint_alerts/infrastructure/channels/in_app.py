"""In-app delivery channel: the stored record is the user's inbox."""

from __future__ import annotations

import logging
from dataclasses import replace

from mint_alerts.domain.entities import (
    Notification,
    NotificationChannel,
    NotificationStatus,
    RecipientProfile,
)
from mint_alerts.infrastructure.notifications import (
    NotificationPublisher,
    notification_publisher,
)
from mint_alerts.utils import now_in_app_timezone

from .base import DeliveryChannelAdapter

logger = logging.getLogger(__name__)


class InAppChannel(DeliveryChannelAdapter):
    """Mark the notification visible in-app and push it to open websockets."""

    channel = NotificationChannel.IN_APP

    def __init__(
        self,
        publisher: NotificationPublisher | None = None,
        *,
        realtime_timeout: float = 5.0,
    ) -> None:
        self._publisher = publisher or notification_publisher
        self._realtime_timeout = realtime_timeout

    def send(
        self, notification: Notification, recipient: RecipientProfile | None
    ) -> str | None:
        visible = replace(
            notification,
            status=NotificationStatus.SENT,
            sent_at=notification.sent_at or now_in_app_timezone(),
        )
        try:
            self._publisher.dispatch(visible, timeout=self._realtime_timeout)
        except Exception:
            # Clients that miss the realtime push still see the record when polling.
            logger.warning(
                "Realtime push for notification %s failed", notification.id, exc_info=True
            )
        return None


__all__ = ["InAppChannel"]
