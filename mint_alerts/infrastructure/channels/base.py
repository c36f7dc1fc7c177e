"""Uniform contract implemented by every delivery channel."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from mint_alerts.domain.entities import (
    DeliveryResult,
    Notification,
    NotificationChannel,
    RecipientProfile,
)
from mint_alerts.domain.errors import PermanentDeliveryError, TransientDeliveryError

logger = logging.getLogger(__name__)


class DeliveryChannelAdapter(ABC):
    """Send a notification through one channel and classify the outcome.

    Subclasses implement :meth:`send` and raise
    :class:`TransientDeliveryError` or :class:`PermanentDeliveryError` for
    failures; :meth:`attempt_delivery` maps them onto :class:`DeliveryResult`.
    """

    channel: NotificationChannel

    def attempt_delivery(
        self, notification: Notification, recipient: RecipientProfile | None
    ) -> DeliveryResult:
        try:
            external_message_id = self.send(notification, recipient)
        except TransientDeliveryError as exc:
            logger.warning(
                "Transient %s failure for notification %s: %s",
                self.channel.value,
                notification.id,
                exc.reason,
            )
            return DeliveryResult.transient(exc.reason)
        except PermanentDeliveryError as exc:
            logger.error(
                "Permanent %s failure for notification %s: %s",
                self.channel.value,
                notification.id,
                exc.reason,
            )
            return DeliveryResult.permanent(exc.reason, bounced=exc.bounced)
        return DeliveryResult.delivered(external_message_id)

    @abstractmethod
    def send(
        self, notification: Notification, recipient: RecipientProfile | None
    ) -> str | None:
        """Deliver ``notification`` and return the provider message id, if any."""


__all__ = ["DeliveryChannelAdapter"]
