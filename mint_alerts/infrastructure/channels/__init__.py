"""Delivery channel adapters and the registry used by the dispatcher."""

from __future__ import annotations

from mint_alerts.config import Settings
from mint_alerts.domain.entities import NotificationChannel

from .base import DeliveryChannelAdapter
from .email import EmailChannel
from .in_app import InAppChannel
from .push import PushChannel


def build_channels(settings: Settings) -> dict[NotificationChannel, DeliveryChannelAdapter]:
    """Return one adapter per channel configured from ``settings``."""

    return {
        NotificationChannel.PUSH: PushChannel(
            project_id=settings.fcm_project_id,
            access_token=settings.fcm_access_token,
            endpoint=settings.fcm_endpoint,
            timeout=settings.delivery_timeout_seconds,
        ),
        NotificationChannel.EMAIL: EmailChannel(
            api_key=settings.sendgrid_api_key,
            sender=settings.sendgrid_sender,
            timeout=settings.delivery_timeout_seconds,
        ),
        NotificationChannel.IN_APP: InAppChannel(),
    }


__all__ = [
    "DeliveryChannelAdapter",
    "EmailChannel",
    "InAppChannel",
    "PushChannel",
    "build_channels",
]
