"""Validation helpers for notification use cases."""

from __future__ import annotations

from enum import Enum
from typing import Any, TypeVar

from mint_alerts.domain.entities import (
    Notification,
    NotificationChannel,
    NotificationDraft,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
)
from mint_alerts.domain.errors import ValidationError
from mint_alerts.utils import ensure_app_timezone

MAX_TITLE_LENGTH = 255

_EnumT = TypeVar("_EnumT", bound=Enum)


def _coerce_enum(enum_cls: type[_EnumT], value: Any, field_name: str) -> _EnumT:
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        try:
            return enum_cls(value.strip().upper())
        except ValueError:
            pass
    allowed = ", ".join(item.value for item in enum_cls)
    raise ValidationError(f"Invalid {field_name} '{value}'. Expected one of: {allowed}")


def _require_text(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"Notification {field_name} is required")
    return value.strip()


def build_notification_from_draft(draft: NotificationDraft) -> Notification:
    """Return a ``PENDING`` notification for ``draft`` or raise ``ValidationError``."""

    if draft.user_id is None or isinstance(draft.user_id, bool) or not isinstance(draft.user_id, int):
        raise ValidationError("Notification user_id is required")
    if draft.user_id <= 0:
        raise ValidationError("Notification user_id must be a positive integer")
    if draft.type is None:
        raise ValidationError("Notification type is required")

    notification_type = _coerce_enum(NotificationType, draft.type, "type")
    priority = _coerce_enum(NotificationPriority, draft.priority, "priority")
    title = _require_text(draft.title, "title")
    if len(title) > MAX_TITLE_LENGTH:
        raise ValidationError(f"Notification title must be at most {MAX_TITLE_LENGTH} characters")
    message = _require_text(draft.message, "message")

    if not draft.channels:
        raise ValidationError("At least one delivery channel is required")
    channels: list[NotificationChannel] = []
    for raw in draft.channels:
        channel = _coerce_enum(NotificationChannel, raw, "channel")
        if channel not in channels:
            channels.append(channel)

    if draft.data is not None and not isinstance(draft.data, dict):
        raise ValidationError("Notification data must be an object")

    return Notification(
        id=None,
        user_id=draft.user_id,
        type=notification_type,
        priority=priority,
        title=title,
        message=message,
        data=dict(draft.data or {}),
        channels=tuple(channels),
        status=NotificationStatus.PENDING,
        retry_count=0,
        scheduled_at=ensure_app_timezone(draft.scheduled_at),
        dedup_key=draft.dedup_key or None,
    )


__all__ = ["MAX_TITLE_LENGTH", "build_notification_from_draft"]
