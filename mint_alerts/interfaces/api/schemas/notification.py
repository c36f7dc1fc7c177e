"""Pydantic models describing notification payloads."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from mint_alerts.domain.entities import (
    NotificationChannel,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
)


class NotificationCreate(BaseModel):
    """Payload used by triggering collaborators to enqueue a notification.

    Enumerated fields are plain strings here; they are validated by the
    use case so that malformed requests are rejected with a 400.
    """

    user_id: int | None = None
    type: str | None = None
    title: str | None = None
    message: str | None = None
    priority: str = NotificationPriority.MEDIUM.value
    data: dict[str, Any] = Field(default_factory=dict)
    channels: list[str] = Field(default_factory=lambda: [NotificationChannel.IN_APP.value])
    scheduled_at: datetime | None = None
    dedup_key: str | None = Field(default=None, max_length=255)


class NotificationMarkReadRequest(BaseModel):
    """Payload used to mark a batch of notifications as read."""

    user_id: int
    ids: list[int] = Field(..., min_length=1, description="Notification identifiers")

    def unique_ids(self) -> list[int]:
        """Return the list of identifiers without duplicates preserving order."""

        return list(dict.fromkeys(self.ids))


class NotificationRead(BaseModel):
    """Representation of a notification delivered to the client."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    type: NotificationType
    priority: NotificationPriority
    title: str
    message: str
    data: dict[str, Any] = Field(default_factory=dict)
    channels: list[NotificationChannel]
    status: NotificationStatus
    retry_count: int
    scheduled_at: datetime | None = None
    sent_at: datetime | None = None
    read_at: datetime | None = None
    failure_reason: str | None = None
    delivered_channels: list[NotificationChannel] = Field(default_factory=list)
    external_message_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class QueueStatusRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    waiting: int
    delayed: int
    active: int
    completed: int
    failed: int


__all__ = [
    "NotificationCreate",
    "NotificationMarkReadRequest",
    "NotificationRead",
    "QueueStatusRead",
]
