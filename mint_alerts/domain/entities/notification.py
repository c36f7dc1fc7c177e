"""Domain entity representing a user notification and its delivery state."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class NotificationType(str, Enum):
    """Closed set of notification kinds understood by the clients."""

    ACCOUNT_SYNC = "ACCOUNT_SYNC"
    BUDGET_WARNING = "BUDGET_WARNING"
    BUDGET_EXCEEDED = "BUDGET_EXCEEDED"
    GOAL_MILESTONE = "GOAL_MILESTONE"
    TRANSACTION_ALERT = "TRANSACTION_ALERT"
    SECURITY_ALERT = "SECURITY_ALERT"
    SYSTEM_UPDATE = "SYSTEM_UPDATE"


class NotificationPriority(str, Enum):
    """Dispatch priority, ``URGENT`` being the highest."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANKS[self]


_PRIORITY_RANKS = {
    NotificationPriority.LOW: 1,
    NotificationPriority.MEDIUM: 2,
    NotificationPriority.HIGH: 3,
    NotificationPriority.URGENT: 4,
}


class NotificationChannel(str, Enum):
    """Delivery channels a notification can be routed through."""

    PUSH = "PUSH"
    EMAIL = "EMAIL"
    IN_APP = "IN_APP"


class NotificationStatus(str, Enum):
    """Lifecycle states of a notification."""

    PENDING = "PENDING"
    CLAIMED = "CLAIMED"
    SENT = "SENT"
    DELIVERED = "DELIVERED"
    READ = "READ"
    FAILED = "FAILED"
    BOUNCED = "BOUNCED"


SENT_STATUSES = frozenset(
    {NotificationStatus.SENT, NotificationStatus.DELIVERED, NotificationStatus.READ}
)
TERMINAL_FAILURE_STATUSES = frozenset(
    {NotificationStatus.FAILED, NotificationStatus.BOUNCED}
)
READABLE_STATUSES = frozenset({NotificationStatus.SENT, NotificationStatus.DELIVERED})


@dataclass
class NotificationDraft:
    """Caller-supplied description of a notification to create."""

    user_id: int | None
    type: NotificationType | str | None
    title: str | None
    message: str | None
    priority: NotificationPriority | str = NotificationPriority.MEDIUM
    data: dict[str, Any] = field(default_factory=dict)
    channels: tuple[NotificationChannel | str, ...] = (NotificationChannel.IN_APP,)
    scheduled_at: datetime | None = None
    dedup_key: str | None = None


@dataclass
class Notification:
    """Message addressed to a user together with its delivery bookkeeping."""

    id: int | None
    user_id: int
    type: NotificationType
    priority: NotificationPriority
    title: str
    message: str
    data: dict[str, Any] = field(default_factory=dict)
    channels: tuple[NotificationChannel, ...] = (NotificationChannel.IN_APP,)
    status: NotificationStatus = NotificationStatus.PENDING
    retry_count: int = 0
    scheduled_at: datetime | None = None
    sent_at: datetime | None = None
    read_at: datetime | None = None
    failure_reason: str | None = None
    claimed_by: str | None = None
    claim_expires_at: datetime | None = None
    delivered_channels: tuple[NotificationChannel, ...] = ()
    external_message_id: str | None = None
    dedup_key: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def pending_channels(self) -> tuple[NotificationChannel, ...]:
        """Channels that have not accepted the message yet."""

        delivered = set(self.delivered_channels)
        return tuple(channel for channel in self.channels if channel not in delivered)

    @property
    def is_sent(self) -> bool:
        return self.status in SENT_STATUSES


@dataclass
class NotificationFilter:
    """Optional criteria used when listing a user's notifications."""

    types: tuple[NotificationType, ...] = ()
    statuses: tuple[NotificationStatus, ...] = ()
    created_from: datetime | None = None
    created_to: datetime | None = None


@dataclass
class QueueStatus:
    """Snapshot of the dispatch queue grouped by processing stage."""

    waiting: int = 0
    delayed: int = 0
    active: int = 0
    completed: int = 0
    failed: int = 0


__all__ = [
    "Notification",
    "NotificationChannel",
    "NotificationDraft",
    "NotificationFilter",
    "NotificationPriority",
    "NotificationStatus",
    "NotificationType",
    "QueueStatus",
    "READABLE_STATUSES",
    "SENT_STATUSES",
    "TERMINAL_FAILURE_STATUSES",
]
