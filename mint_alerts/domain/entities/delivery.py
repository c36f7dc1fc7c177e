"""Value objects exchanged between the dispatcher and channel adapters."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class DeliveryOutcome(str, Enum):
    """The three kinds of result a channel adapter may report."""

    DELIVERED = "DELIVERED"
    TRANSIENT_FAILURE = "TRANSIENT_FAILURE"
    PERMANENT_FAILURE = "PERMANENT_FAILURE"


@dataclass(frozen=True)
class DeliveryResult:
    """Result of a single delivery attempt on one channel."""

    outcome: DeliveryOutcome
    reason: str | None = None
    bounced: bool = False
    external_message_id: str | None = None

    @classmethod
    def delivered(cls, external_message_id: str | None = None) -> "DeliveryResult":
        return cls(DeliveryOutcome.DELIVERED, external_message_id=external_message_id)

    @classmethod
    def transient(cls, reason: str) -> "DeliveryResult":
        return cls(DeliveryOutcome.TRANSIENT_FAILURE, reason=reason)

    @classmethod
    def permanent(cls, reason: str, *, bounced: bool = False) -> "DeliveryResult":
        return cls(DeliveryOutcome.PERMANENT_FAILURE, reason=reason, bounced=bounced)

    @property
    def is_delivered(self) -> bool:
        return self.outcome is DeliveryOutcome.DELIVERED

    @property
    def is_transient(self) -> bool:
        return self.outcome is DeliveryOutcome.TRANSIENT_FAILURE


@dataclass
class RecipientProfile:
    """Addresses used to reach a user on each channel."""

    user_id: int
    email: str | None = None
    device_token: str | None = None
    platform: str | None = None
    updated_at: datetime | None = None


class FeedbackStatus(str, Enum):
    """Statuses reported by provider delivery webhooks."""

    DELIVERED = "delivered"
    BOUNCED = "bounced"
    FAILED = "failed"


@dataclass
class DeliveryFeedback:
    """Out-of-band delivery report sent by a push or email provider."""

    status: FeedbackStatus
    notification_id: int | None = None
    external_message_id: str | None = None
    reason: str | None = None


__all__ = [
    "DeliveryFeedback",
    "DeliveryOutcome",
    "DeliveryResult",
    "FeedbackStatus",
    "RecipientProfile",
]
