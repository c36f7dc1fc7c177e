"""Exceptions raised by the notification and budget-alert domain."""

from __future__ import annotations


class ValidationError(ValueError):
    """A notification or budget request is malformed and was rejected."""


class InvalidStateError(RuntimeError):
    """The requested transition is not allowed from the current status."""


class NotificationNotFoundError(LookupError):
    """No notification exists with the requested identifier."""


class BudgetNotFoundError(LookupError):
    """No budget exists with the requested identifier."""


class ClaimConflictError(RuntimeError):
    """Another worker owns the notification that was about to be processed."""


class DeliveryError(Exception):
    """Base class for errors raised by channel adapters."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class TransientDeliveryError(DeliveryError):
    """Retryable delivery problem such as a timeout or provider throttling."""


class PermanentDeliveryError(DeliveryError):
    """Non-retryable delivery problem such as an invalid recipient address."""

    def __init__(self, reason: str, *, bounced: bool = False) -> None:
        super().__init__(reason)
        self.bounced = bounced


class EvaluationError(RuntimeError):
    """The budget ratio could not be computed."""


__all__ = [
    "BudgetNotFoundError",
    "ClaimConflictError",
    "DeliveryError",
    "EvaluationError",
    "InvalidStateError",
    "NotificationNotFoundError",
    "PermanentDeliveryError",
    "TransientDeliveryError",
    "ValidationError",
]
