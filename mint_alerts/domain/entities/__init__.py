"""Domain entities exposed by the application."""

from .budget import (
    DEFAULT_BANDS,
    Budget,
    BudgetAlertState,
    BudgetPeriod,
    BudgetStatus,
    BudgetTransaction,
    ThresholdBand,
)
from .delivery import (
    DeliveryFeedback,
    DeliveryOutcome,
    DeliveryResult,
    FeedbackStatus,
    RecipientProfile,
)
from .notification import (
    READABLE_STATUSES,
    SENT_STATUSES,
    TERMINAL_FAILURE_STATUSES,
    Notification,
    NotificationChannel,
    NotificationDraft,
    NotificationFilter,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
    QueueStatus,
)

__all__ = [
    "Budget",
    "BudgetAlertState",
    "BudgetPeriod",
    "BudgetStatus",
    "BudgetTransaction",
    "DEFAULT_BANDS",
    "DeliveryFeedback",
    "DeliveryOutcome",
    "DeliveryResult",
    "FeedbackStatus",
    "Notification",
    "NotificationChannel",
    "NotificationDraft",
    "NotificationFilter",
    "NotificationPriority",
    "NotificationStatus",
    "NotificationType",
    "QueueStatus",
    "READABLE_STATUSES",
    "RecipientProfile",
    "SENT_STATUSES",
    "TERMINAL_FAILURE_STATUSES",
    "ThresholdBand",
]
