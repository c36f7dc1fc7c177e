"""Repository implementations for infrastructure layer."""

from .budget_alert_state_repository import BudgetAlertStateRepository
from .budget_repository import BudgetRepository
from .notification_repository import NotificationRepository
from .recipient_repository import RecipientRepository

__all__ = [
    "BudgetAlertStateRepository",
    "BudgetRepository",
    "NotificationRepository",
    "RecipientRepository",
]
