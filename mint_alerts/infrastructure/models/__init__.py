"""ORM models used by the application infrastructure."""

from .budget import BudgetAlertStateModel, BudgetModel, BudgetTransactionModel
from .notification import NotificationModel
from .recipient import RecipientProfileModel

__all__ = [
    "BudgetAlertStateModel",
    "BudgetModel",
    "BudgetTransactionModel",
    "NotificationModel",
    "RecipientProfileModel",
]
