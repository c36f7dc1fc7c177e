from .budget import (
    BudgetCreate,
    BudgetRead,
    BudgetStatusRead,
    ThresholdBandRead,
    TransactionCreate,
    TransactionRead,
    TransactionRecorded,
)
from .notification import (
    NotificationCreate,
    NotificationMarkReadRequest,
    NotificationRead,
    QueueStatusRead,
)
from .recipient import RecipientRead, RecipientUpsert
from .webhook import DeliveryFeedbackRequest

__all__ = [
    "BudgetCreate",
    "BudgetRead",
    "BudgetStatusRead",
    "DeliveryFeedbackRequest",
    "NotificationCreate",
    "NotificationMarkReadRequest",
    "NotificationRead",
    "QueueStatusRead",
    "RecipientRead",
    "RecipientUpsert",
    "ThresholdBandRead",
    "TransactionCreate",
    "TransactionRead",
    "TransactionRecorded",
]
