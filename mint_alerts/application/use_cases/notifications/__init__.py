"""Use cases for creating, reading and acknowledging notifications."""

from .cancel_notification import cancel_notification
from .create_notification import create_notification
from .get_notification import get_notification
from .get_queue_status import get_queue_status
from .list_notifications import list_notifications, list_unread_notifications
from .mark_notification_read import mark_notification_read, mark_notifications_read
from .record_delivery_feedback import record_delivery_feedback

__all__ = [
    "cancel_notification",
    "create_notification",
    "get_notification",
    "get_queue_status",
    "list_notifications",
    "list_unread_notifications",
    "mark_notification_read",
    "mark_notifications_read",
    "record_delivery_feedback",
]
