"""Use case for retrieving a single notification."""

from sqlalchemy.orm import Session

from mint_alerts.domain.entities import Notification
from mint_alerts.domain.errors import NotificationNotFoundError
from mint_alerts.infrastructure.repositories import NotificationRepository


def get_notification(session: Session, notification_id: int) -> Notification:
    """Return the notification identified by ``notification_id`` or raise an error."""

    notification = NotificationRepository(session).get(notification_id)
    if notification is None:
        raise NotificationNotFoundError(f"Notification with id {notification_id} not found")
    return notification
