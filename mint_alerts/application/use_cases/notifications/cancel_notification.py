"""Use case for withdrawing a notification before it is dispatched."""

import logging

from sqlalchemy.orm import Session

from mint_alerts.domain.entities import Notification
from mint_alerts.domain.errors import InvalidStateError, NotificationNotFoundError
from mint_alerts.infrastructure.repositories import NotificationRepository

logger = logging.getLogger(__name__)

DEFAULT_CANCEL_REASON = "Cancelled before dispatch"


def cancel_notification(
    session: Session,
    notification_id: int,
    *,
    user_id: int | None = None,
    reason: str | None = None,
) -> Notification:
    """Take a ``PENDING`` notification out of the queue as ``FAILED``.

    Raises :class:`InvalidStateError` once a worker has claimed the
    notification or it reached any later status.
    """

    repository = NotificationRepository(session)
    notification = repository.get(notification_id)
    if notification is None or (user_id is not None and notification.user_id != user_id):
        raise NotificationNotFoundError(f"Notification with id {notification_id} not found")

    if not repository.cancel(notification_id, reason=reason or DEFAULT_CANCEL_REASON):
        current = repository.get(notification_id) or notification
        raise InvalidStateError(
            f"Notification {notification_id} cannot be cancelled while {current.status.value}"
        )

    logger.info("Cancelled notification %s before dispatch", notification_id)
    return repository.get(notification_id)
