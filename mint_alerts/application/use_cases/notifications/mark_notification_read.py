"""Use cases for acknowledging notifications."""

from collections.abc import Iterable, Sequence

from sqlalchemy.orm import Session

from mint_alerts.domain.entities import (
    READABLE_STATUSES,
    Notification,
    NotificationStatus,
)
from mint_alerts.domain.errors import InvalidStateError, NotificationNotFoundError
from mint_alerts.infrastructure.repositories import NotificationRepository
from mint_alerts.utils import now_in_app_timezone


def _mark_read(repository: NotificationRepository, notification: Notification) -> Notification:
    if notification.status is NotificationStatus.READ:
        return notification
    if notification.status not in READABLE_STATUSES:
        raise InvalidStateError(
            f"Notification {notification.id} cannot be read while {notification.status.value}"
        )
    return repository.update(
        notification.id,
        {"status": NotificationStatus.READ, "read_at": now_in_app_timezone()},
    )


def mark_notification_read(
    session: Session, notification_id: int, *, user_id: int | None = None
) -> Notification:
    """Mark a sent notification as read.

    Reading an already read notification is a no-op. When ``user_id`` is given
    the notification must belong to that user.
    """

    repository = NotificationRepository(session)
    notification = repository.get(notification_id)
    if notification is None or (user_id is not None and notification.user_id != user_id):
        raise NotificationNotFoundError(f"Notification with id {notification_id} not found")
    return _mark_read(repository, notification)


def mark_notifications_read(
    session: Session, *, user_id: int, notification_ids: Iterable[int]
) -> Sequence[Notification]:
    """Mark every readable notification in ``notification_ids`` as read.

    Identifiers that are unknown, owned by another user or not yet sent are
    skipped; the returned list holds the notifications that are now read.
    """

    repository = NotificationRepository(session)
    updated: list[Notification] = []
    for notification_id in dict.fromkeys(notification_ids):
        notification = repository.get(notification_id)
        if notification is None or notification.user_id != user_id:
            continue
        try:
            updated.append(_mark_read(repository, notification))
        except InvalidStateError:
            continue
    return updated
