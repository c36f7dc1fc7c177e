"""Use cases for listing a user's notifications."""

from collections.abc import Sequence

from sqlalchemy.orm import Session

from mint_alerts.domain.entities import Notification, NotificationFilter
from mint_alerts.domain.errors import ValidationError
from mint_alerts.infrastructure.repositories import NotificationRepository


def list_notifications(
    session: Session,
    *,
    user_id: int,
    criteria: NotificationFilter | None = None,
    skip: int = 0,
    limit: int | None = 50,
) -> Sequence[Notification]:
    """Return the user's notifications, newest first."""

    if criteria and criteria.created_from and criteria.created_to:
        if criteria.created_from > criteria.created_to:
            raise ValidationError("created_from must not be later than created_to")
    return NotificationRepository(session).list_for_user(
        user_id, criteria=criteria, skip=skip, limit=limit
    )


def list_unread_notifications(
    session: Session, *, user_id: int, limit: int | None = 50
) -> Sequence[Notification]:
    """Return sent notifications the user has not acknowledged yet."""

    return NotificationRepository(session).list_unread_for_user(user_id, limit=limit)
