"""Use case for enqueueing a notification on behalf of a triggering collaborator."""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from mint_alerts.domain.entities import Notification, NotificationDraft
from mint_alerts.infrastructure.repositories import NotificationRepository

from .validators import build_notification_from_draft

logger = logging.getLogger(__name__)


def create_notification(session: Session, draft: NotificationDraft) -> Notification:
    """Validate ``draft`` and persist it as a ``PENDING`` notification.

    A draft carrying a ``dedup_key`` that was already used returns the stored
    notification instead of enqueueing a second one, including when another
    writer inserts the same key between the lookup and the insert.
    """

    notification = build_notification_from_draft(draft)
    repository = NotificationRepository(session)

    if notification.dedup_key:
        existing = repository.get_by_dedup_key(notification.dedup_key)
        if existing is not None:
            logger.info(
                "Notification with dedup key %s already exists (id=%s)",
                notification.dedup_key,
                existing.id,
            )
            return existing

    try:
        created = repository.create(notification)
    except IntegrityError:
        session.rollback()
        if not notification.dedup_key:
            raise
        existing = repository.get_by_dedup_key(notification.dedup_key)
        if existing is None:
            raise
        logger.info(
            "Notification with dedup key %s was enqueued concurrently (id=%s)",
            notification.dedup_key,
            existing.id,
        )
        return existing

    logger.info(
        "Enqueued %s notification %s for user %s (priority=%s)",
        created.type.value,
        created.id,
        created.user_id,
        created.priority.value,
    )
    return created
