"""Use case for applying provider delivery webhooks to notifications."""

import logging

from sqlalchemy.orm import Session

from mint_alerts.domain.entities import (
    DeliveryFeedback,
    FeedbackStatus,
    Notification,
    NotificationStatus,
)
from mint_alerts.domain.errors import NotificationNotFoundError, ValidationError
from mint_alerts.infrastructure.repositories import NotificationRepository
from mint_alerts.utils import now_in_app_timezone

logger = logging.getLogger(__name__)

_IN_FLIGHT = frozenset(
    {NotificationStatus.PENDING, NotificationStatus.CLAIMED, NotificationStatus.SENT}
)
_NOT_BOUNCEABLE = frozenset({NotificationStatus.READ, NotificationStatus.BOUNCED})


def _resolve(repository: NotificationRepository, feedback: DeliveryFeedback) -> Notification:
    if feedback.notification_id is None and not feedback.external_message_id:
        raise ValidationError("Either notification_id or external_message_id is required")

    notification = None
    if feedback.notification_id is not None:
        notification = repository.get(feedback.notification_id)
    if notification is None and feedback.external_message_id:
        notification = repository.get_by_external_id(feedback.external_message_id)
    if notification is None:
        reference = feedback.notification_id or feedback.external_message_id
        raise NotificationNotFoundError(f"Notification {reference} not found")
    return notification


def record_delivery_feedback(session: Session, feedback: DeliveryFeedback) -> Notification:
    """Apply ``feedback`` and return the resulting notification.

    Feedback that does not apply to the current status (for example a late
    ``delivered`` for a read notification) leaves the record untouched.
    """

    repository = NotificationRepository(session)
    notification = _resolve(repository, feedback)
    status = notification.status
    changes: dict = {}

    if feedback.status is FeedbackStatus.DELIVERED and status in _IN_FLIGHT:
        changes = {
            "status": NotificationStatus.DELIVERED,
            "sent_at": notification.sent_at or now_in_app_timezone(),
        }
    elif feedback.status is FeedbackStatus.BOUNCED and status not in _NOT_BOUNCEABLE:
        changes = {
            "status": NotificationStatus.BOUNCED,
            "sent_at": None,
            "read_at": None,
            "failure_reason": feedback.reason or "Bounced by provider",
        }
    elif feedback.status is FeedbackStatus.FAILED and status in _IN_FLIGHT:
        changes = {
            "status": NotificationStatus.FAILED,
            "sent_at": None,
            "read_at": None,
            "failure_reason": feedback.reason or "Delivery failed at provider",
        }

    if not changes:
        logger.info(
            "Ignoring %s feedback for notification %s in status %s",
            feedback.status.value,
            notification.id,
            status.value,
        )
        return notification

    changes.update(claimed_by=None, claim_expires_at=None)
    updated = repository.update(notification.id, changes)
    logger.info(
        "Notification %s moved from %s to %s by provider feedback",
        notification.id,
        status.value,
        updated.status.value,
    )
    return updated
