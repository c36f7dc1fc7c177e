"""Endpoint receiving delivery feedback from push and email providers."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from mint_alerts.application.use_cases.notifications import (
    record_delivery_feedback as record_delivery_feedback_uc,
)
from mint_alerts.domain.entities import DeliveryFeedback
from mint_alerts.infrastructure.database import get_db
from mint_alerts.interfaces.api.routes_helpers import DOMAIN_ERRORS, to_http_exception
from mint_alerts.interfaces.api.schemas import DeliveryFeedbackRequest, NotificationRead

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post("/delivery", response_model=NotificationRead)
def receive_delivery_feedback(
    payload: DeliveryFeedbackRequest, db: Session = Depends(get_db)
) -> NotificationRead:
    """Apply a provider's delivered/bounced/failed report to a notification."""

    feedback = DeliveryFeedback(
        status=payload.status,
        notification_id=payload.notification_id,
        external_message_id=payload.external_message_id,
        reason=payload.reason,
    )
    try:
        notification = record_delivery_feedback_uc(db, feedback)
    except DOMAIN_ERRORS as exc:
        raise to_http_exception(exc) from exc
    return NotificationRead.model_validate(notification)
