"""Schemas for provider delivery feedback webhooks."""

from pydantic import BaseModel, Field

from mint_alerts.domain.entities import FeedbackStatus


class DeliveryFeedbackRequest(BaseModel):
    notification_id: int | None = None
    external_message_id: str | None = Field(default=None, max_length=255)
    status: FeedbackStatus
    reason: str | None = None


__all__ = ["DeliveryFeedbackRequest"]
