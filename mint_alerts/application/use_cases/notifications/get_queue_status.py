"""Use case for reporting dispatch queue counters."""

from datetime import datetime

from sqlalchemy.orm import Session

from mint_alerts.domain.entities import QueueStatus
from mint_alerts.infrastructure.repositories import NotificationRepository
from mint_alerts.utils import now_in_app_timezone


def get_queue_status(session: Session, *, now: datetime | None = None) -> QueueStatus:
    return NotificationRepository(session).queue_status(now=now or now_in_app_timezone())
