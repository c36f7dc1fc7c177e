"""SQLAlchemy model for persisted notifications and their queue state."""

from sqlalchemy import Column, DateTime, Index, Integer, JSON, String, Text

from mint_alerts.infrastructure.database import Base
from mint_alerts.utils import now_in_app_naive_datetime


class NotificationModel(Base):
    """Database representation for user notifications.

    The table doubles as the durable dispatch queue: ``status``,
    ``priority_rank``, ``scheduled_at`` and the claim columns drive selection.
    """

    __tablename__ = "notification"
    __table_args__ = (
        Index(
            "ix_notification_dispatch",
            "status",
            "priority_rank",
            "created_at",
        ),
        Index("ix_notification_user_created", "user_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    type = Column(String(40), nullable=False)
    priority = Column(String(10), nullable=False)
    priority_rank = Column(Integer, nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    data = Column(JSON, nullable=False, default=dict)
    channels = Column(JSON, nullable=False, default=list)
    delivered_channels = Column(JSON, nullable=False, default=list)
    status = Column(String(20), nullable=False, default="PENDING", index=True)
    retry_count = Column(Integer, nullable=False, default=0)
    failure_reason = Column(Text, nullable=True)
    scheduled_at = Column(DateTime(), nullable=True)
    sent_at = Column(DateTime(), nullable=True)
    read_at = Column(DateTime(), nullable=True)
    claimed_by = Column(String(255), nullable=True)
    claim_expires_at = Column(DateTime(), nullable=True)
    external_message_id = Column(String(255), nullable=True, index=True)
    dedup_key = Column(String(255), nullable=True, unique=True)
    created_at = Column(DateTime(), nullable=False, default=now_in_app_naive_datetime)
    updated_at = Column(
        DateTime(),
        nullable=False,
        default=now_in_app_naive_datetime,
        onupdate=now_in_app_naive_datetime,
    )


__all__ = ["NotificationModel"]
