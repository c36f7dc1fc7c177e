"""SQLAlchemy model for per-user delivery addresses."""

from sqlalchemy import Column, DateTime, Integer, String

from mint_alerts.infrastructure.database import Base
from mint_alerts.utils import now_in_app_naive_datetime


class RecipientProfileModel(Base):
    """Email address and device token used to reach a user."""

    __tablename__ = "recipient_profile"

    user_id = Column(Integer, primary_key=True, autoincrement=False)
    email = Column(String(255), nullable=True)
    device_token = Column(String(512), nullable=True)
    platform = Column(String(20), nullable=True)
    updated_at = Column(
        DateTime(),
        nullable=False,
        default=now_in_app_naive_datetime,
        onupdate=now_in_app_naive_datetime,
    )


__all__ = ["RecipientProfileModel"]
