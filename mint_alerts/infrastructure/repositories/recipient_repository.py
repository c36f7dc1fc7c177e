"""Persistence helpers for recipient delivery addresses."""

from __future__ import annotations

from sqlalchemy.orm import Session

from mint_alerts.domain.entities import RecipientProfile
from mint_alerts.infrastructure.models import RecipientProfileModel
from mint_alerts.utils import ensure_app_timezone


class RecipientRepository:
    """Look up and register the addresses used by channel adapters."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, user_id: int) -> RecipientProfile | None:
        model = self.session.get(RecipientProfileModel, user_id)
        return self._to_entity(model) if model else None

    def upsert(self, profile: RecipientProfile) -> RecipientProfile:
        model = self.session.get(RecipientProfileModel, profile.user_id)
        if model is None:
            model = RecipientProfileModel(user_id=profile.user_id)
        model.email = profile.email
        model.device_token = profile.device_token
        model.platform = profile.platform
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    @staticmethod
    def _to_entity(model: RecipientProfileModel) -> RecipientProfile:
        return RecipientProfile(
            user_id=model.user_id,
            email=model.email,
            device_token=model.device_token,
            platform=model.platform,
            updated_at=ensure_app_timezone(model.updated_at),
        )


__all__ = ["RecipientRepository"]
