"""Use case for registering the addresses a user is reached at."""

from sqlalchemy.orm import Session

from mint_alerts.domain.entities import RecipientProfile
from mint_alerts.domain.errors import ValidationError
from mint_alerts.infrastructure.repositories import RecipientRepository


def upsert_recipient(
    session: Session,
    *,
    user_id: int,
    email: str | None = None,
    device_token: str | None = None,
    platform: str | None = None,
) -> RecipientProfile:
    """Create or replace the recipient profile for ``user_id``."""

    if email is not None and "@" not in email:
        raise ValidationError("Recipient email must be a valid email address")
    profile = RecipientProfile(
        user_id=user_id,
        email=email or None,
        device_token=device_token or None,
        platform=platform.lower() if platform else None,
    )
    return RecipientRepository(session).upsert(profile)
