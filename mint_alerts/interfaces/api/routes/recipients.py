"""Endpoint maintaining the addresses used by delivery channels."""

from fastapi import APIRouter, Depends, Path
from sqlalchemy.orm import Session

from mint_alerts.application.use_cases.recipients import upsert_recipient as upsert_recipient_uc
from mint_alerts.infrastructure.database import get_db
from mint_alerts.interfaces.api.routes_helpers import DOMAIN_ERRORS, to_http_exception
from mint_alerts.interfaces.api.schemas import RecipientRead, RecipientUpsert

router = APIRouter(prefix="/recipients", tags=["recipients"])


@router.put("/{user_id}", response_model=RecipientRead)
def upsert_recipient(
    payload: RecipientUpsert,
    user_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
) -> RecipientRead:
    try:
        profile = upsert_recipient_uc(
            db,
            user_id=user_id,
            email=payload.email,
            device_token=payload.device_token,
            platform=payload.platform,
        )
    except DOMAIN_ERRORS as exc:
        raise to_http_exception(exc) from exc
    return RecipientRead.model_validate(profile)
