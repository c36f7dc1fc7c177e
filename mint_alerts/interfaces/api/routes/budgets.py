"""Endpoints for budgets and the transaction-write events that feed them."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from mint_alerts.application.use_cases.budgets import (
    bands_from_settings,
    create_budget as create_budget_uc,
    get_budget_status as get_budget_status_uc,
    record_transaction as record_transaction_uc,
)
from mint_alerts.config import get_settings
from mint_alerts.domain.entities import BudgetStatus
from mint_alerts.infrastructure.database import get_db
from mint_alerts.interfaces.api.routes_helpers import DOMAIN_ERRORS, to_http_exception
from mint_alerts.interfaces.api.schemas import (
    BudgetCreate,
    BudgetRead,
    BudgetStatusRead,
    NotificationRead,
    ThresholdBandRead,
    TransactionCreate,
    TransactionRead,
    TransactionRecorded,
)

router = APIRouter(tags=["budgets"])


def _status_to_schema(budget_status: BudgetStatus) -> BudgetStatusRead:
    band = budget_status.current_band
    return BudgetStatusRead(
        budget_id=budget_status.budget.id,
        category=budget_status.budget.category,
        period_start=budget_status.period_start,
        period_end=budget_status.period_end,
        allocated=budget_status.budget.amount,
        spent=budget_status.spent,
        remaining=budget_status.remaining,
        percent_used=budget_status.percent_used,
        current_band=ThresholdBandRead.model_validate(band) if band else None,
        last_notified_threshold=budget_status.last_notified_threshold,
    )


@router.post("/budgets", response_model=BudgetRead, status_code=status.HTTP_201_CREATED)
def create_budget(payload: BudgetCreate, db: Session = Depends(get_db)) -> BudgetRead:
    try:
        budget = create_budget_uc(
            db,
            user_id=payload.user_id,
            category=payload.category,
            amount=payload.amount,
            period=payload.period,
        )
    except DOMAIN_ERRORS as exc:
        raise to_http_exception(exc) from exc
    return BudgetRead.model_validate(budget)


@router.get("/budgets/{budget_id}/status", response_model=BudgetStatusRead)
def read_budget_status(budget_id: int, db: Session = Depends(get_db)) -> BudgetStatusRead:
    bands = bands_from_settings(get_settings())
    try:
        budget_status = get_budget_status_uc(db, budget_id, bands=bands)
    except DOMAIN_ERRORS as exc:
        raise to_http_exception(exc) from exc
    return _status_to_schema(budget_status)


@router.post(
    "/transactions",
    response_model=TransactionRecorded,
    status_code=status.HTTP_201_CREATED,
)
def record_transaction(
    payload: TransactionCreate, db: Session = Depends(get_db)
) -> TransactionRecorded:
    """Store a transaction write and evaluate its budget thresholds."""

    bands = bands_from_settings(get_settings())
    try:
        outcome = record_transaction_uc(
            db,
            budget_id=payload.budget_id,
            amount=payload.amount,
            category=payload.category,
            occurred_at=payload.occurred_at,
            description=payload.description,
            bands=bands,
        )
    except DOMAIN_ERRORS as exc:
        raise to_http_exception(exc) from exc
    return TransactionRecorded(
        transaction=TransactionRead.model_validate(outcome.transaction),
        notification=(
            NotificationRead.model_validate(outcome.notification)
            if outcome.notification
            else None
        ),
    )
