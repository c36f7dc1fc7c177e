"""Use case for ingesting a transaction write and evaluating its budget."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mint_alerts.domain.entities import (
    DEFAULT_BANDS,
    BudgetTransaction,
    Notification,
    ThresholdBand,
)
from mint_alerts.domain.errors import BudgetNotFoundError, EvaluationError, ValidationError
from mint_alerts.infrastructure.repositories import BudgetRepository
from mint_alerts.utils import ensure_app_timezone, now_in_app_timezone

from .evaluator import BudgetThresholdEvaluator

logger = logging.getLogger(__name__)


@dataclass
class TransactionOutcome:
    """Stored transaction plus the alert it triggered, if any."""

    transaction: BudgetTransaction
    notification: Notification | None = None


def record_transaction(
    session: Session,
    *,
    budget_id: int,
    amount: Decimal | str | int | float,
    category: str | None = None,
    occurred_at: datetime | None = None,
    description: str | None = None,
    bands: Sequence[ThresholdBand] = DEFAULT_BANDS,
    clock: Callable[[], datetime] = now_in_app_timezone,
) -> TransactionOutcome:
    """Persist a transaction and run the threshold evaluator best-effort.

    Negative amounts are refunds. The transaction is committed before the
    evaluation starts; evaluation problems are logged and never undo it.
    """

    repository = BudgetRepository(session)
    budget = repository.get(budget_id)
    if budget is None:
        raise BudgetNotFoundError(f"Budget with id {budget_id} not found")

    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"Invalid transaction amount '{amount}'") from exc
    if not value.is_finite():
        raise ValidationError(f"Invalid transaction amount '{amount}'")

    when = ensure_app_timezone(occurred_at) or clock()
    transaction = repository.add_transaction(
        BudgetTransaction(
            id=None,
            budget_id=budget.id,
            category=(category or budget.category).strip(),
            amount=value,
            occurred_at=when,
            description=description,
        )
    )

    if not budget.is_active:
        return TransactionOutcome(transaction=transaction)

    evaluator = BudgetThresholdEvaluator(session, bands=bands, clock=clock)
    try:
        notification = evaluator.evaluate(
            budget, category=transaction.category, day=when.date()
        )
    except EvaluationError as exc:
        logger.error("Budget %s evaluation skipped: %s", budget.id, exc)
        notification = None
    except SQLAlchemyError:
        session.rollback()
        logger.exception(
            "Budget %s evaluation failed after transaction %s", budget.id, transaction.id
        )
        notification = None
    return TransactionOutcome(transaction=transaction, notification=notification)
