"""Use case for reporting a budget's spend in its current period."""

from collections.abc import Sequence
from datetime import date

from sqlalchemy.orm import Session

from mint_alerts.domain.entities import DEFAULT_BANDS, BudgetStatus, ThresholdBand
from mint_alerts.domain.errors import BudgetNotFoundError
from mint_alerts.infrastructure.repositories import BudgetRepository

from .evaluator import BudgetThresholdEvaluator


def get_budget_status(
    session: Session,
    budget_id: int,
    *,
    bands: Sequence[ThresholdBand] = DEFAULT_BANDS,
    day: date | None = None,
) -> BudgetStatus:
    budget = BudgetRepository(session).get(budget_id)
    if budget is None:
        raise BudgetNotFoundError(f"Budget with id {budget_id} not found")
    return BudgetThresholdEvaluator(session, bands=bands).budget_status(budget, day=day)
