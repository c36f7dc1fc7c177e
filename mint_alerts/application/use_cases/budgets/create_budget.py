"""Use case for registering a budget."""

from decimal import Decimal, InvalidOperation

from sqlalchemy.orm import Session

from mint_alerts.domain.entities import Budget, BudgetPeriod
from mint_alerts.domain.errors import ValidationError
from mint_alerts.infrastructure.repositories import BudgetRepository

MAX_BUDGET_AMOUNT = Decimal("1000000000")


def _parse_amount(amount) -> Decimal:
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"Invalid budget amount '{amount}'") from exc
    if not value.is_finite() or value <= 0:
        raise ValidationError("Budget amount must be greater than zero")
    if value > MAX_BUDGET_AMOUNT:
        raise ValidationError("Budget amount exceeds maximum allowed value")
    return value


def create_budget(
    session: Session,
    *,
    user_id: int,
    category: str,
    amount: Decimal | str | int | float,
    period: BudgetPeriod | str = BudgetPeriod.MONTHLY,
) -> Budget:
    """Validate and persist a new budget."""

    if not category or not category.strip():
        raise ValidationError("Budget category is required")
    try:
        budget_period = period if isinstance(period, BudgetPeriod) else BudgetPeriod(period.upper())
    except ValueError as exc:
        raise ValidationError(f"Invalid budget period '{period}'") from exc

    budget = Budget(
        id=None,
        user_id=user_id,
        category=category.strip(),
        amount=_parse_amount(amount),
        period=budget_period,
    )
    return BudgetRepository(session).create(budget)
