"""Domain entities describing budgets and their alert bookkeeping."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum

from .notification import NotificationPriority, NotificationType


class BudgetPeriod(str, Enum):
    """Recurring window over which a budget's spend is tracked."""

    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    YEARLY = "YEARLY"

    def window(self, day: date) -> tuple[date, date]:
        """Return the ``[start, end)`` dates of the period containing ``day``."""

        if self is BudgetPeriod.WEEKLY:
            start = day - timedelta(days=day.weekday())
            return start, start + timedelta(days=7)
        if self is BudgetPeriod.MONTHLY:
            start = day.replace(day=1)
            return start, _add_months(start, 1)
        if self is BudgetPeriod.QUARTERLY:
            start = date(day.year, 3 * ((day.month - 1) // 3) + 1, 1)
            return start, _add_months(start, 3)
        start = date(day.year, 1, 1)
        return start, date(day.year + 1, 1, 1)


def _add_months(start: date, months: int) -> date:
    month_index = start.month - 1 + months
    return date(start.year + month_index // 12, month_index % 12 + 1, 1)


@dataclass
class Budget:
    """Spending limit for one category over a recurring period."""

    id: int | None
    user_id: int
    category: str
    amount: Decimal
    period: BudgetPeriod = BudgetPeriod.MONTHLY
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class BudgetTransaction:
    """Transaction write that affects a budget category."""

    id: int | None
    budget_id: int
    category: str
    amount: Decimal
    occurred_at: datetime
    description: str | None = None
    created_at: datetime | None = None


@dataclass
class BudgetAlertState:
    """Highest threshold already notified for a budget category and period."""

    id: int | None
    budget_id: int
    category: str
    period_start: date
    last_notified_threshold: int = 0
    version: int = 0
    updated_at: datetime | None = None


@dataclass(frozen=True)
class ThresholdBand:
    """Percentage of the allocation that emits a notification when crossed."""

    percent: int
    type: NotificationType
    priority: NotificationPriority


DEFAULT_BANDS: tuple[ThresholdBand, ...] = (
    ThresholdBand(75, NotificationType.BUDGET_WARNING, NotificationPriority.MEDIUM),
    ThresholdBand(100, NotificationType.BUDGET_EXCEEDED, NotificationPriority.HIGH),
)


@dataclass
class BudgetStatus:
    """Spend-versus-limit snapshot for the period containing a given day."""

    budget: Budget
    period_start: date
    period_end: date
    spent: Decimal
    remaining: Decimal
    percent_used: Decimal
    current_band: ThresholdBand | None
    last_notified_threshold: int


__all__ = [
    "Budget",
    "BudgetAlertState",
    "BudgetPeriod",
    "BudgetStatus",
    "BudgetTransaction",
    "DEFAULT_BANDS",
    "ThresholdBand",
]
