"""Budget threshold evaluation run after every transaction write.

The evaluator recomputes the spend for the budget period, finds the highest
threshold band that has been crossed and emits at most one notification per
band and period. The per-period :class:`BudgetAlertState` row is advanced with
a version check in the same database transaction that inserts the
notification, and the notification's ``dedup_key`` is unique, so concurrent
writers cannot both announce the same crossing.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from mint_alerts.config import Settings
from mint_alerts.domain.entities import (
    DEFAULT_BANDS,
    Budget,
    BudgetStatus,
    Notification,
    NotificationChannel,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
    ThresholdBand,
)
from mint_alerts.domain.errors import EvaluationError
from mint_alerts.infrastructure.repositories import (
    BudgetAlertStateRepository,
    BudgetRepository,
    NotificationRepository,
)
from mint_alerts.utils import now_in_app_timezone

logger = logging.getLogger(__name__)

_HUNDRED = Decimal(100)
_CENT = Decimal("0.01")
_URGENT_PRIORITIES = frozenset({NotificationPriority.HIGH, NotificationPriority.URGENT})


def bands_from_settings(settings: Settings) -> tuple[ThresholdBand, ...]:
    """Return the configured threshold bands ordered by percentage."""

    return tuple(
        ThresholdBand(
            percent=item.percent,
            type=NotificationType(item.type),
            priority=NotificationPriority(item.priority),
        )
        for item in sorted(settings.budget_threshold_bands, key=lambda band: band.percent)
    )


def build_dedup_key(
    *,
    user_id: int,
    notification_type: NotificationType,
    budget_id: int,
    category: str,
    threshold: int,
    period_start: date,
) -> str:
    return (
        f"{user_id}:{notification_type.value}:{budget_id}:{category}:"
        f"{threshold}:{period_start.isoformat()}"
    )


class BudgetThresholdEvaluator:
    """Decide whether a budget's new spend crosses an un-notified band."""

    def __init__(
        self,
        session: Session,
        *,
        bands: Sequence[ThresholdBand] = DEFAULT_BANDS,
        clock: Callable[[], datetime] = now_in_app_timezone,
        max_state_attempts: int = 3,
    ) -> None:
        if not bands:
            raise ValueError("At least one threshold band is required")
        self.session = session
        self.bands = tuple(sorted(bands, key=lambda band: band.percent))
        self._clock = clock
        self._max_state_attempts = max_state_attempts

    def band_for(self, spent: Decimal, allocated: Decimal) -> ThresholdBand | None:
        """Return the highest band whose percentage ``spent`` has reached."""

        if allocated <= 0:
            raise EvaluationError(f"Budget allocation must be positive, got {allocated}")
        crossed = None
        for band in self.bands:
            # spent / allocated >= percent / 100, without dividing
            if spent * _HUNDRED >= band.percent * allocated:
                crossed = band
        return crossed

    def evaluate(
        self,
        budget: Budget,
        *,
        category: str | None = None,
        day: date | None = None,
    ) -> Notification | None:
        """Recompute ``budget`` for the period containing ``day``.

        Returns the notification created for a newly crossed band, or ``None``
        when nothing new was crossed. Raises :class:`EvaluationError` when the
        allocation is not positive.
        """

        category = category or budget.category
        day = day or self._clock().date()
        period_start, period_end = budget.period.window(day)
        spent = BudgetRepository(self.session).sum_spent(
            budget_id=budget.id,
            category=category,
            period_start=period_start,
            period_end=period_end,
        )
        band = self.band_for(spent, budget.amount)
        if band is None:
            logger.debug(
                "Budget %s (%s) at %s of %s; no band crossed",
                budget.id,
                category,
                spent,
                budget.amount,
            )
            return None

        states = BudgetAlertStateRepository(self.session)
        for _ in range(self._max_state_attempts):
            state = states.get_or_create(
                budget_id=budget.id, category=category, period_start=period_start
            )
            if band.percent <= state.last_notified_threshold:
                logger.debug(
                    "Budget %s (%s) band %s%% already notified for period %s",
                    budget.id,
                    category,
                    band.percent,
                    period_start,
                )
                return None

            if not states.advance(state, band.percent):
                # Another writer advanced the state first; re-read and decide again.
                self.session.rollback()
                continue

            notification = self._build_notification(
                budget,
                category=category,
                band=band,
                spent=spent,
                period_start=period_start,
            )
            try:
                created = NotificationRepository(self.session).create(
                    notification, commit=False
                )
                self.session.commit()
            except IntegrityError:
                self.session.rollback()
                logger.info(
                    "Budget %s (%s) band %s%% was notified concurrently",
                    budget.id,
                    category,
                    band.percent,
                )
                return None
            except SQLAlchemyError:
                self.session.rollback()
                raise

            logger.info(
                "Budget %s (%s) crossed %s%% (%s of %s); notification %s enqueued",
                budget.id,
                category,
                band.percent,
                spent,
                budget.amount,
                created.id,
            )
            return created

        logger.warning(
            "Budget %s (%s) alert state kept changing; skipped band %s%%",
            budget.id,
            category,
            band.percent,
        )
        return None

    def budget_status(self, budget: Budget, *, day: date | None = None) -> BudgetStatus:
        day = day or self._clock().date()
        period_start, period_end = budget.period.window(day)
        spent = BudgetRepository(self.session).sum_spent(
            budget_id=budget.id,
            category=budget.category,
            period_start=period_start,
            period_end=period_end,
        )
        state = BudgetAlertStateRepository(self.session).get(
            budget_id=budget.id, category=budget.category, period_start=period_start
        )
        if budget.amount > 0:
            percent_used = (spent * _HUNDRED / budget.amount).quantize(
                _CENT, rounding=ROUND_HALF_UP
            )
            current_band = self.band_for(spent, budget.amount)
        else:
            percent_used = Decimal("0.00")
            current_band = None
        return BudgetStatus(
            budget=budget,
            period_start=period_start,
            period_end=period_end,
            spent=spent,
            remaining=budget.amount - spent,
            percent_used=percent_used,
            current_band=current_band,
            last_notified_threshold=state.last_notified_threshold if state else 0,
        )

    def _build_notification(
        self,
        budget: Budget,
        *,
        category: str,
        band: ThresholdBand,
        spent: Decimal,
        period_start: date,
    ) -> Notification:
        percent_used = (spent * _HUNDRED / budget.amount).quantize(
            Decimal("0.1"), rounding=ROUND_HALF_UP
        )
        if band.type is NotificationType.BUDGET_EXCEEDED:
            title = f"{category} budget exceeded"
            message = (
                f"You've spent {spent} of your {budget.amount} {category} budget "
                f"({percent_used}%)."
            )
        else:
            title = f"{category} budget at {band.percent}%"
            message = (
                f"Your {category} budget is approaching its limit: {spent} of "
                f"{budget.amount} spent ({percent_used}%)."
            )

        channels = [NotificationChannel.IN_APP, NotificationChannel.PUSH]
        if band.priority in _URGENT_PRIORITIES:
            channels.append(NotificationChannel.EMAIL)

        return Notification(
            id=None,
            user_id=budget.user_id,
            type=band.type,
            priority=band.priority,
            title=title,
            message=message,
            data={
                "budget_id": budget.id,
                "category": category,
                "threshold": band.percent,
                "spent": str(spent),
                "amount": str(budget.amount),
                "period_start": period_start.isoformat(),
            },
            channels=tuple(channels),
            status=NotificationStatus.PENDING,
            dedup_key=build_dedup_key(
                user_id=budget.user_id,
                notification_type=band.type,
                budget_id=budget.id,
                category=category,
                threshold=band.percent,
                period_start=period_start,
            ),
            created_at=self._clock(),
        )


__all__ = ["BudgetThresholdEvaluator", "bands_from_settings", "build_dedup_key"]
