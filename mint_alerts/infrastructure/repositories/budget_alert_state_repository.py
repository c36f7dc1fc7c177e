"""Persistence helpers for per-period budget alert state."""

from __future__ import annotations

from datetime import date

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from mint_alerts.domain.entities import BudgetAlertState
from mint_alerts.infrastructure.models import BudgetAlertStateModel
from mint_alerts.utils import ensure_app_timezone


class BudgetAlertStateRepository:
    """Read and advance :class:`BudgetAlertState` rows with version checks."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(
        self, *, budget_id: int, category: str, period_start: date
    ) -> BudgetAlertState | None:
        model = (
            self.session.query(BudgetAlertStateModel)
            .filter(BudgetAlertStateModel.budget_id == budget_id)
            .filter(BudgetAlertStateModel.category == category)
            .filter(BudgetAlertStateModel.period_start == period_start)
            .populate_existing()
            .first()
        )
        return self._to_entity(model) if model else None

    def get_or_create(
        self, *, budget_id: int, category: str, period_start: date
    ) -> BudgetAlertState:
        """Return the state row for the period, creating a zeroed one if missing."""

        existing = self.get(
            budget_id=budget_id, category=category, period_start=period_start
        )
        if existing is not None:
            return existing

        model = BudgetAlertStateModel(
            budget_id=budget_id,
            category=category,
            period_start=period_start,
            last_notified_threshold=0,
            version=0,
        )
        self.session.add(model)
        try:
            self.session.commit()
        except IntegrityError:
            # A concurrent writer created the row first.
            self.session.rollback()
            created = self.get(
                budget_id=budget_id, category=category, period_start=period_start
            )
            if created is None:  # pragma: no cover - row vanished between statements
                raise
            return created
        self.session.refresh(model)
        return self._to_entity(model)

    def advance(self, state: BudgetAlertState, threshold: int) -> bool:
        """Raise ``last_notified_threshold`` if the row still has ``state.version``.

        The change is flushed but not committed so the caller can commit it
        together with the notification it guards.
        """

        statement = (
            update(BudgetAlertStateModel)
            .where(BudgetAlertStateModel.id == state.id)
            .where(BudgetAlertStateModel.version == state.version)
            .where(BudgetAlertStateModel.last_notified_threshold < threshold)
            .values(
                last_notified_threshold=threshold,
                version=BudgetAlertStateModel.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(statement)
        return result.rowcount == 1

    @staticmethod
    def _to_entity(model: BudgetAlertStateModel) -> BudgetAlertState:
        return BudgetAlertState(
            id=model.id,
            budget_id=model.budget_id,
            category=model.category,
            period_start=model.period_start,
            last_notified_threshold=model.last_notified_threshold or 0,
            version=model.version or 0,
            updated_at=ensure_app_timezone(model.updated_at),
        )


__all__ = ["BudgetAlertStateRepository"]
