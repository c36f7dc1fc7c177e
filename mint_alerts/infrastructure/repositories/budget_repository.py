"""Persistence layer for budgets and the transactions booked against them."""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session

from mint_alerts.domain.entities import Budget, BudgetPeriod, BudgetTransaction
from mint_alerts.infrastructure.models import BudgetModel, BudgetTransactionModel
from mint_alerts.utils import (
    ensure_app_naive_datetime,
    ensure_app_timezone,
    now_in_app_timezone,
)


class BudgetRepository:
    """Provide CRUD-style operations for :class:`Budget` records."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, budget_id: int) -> Budget | None:
        model = self.session.get(BudgetModel, budget_id)
        return self._to_entity(model) if model else None

    def list_for_user(self, user_id: int) -> list[Budget]:
        query = (
            self.session.query(BudgetModel)
            .filter(BudgetModel.user_id == user_id)
            .order_by(BudgetModel.category.asc(), BudgetModel.id.asc())
        )
        return [self._to_entity(model) for model in query.all()]

    def create(self, budget: Budget) -> Budget:
        model = BudgetModel(
            user_id=budget.user_id,
            category=budget.category,
            amount=budget.amount,
            period=budget.period.value,
            is_active=budget.is_active,
            created_at=ensure_app_naive_datetime(
                budget.created_at or now_in_app_timezone()
            ),
        )
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def add_transaction(self, transaction: BudgetTransaction) -> BudgetTransaction:
        model = BudgetTransactionModel(
            budget_id=transaction.budget_id,
            category=transaction.category,
            amount=transaction.amount,
            occurred_at=ensure_app_naive_datetime(transaction.occurred_at),
            description=transaction.description,
            created_at=ensure_app_naive_datetime(
                transaction.created_at or now_in_app_timezone()
            ),
        )
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._transaction_to_entity(model)

    def sum_spent(
        self,
        *,
        budget_id: int,
        category: str,
        period_start: date,
        period_end: date,
    ) -> Decimal:
        """Return the sum of transaction amounts inside ``[period_start, period_end)``."""

        total = (
            self.session.query(func.coalesce(func.sum(BudgetTransactionModel.amount), 0))
            .filter(BudgetTransactionModel.budget_id == budget_id)
            .filter(BudgetTransactionModel.category == category)
            .filter(BudgetTransactionModel.occurred_at >= datetime.combine(period_start, time.min))
            .filter(BudgetTransactionModel.occurred_at < datetime.combine(period_end, time.min))
            .scalar()
        )
        return Decimal(str(total or 0))

    @staticmethod
    def _to_entity(model: BudgetModel) -> Budget:
        return Budget(
            id=model.id,
            user_id=model.user_id,
            category=model.category,
            amount=Decimal(str(model.amount)),
            period=BudgetPeriod(model.period),
            is_active=bool(model.is_active),
            created_at=ensure_app_timezone(model.created_at),
            updated_at=ensure_app_timezone(model.updated_at),
        )

    @staticmethod
    def _transaction_to_entity(model: BudgetTransactionModel) -> BudgetTransaction:
        return BudgetTransaction(
            id=model.id,
            budget_id=model.budget_id,
            category=model.category,
            amount=Decimal(str(model.amount)),
            occurred_at=ensure_app_timezone(model.occurred_at),
            description=model.description,
            created_at=ensure_app_timezone(model.created_at),
        )


__all__ = ["BudgetRepository"]
