"""SQLAlchemy models for budgets, their transactions and alert state."""

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from mint_alerts.infrastructure.database import Base
from mint_alerts.utils import now_in_app_naive_datetime


class BudgetModel(Base):
    """Database representation of a category budget."""

    __tablename__ = "budget"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    category = Column(String(100), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    period = Column(String(20), nullable=False, default="MONTHLY")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(), nullable=False, default=now_in_app_naive_datetime)
    updated_at = Column(
        DateTime(),
        nullable=False,
        default=now_in_app_naive_datetime,
        onupdate=now_in_app_naive_datetime,
    )

    transactions = relationship("BudgetTransactionModel", back_populates="budget")


class BudgetTransactionModel(Base):
    """Transaction amount booked against a budget category."""

    __tablename__ = "budget_transaction"
    __table_args__ = (
        Index("ix_budget_transaction_window", "budget_id", "category", "occurred_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    budget_id = Column(
        Integer,
        ForeignKey("budget.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    category = Column(String(100), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    occurred_at = Column(DateTime(), nullable=False)
    description = Column(String(255), nullable=True)
    created_at = Column(DateTime(), nullable=False, default=now_in_app_naive_datetime)

    budget = relationship("BudgetModel", back_populates="transactions")


class BudgetAlertStateModel(Base):
    """Highest notified threshold per budget category and period."""

    __tablename__ = "budget_alert_state"
    __table_args__ = (
        UniqueConstraint(
            "budget_id", "category", "period_start", name="uq_budget_alert_state_period"
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    budget_id = Column(
        Integer,
        ForeignKey("budget.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    category = Column(String(100), nullable=False)
    period_start = Column(Date(), nullable=False)
    last_notified_threshold = Column(Integer, nullable=False, default=0)
    version = Column(Integer, nullable=False, default=0)
    updated_at = Column(
        DateTime(),
        nullable=False,
        default=now_in_app_naive_datetime,
        onupdate=now_in_app_naive_datetime,
    )


__all__ = ["BudgetAlertStateModel", "BudgetModel", "BudgetTransactionModel"]
