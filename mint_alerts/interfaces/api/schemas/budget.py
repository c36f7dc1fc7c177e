"""Schemas for budget and transaction endpoints."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from mint_alerts.domain.entities import BudgetPeriod, NotificationPriority, NotificationType

from .notification import NotificationRead


class BudgetCreate(BaseModel):
    user_id: int = Field(..., gt=0)
    category: str = Field(..., min_length=1, max_length=100)
    amount: Decimal
    period: BudgetPeriod = BudgetPeriod.MONTHLY


class BudgetRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    category: str
    amount: Decimal
    period: BudgetPeriod
    is_active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ThresholdBandRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    percent: int
    type: NotificationType
    priority: NotificationPriority


class BudgetStatusRead(BaseModel):
    """Spend-versus-limit snapshot for the current period."""

    budget_id: int
    category: str
    period_start: date
    period_end: date
    allocated: Decimal
    spent: Decimal
    remaining: Decimal
    percent_used: Decimal
    current_band: ThresholdBandRead | None = None
    last_notified_threshold: int


class TransactionCreate(BaseModel):
    """Transaction-write event emitted by the transactions store."""

    model_config = ConfigDict(populate_by_name=True)

    budget_id: int
    amount: Decimal
    category: str | None = Field(default=None, max_length=100)
    occurred_at: datetime | None = Field(default=None, alias="date")
    description: str | None = Field(default=None, max_length=255)


class TransactionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    budget_id: int
    category: str
    amount: Decimal
    occurred_at: datetime
    description: str | None = None


class TransactionRecorded(BaseModel):
    transaction: TransactionRead
    notification: NotificationRead | None = None


__all__ = [
    "BudgetCreate",
    "BudgetRead",
    "BudgetStatusRead",
    "ThresholdBandRead",
    "TransactionCreate",
    "TransactionRead",
    "TransactionRecorded",
]
