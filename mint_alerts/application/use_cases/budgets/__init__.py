"""Use cases for budgets and the alerts raised when they are crossed."""

from .create_budget import create_budget
from .evaluator import BudgetThresholdEvaluator, bands_from_settings, build_dedup_key
from .get_budget_status import get_budget_status
from .record_transaction import TransactionOutcome, record_transaction

__all__ = [
    "BudgetThresholdEvaluator",
    "TransactionOutcome",
    "bands_from_settings",
    "build_dedup_key",
    "create_budget",
    "get_budget_status",
    "record_transaction",
]
