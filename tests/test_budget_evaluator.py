"""Tests for the budget threshold evaluator and the transaction-write flow."""

from __future__ import annotations

import threading
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from mint_alerts.application.use_cases.budgets import (
    BudgetThresholdEvaluator,
    bands_from_settings,
    build_dedup_key,
    create_budget,
    get_budget_status,
    record_transaction,
)
from mint_alerts.config import Settings
from mint_alerts.domain.entities import (
    Budget,
    BudgetPeriod,
    Notification,
    NotificationChannel,
    NotificationPriority,
    NotificationType,
)
from mint_alerts.domain.errors import (
    BudgetNotFoundError,
    EvaluationError,
    ValidationError,
)
from mint_alerts.infrastructure.models import BudgetModel
from mint_alerts.infrastructure.repositories import (
    BudgetAlertStateRepository,
    BudgetRepository,
    NotificationRepository,
)

MARCH = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)
APRIL = datetime(2024, 4, 2, 9, 30, tzinfo=timezone.utc)


@pytest.fixture()
def budget(session) -> Budget:
    return create_budget(session, user_id=1, category="Dining", amount="1000")


def _spend(session, budget, amount, *, when=MARCH, clock=None):
    return record_transaction(
        session,
        budget_id=budget.id,
        amount=amount,
        occurred_at=when,
        clock=clock or (lambda: when),
    )


def _alerts(session, user_id=1):
    return list(reversed(NotificationRepository(session).list_for_user(user_id)))


def test_warning_then_exceeded_are_each_sent_once(session, budget) -> None:
    first = _spend(session, budget, "750")
    assert first.notification.type is NotificationType.BUDGET_WARNING
    assert first.notification.priority is NotificationPriority.MEDIUM

    second = _spend(session, budget, "300")
    assert second.notification.type is NotificationType.BUDGET_EXCEEDED
    assert second.notification.priority is NotificationPriority.HIGH

    assert _spend(session, budget, "50").notification is None
    assert _spend(session, budget, "1").notification is None

    alerts = _alerts(session)
    assert [alert.type for alert in alerts] == [
        NotificationType.BUDGET_WARNING,
        NotificationType.BUDGET_EXCEEDED,
    ]
    data = alerts[0].data
    assert (data["budget_id"], data["category"], data["threshold"]) == (budget.id, "Dining", 75)
    assert Decimal(data["spent"]) == Decimal("750")
    assert Decimal(data["amount"]) == Decimal("1000")
    assert data["period_start"] == "2024-03-01"
    assert NotificationChannel.EMAIL in alerts[1].channels
    assert NotificationChannel.EMAIL not in alerts[0].channels


def test_jumping_several_bands_notifies_only_the_highest(session, budget) -> None:
    outcome = _spend(session, budget, "1100")

    assert outcome.notification.type is NotificationType.BUDGET_EXCEEDED
    assert [alert.type for alert in _alerts(session)] == [NotificationType.BUDGET_EXCEEDED]
    assert _spend(session, budget, "10").notification is None


def test_below_lowest_band_creates_nothing(session, budget) -> None:
    assert _spend(session, budget, "749.99").notification is None
    assert _alerts(session) == []


def test_refunds_do_not_reset_the_notified_threshold(session, budget) -> None:
    assert _spend(session, budget, "800").notification is not None
    assert _spend(session, budget, "-200").notification is None
    assert _spend(session, budget, "200").notification is None

    assert len(_alerts(session)) == 1


def test_new_period_notifies_again(session, budget) -> None:
    assert _spend(session, budget, "800", when=MARCH).notification is not None
    april = _spend(session, budget, "800", when=APRIL)

    assert april.notification is not None
    assert april.notification.type is NotificationType.BUDGET_WARNING
    assert april.notification.data["period_start"] == "2024-04-01"
    assert len(_alerts(session)) == 2


def test_zero_allocation_is_reported_and_the_write_still_stands(session) -> None:
    broken = BudgetRepository(session).create(
        Budget(id=None, user_id=1, category="Travel", amount=Decimal("0"))
    )
    evaluator = BudgetThresholdEvaluator(session, clock=lambda: MARCH)

    with pytest.raises(EvaluationError):
        evaluator.evaluate(broken)

    outcome = _spend(session, broken, "25")
    assert outcome.transaction.id is not None
    assert outcome.notification is None
    assert BudgetRepository(session).sum_spent(
        budget_id=broken.id,
        category="Travel",
        period_start=date(2024, 3, 1),
        period_end=date(2024, 4, 1),
    ) == Decimal("25")


def test_stale_state_version_cannot_advance(session, budget) -> None:
    states = BudgetAlertStateRepository(session)
    state = states.get_or_create(
        budget_id=budget.id, category="Dining", period_start=date(2024, 3, 1)
    )

    assert states.advance(state, 75) is True
    session.commit()
    assert states.advance(state, 100) is False
    session.rollback()

    current = states.get(budget_id=budget.id, category="Dining", period_start=date(2024, 3, 1))
    assert current.last_notified_threshold == 75
    assert current.version == state.version + 1


def test_existing_dedup_key_suppresses_a_second_alert(session, budget) -> None:
    key = build_dedup_key(
        user_id=1,
        notification_type=NotificationType.BUDGET_WARNING,
        budget_id=budget.id,
        category="Dining",
        threshold=75,
        period_start=date(2024, 3, 1),
    )
    NotificationRepository(session).create(
        Notification(
            id=None,
            user_id=1,
            type=NotificationType.BUDGET_WARNING,
            priority=NotificationPriority.MEDIUM,
            title="Dining budget at 75%",
            message="Already sent by another writer",
            dedup_key=key,
            created_at=MARCH,
        )
    )

    outcome = _spend(session, budget, "800")

    assert outcome.notification is None
    assert len(_alerts(session)) == 1
    state = BudgetAlertStateRepository(session).get(
        budget_id=budget.id, category="Dining", period_start=date(2024, 3, 1)
    )
    assert state.last_notified_threshold == 0


def test_concurrent_writes_raise_a_single_warning(session_factory, session, budget) -> None:
    barrier = threading.Barrier(2)
    outcomes = []
    errors = []

    def _write():
        own_session = session_factory()
        try:
            barrier.wait(timeout=5)
            outcomes.append(_spend(own_session, budget, "400"))
        except Exception as exc:
            errors.append(exc)
        finally:
            own_session.close()

    threads = [threading.Thread(target=_write) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(10)

    assert errors == []
    assert len(outcomes) == 2
    assert [alert.type for alert in _alerts(session)] == [NotificationType.BUDGET_WARNING]
    assert sum(outcome.notification is not None for outcome in outcomes) == 1
    state = BudgetAlertStateRepository(session).get(
        budget_id=budget.id, category="Dining", period_start=date(2024, 3, 1)
    )
    assert state.last_notified_threshold == 75


def test_budget_model_loads_its_transactions(session, budget) -> None:
    _spend(session, budget, "120")
    _spend(session, budget, "-20")
    session.expire_all()

    model = session.get(BudgetModel, budget.id)

    assert sorted(item.amount for item in model.transactions) == [Decimal("-20"), Decimal("120")]
    assert all(item.budget is model for item in model.transactions)


def test_budget_status_reports_spend_and_band(session, budget) -> None:
    _spend(session, budget, "800")

    status = get_budget_status(session, budget.id, day=MARCH.date())

    assert status.spent == Decimal("800")
    assert status.remaining == Decimal("200")
    assert status.percent_used == Decimal("80.00")
    assert status.current_band.percent == 75
    assert status.last_notified_threshold == 75
    assert (status.period_start, status.period_end) == (date(2024, 3, 1), date(2024, 4, 1))

    with pytest.raises(BudgetNotFoundError):
        get_budget_status(session, 999)


def test_configured_bands_drive_notifications(session, budget) -> None:
    settings = Settings(
        _env_file=None,
        budget_threshold_bands=[
            {"percent": 100, "type": "BUDGET_EXCEEDED", "priority": "URGENT"},
            {"percent": 50, "type": "BUDGET_WARNING", "priority": "LOW"},
            {"percent": 90, "type": "BUDGET_WARNING", "priority": "HIGH"},
        ],
    )
    bands = bands_from_settings(settings)
    assert [band.percent for band in bands] == [50, 90, 100]

    outcome = record_transaction(
        session,
        budget_id=budget.id,
        amount="920",
        occurred_at=MARCH,
        bands=bands,
        clock=lambda: MARCH,
    )

    assert outcome.notification.priority is NotificationPriority.HIGH
    assert outcome.notification.data["threshold"] == 90


@pytest.mark.parametrize(
    ("amount", "period"),
    [("0", "MONTHLY"), ("-5", "MONTHLY"), ("abc", "MONTHLY"), ("10", "FORTNIGHTLY")],
)
def test_create_budget_validates_input(session, amount, period) -> None:
    with pytest.raises(ValidationError):
        create_budget(session, user_id=1, category="Dining", amount=amount, period=period)


def test_transaction_for_unknown_budget_is_rejected(session) -> None:
    with pytest.raises(BudgetNotFoundError):
        record_transaction(session, budget_id=42, amount="10")


@pytest.mark.parametrize(
    ("period", "day", "expected"),
    [
        (BudgetPeriod.WEEKLY, date(2024, 3, 13), (date(2024, 3, 11), date(2024, 3, 18))),
        (BudgetPeriod.MONTHLY, date(2024, 12, 31), (date(2024, 12, 1), date(2025, 1, 1))),
        (BudgetPeriod.QUARTERLY, date(2024, 5, 20), (date(2024, 4, 1), date(2024, 7, 1))),
        (BudgetPeriod.YEARLY, date(2024, 7, 4), (date(2024, 1, 1), date(2025, 1, 1))),
    ],
)
def test_budget_period_windows(period, day, expected) -> None:
    assert period.window(day) == expected
