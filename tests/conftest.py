"""Shared fixtures: a throwaway SQLite database, a controllable clock and fake channels."""

from __future__ import annotations

import os
import tempfile
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path

TEST_DB_PATH = Path(tempfile.gettempdir()) / f"mint_alerts_test_{os.getpid()}.db"
os.environ["DATABASE_URL"] = f"sqlite:///{TEST_DB_PATH}"
os.environ["APP_TIMEZONE"] = "UTC"
for _name in (
    "SENDGRID_API_KEY",
    "SENDGRID_SENDER",
    "FCM_PROJECT_ID",
    "FCM_ACCESS_TOKEN",
    "DISPATCHER_ENABLED",
    "BUDGET_THRESHOLD_BANDS",
):
    os.environ.pop(_name, None)

import pytest

from mint_alerts.config import reset_settings_cache

reset_settings_cache()

from mint_alerts.domain.entities import (
    Notification,
    NotificationChannel,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
)
from mint_alerts.infrastructure import database
from mint_alerts.infrastructure.channels import DeliveryChannelAdapter
from mint_alerts.infrastructure.repositories import NotificationRepository


class FakeClock:
    """Callable returning a manually advanced aware datetime."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeChannel(DeliveryChannelAdapter):
    """Channel adapter replaying scripted outcomes.

    Each outcome is either an exception to raise or the provider message id
    to return; once the script runs out every call succeeds.
    """

    def __init__(self, channel: NotificationChannel, outcomes=(), *, delay: float = 0.0) -> None:
        self.channel = channel
        self.outcomes = list(outcomes)
        self.delay = delay
        self.calls: list[int] = []

    def send(self, notification, recipient):
        self.calls.append(notification.id)
        if self.delay:
            time.sleep(self.delay)
        outcome = self.outcomes.pop(0) if self.outcomes else None
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.fixture(autouse=True)
def clean_database():
    """Recreate every table before each test."""

    database.initialize_database()
    database.Base.metadata.drop_all(bind=database.engine)
    database.Base.metadata.create_all(bind=database.engine)
    yield


@pytest.fixture(scope="session", autouse=True)
def remove_test_database():
    yield
    database.engine.dispose()
    if TEST_DB_PATH.exists():
        TEST_DB_PATH.unlink()


@pytest.fixture()
def session_factory():
    return database.SessionLocal


@pytest.fixture()
def session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc))


@pytest.fixture()
def fake_channel_cls():
    return FakeChannel


@pytest.fixture()
def make_notification(session, clock):
    """Persist a notification with sensible defaults and return it."""

    def _make(**overrides) -> Notification:
        values = {
            "id": None,
            "user_id": 1,
            "type": NotificationType.SYSTEM_UPDATE,
            "priority": NotificationPriority.MEDIUM,
            "title": "Heads up",
            "message": "Something happened",
            "channels": (NotificationChannel.IN_APP,),
            "status": NotificationStatus.PENDING,
            "created_at": clock(),
        }
        values.update(overrides)
        return NotificationRepository(session).create(Notification(**values))

    return _make
