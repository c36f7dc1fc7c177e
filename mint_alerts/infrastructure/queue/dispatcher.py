"""Priority dispatcher that drains the notification queue.

Selection, claiming and completion all go through
:class:`NotificationRepository`, so several dispatchers (threads or processes)
may share one database: a notification is claimed by exactly one worker at a
time and a worker that lost its lease cannot overwrite the new owner's result.
"""

from __future__ import annotations

import logging
import os
import socket
import threading
import time
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta

from sqlalchemy.orm import Session, sessionmaker

from mint_alerts.config import Settings
from mint_alerts.domain.entities import (
    DeliveryResult,
    Notification,
    NotificationChannel,
    NotificationStatus,
    RecipientProfile,
)
from mint_alerts.domain.errors import ClaimConflictError
from mint_alerts.infrastructure.channels import DeliveryChannelAdapter, build_channels
from mint_alerts.infrastructure.repositories import (
    NotificationRepository,
    RecipientRepository,
)
from mint_alerts.utils import now_in_app_timezone

from .rate_limiter import FixedWindowRateLimiter

logger = logging.getLogger(__name__)

_HOSTNAME_PREFIX_LENGTH = 64


def default_worker_id() -> str:
    """Return ``<host>-<pid>-<random>`` with the host part capped at 64 characters."""

    host = socket.gethostname()[:_HOSTNAME_PREFIX_LENGTH]
    return f"{host}-{os.getpid()}-{uuid.uuid4().hex[:8]}"


@dataclass
class DispatchReport:
    """What happened to one notification during a dispatch attempt."""

    notification_id: int
    status: NotificationStatus
    retry_count: int
    results: dict[NotificationChannel, DeliveryResult] = field(default_factory=dict)
    lease_lost: bool = False


class NotificationDispatcher:
    """Claim, deliver and settle queued notifications one at a time."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        channels: Mapping[NotificationChannel, DeliveryChannelAdapter],
        *,
        rate_limiter: FixedWindowRateLimiter,
        max_attempts: int = 3,
        backoff_base_ms: int = 1000,
        delivery_timeout: float = 30.0,
        lease_seconds: int = 60,
        batch_size: int = 50,
        worker_id: str | None = None,
        clock: Callable[[], datetime] = now_in_app_timezone,
    ) -> None:
        self._session_factory = session_factory
        self._channels = dict(channels)
        self.rate_limiter = rate_limiter
        self.max_attempts = max_attempts
        self.backoff_base_ms = backoff_base_ms
        self.delivery_timeout = delivery_timeout
        self.lease_seconds = lease_seconds
        self.batch_size = batch_size
        self.worker_id = worker_id or default_worker_id()
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        session_factory: sessionmaker[Session],
        settings: Settings,
        *,
        channels: Mapping[NotificationChannel, DeliveryChannelAdapter] | None = None,
        rate_limiter: FixedWindowRateLimiter | None = None,
        worker_id: str | None = None,
    ) -> "NotificationDispatcher":
        return cls(
            session_factory,
            channels if channels is not None else build_channels(settings),
            rate_limiter=rate_limiter or build_rate_limiter(settings),
            max_attempts=settings.queue_max_attempts,
            backoff_base_ms=settings.queue_backoff_base_ms,
            delivery_timeout=settings.delivery_timeout_seconds,
            lease_seconds=settings.claim_lease_seconds,
            batch_size=settings.dispatcher_batch_size,
            worker_id=worker_id,
        )

    def backoff_delay(self, retry_count: int) -> timedelta:
        """Delay before the next attempt once ``retry_count`` failures happened."""

        return timedelta(milliseconds=self.backoff_base_ms * (2**retry_count))

    def claim(self, notification_id: int) -> Notification:
        """Claim ``notification_id`` for this worker or raise ``ClaimConflictError``."""

        now = self._clock()
        with self._session_factory() as session:
            claimed = NotificationRepository(session).claim(
                notification_id,
                worker_id=self.worker_id,
                now=now,
                lease_until=now + timedelta(seconds=self.lease_seconds),
            )
        if claimed is None:
            raise ClaimConflictError(
                f"Notification {notification_id} is not claimable by {self.worker_id}"
            )
        return claimed

    def dispatch_next(self) -> DispatchReport | None:
        """Deliver the best claimable notification.

        Returns ``None`` when the queue has nothing ready or the rate limit
        deferred the attempt; deferred notifications stay ``PENDING`` in place.
        """

        now = self._clock()
        with self._session_factory() as session:
            repository = NotificationRepository(session)
            if not repository.has_dispatch_candidates(now=now):
                return None
            if not self.rate_limiter.try_acquire():
                logger.debug(
                    "Rate limit reached; deferring dispatch for %.3fs",
                    self.rate_limiter.seconds_until_reset(),
                )
                return None

        notification = self._claim_next(now)
        if notification is None:
            self.rate_limiter.release()
            return None
        return self.process(notification)

    def run_cycle(self, max_dispatches: int | None = None) -> list[DispatchReport]:
        """Dispatch until the queue is drained, rate limited, or the cap is hit."""

        limit = max_dispatches or self.batch_size
        reports: list[DispatchReport] = []
        while len(reports) < limit:
            report = self.dispatch_next()
            if report is None:
                break
            reports.append(report)
        return reports

    def process(self, notification: Notification) -> DispatchReport:
        """Attempt delivery of a notification this worker has claimed."""

        with self._session_factory() as session:
            recipient = RecipientRepository(session).get(notification.user_id)

        results = self._deliver(notification, recipient)
        settled = self._settle(notification, results, self._clock())

        with self._session_factory() as session:
            stored = NotificationRepository(session).complete_attempt(
                settled, worker_id=self.worker_id
            )
        if not stored:
            logger.warning(
                "Worker %s lost the lease on notification %s; outcome discarded",
                self.worker_id,
                notification.id,
            )
        else:
            logger.info(
                "Notification %s -> %s (retry_count=%s)",
                notification.id,
                settled.status.value,
                settled.retry_count,
            )
        return DispatchReport(
            notification_id=notification.id,
            status=settled.status,
            retry_count=settled.retry_count,
            results=results,
            lease_lost=not stored,
        )

    def _claim_next(self, now: datetime) -> Notification | None:
        with self._session_factory() as session:
            candidates = NotificationRepository(session).find_dispatch_candidates(
                now=now, limit=self.batch_size
            )
        for candidate in candidates:
            try:
                return self.claim(candidate.id)
            except ClaimConflictError:
                logger.debug(
                    "Notification %s claimed by another worker; moving on", candidate.id
                )
        return None

    def _deliver(
        self, notification: Notification, recipient: RecipientProfile | None
    ) -> dict[NotificationChannel, DeliveryResult]:
        attempts: dict[NotificationChannel, _DeliveryAttempt] = {}
        results: dict[NotificationChannel, DeliveryResult] = {}
        for channel in notification.pending_channels:
            adapter = self._channels.get(channel)
            if adapter is None:
                results[channel] = DeliveryResult.permanent(
                    f"No adapter registered for channel {channel.value}"
                )
                continue
            attempts[channel] = _DeliveryAttempt(
                adapter,
                notification,
                recipient,
                name=f"delivery-{notification.id}-{channel.value.lower()}",
            )

        for channel, attempt in attempts.items():
            if not attempt.wait(self.delivery_timeout):
                logger.warning(
                    "%s delivery of notification %s still running after %ss",
                    channel.value,
                    notification.id,
                    self.delivery_timeout,
                )
                results[channel] = DeliveryResult.transient(
                    f"{channel.value} delivery timed out after {self.delivery_timeout}s"
                )
            elif attempt.error is not None:
                logger.error(
                    "Unexpected %s adapter error for notification %s",
                    channel.value,
                    notification.id,
                    exc_info=attempt.error,
                )
                results[channel] = DeliveryResult.transient(
                    f"{channel.value} adapter error: {attempt.error}"
                )
            else:
                results[channel] = attempt.result
        return results

    def _settle(
        self,
        notification: Notification,
        results: Mapping[NotificationChannel, DeliveryResult],
        now: datetime,
    ) -> Notification:
        """Return ``notification`` moved to the state implied by ``results``."""

        delivered = list(notification.delivered_channels)
        external_message_id = notification.external_message_id
        transient: list[str] = []
        permanent: list[str] = []
        bounced = False
        for channel, result in results.items():
            if result.is_delivered:
                delivered.append(channel)
                external_message_id = result.external_message_id or external_message_id
            elif result.is_transient:
                transient.append(f"{channel.value}: {result.reason}")
            else:
                permanent.append(f"{channel.value}: {result.reason}")
                bounced = bounced or result.bounced

        settled = replace(
            notification,
            delivered_channels=tuple(delivered),
            external_message_id=external_message_id,
            claimed_by=None,
            claim_expires_at=None,
        )

        if transient:
            retry_count = notification.retry_count + 1
            reason = "; ".join(transient + permanent)
            if retry_count < self.max_attempts:
                return replace(
                    settled,
                    status=NotificationStatus.PENDING,
                    retry_count=retry_count,
                    scheduled_at=now + self.backoff_delay(retry_count),
                    failure_reason=reason,
                )
            if delivered:
                return replace(
                    settled,
                    status=NotificationStatus.SENT,
                    retry_count=retry_count,
                    sent_at=now,
                    failure_reason=reason,
                )
            return replace(
                settled,
                status=NotificationStatus.FAILED,
                retry_count=retry_count,
                failure_reason=reason,
            )

        if delivered:
            return replace(
                settled,
                status=NotificationStatus.SENT,
                sent_at=now,
                failure_reason="; ".join(permanent) or None,
            )
        return replace(
            settled,
            status=NotificationStatus.BOUNCED if bounced else NotificationStatus.FAILED,
            failure_reason="; ".join(permanent) or "No channel accepted the notification",
        )


class _DeliveryAttempt:
    """One adapter call running in its own daemon thread.

    A call that never returns only pins its own thread, and the deadline given
    to :meth:`wait` counts from the moment the call started.
    """

    def __init__(
        self,
        adapter: DeliveryChannelAdapter,
        notification: Notification,
        recipient: RecipientProfile | None,
        *,
        name: str,
    ) -> None:
        self.result: DeliveryResult | None = None
        self.error: Exception | None = None
        self._done = threading.Event()
        thread = threading.Thread(
            target=self._run,
            args=(adapter, notification, recipient),
            name=name,
            daemon=True,
        )
        self.started_at = time.monotonic()
        thread.start()

    def _run(
        self,
        adapter: DeliveryChannelAdapter,
        notification: Notification,
        recipient: RecipientProfile | None,
    ) -> None:
        try:
            self.result = adapter.attempt_delivery(notification, recipient)
        except Exception as exc:
            self.error = exc
        finally:
            self._done.set()

    def wait(self, timeout: float) -> bool:
        """Wait until the call finishes or ``timeout`` seconds after it started."""

        return self._done.wait(max(self.started_at + timeout - time.monotonic(), 0))


def build_rate_limiter(settings: Settings) -> FixedWindowRateLimiter:
    return FixedWindowRateLimiter(
        settings.queue_rate_limit_max,
        settings.queue_rate_limit_window_ms / 1000,
    )


__all__ = [
    "DispatchReport",
    "NotificationDispatcher",
    "build_rate_limiter",
    "default_worker_id",
]
