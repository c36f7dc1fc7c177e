"""Background threads that keep the dispatcher running."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from mint_alerts.config import Settings
from mint_alerts.infrastructure.channels import build_channels

from .dispatcher import NotificationDispatcher, build_rate_limiter, default_worker_id

logger = logging.getLogger(__name__)

_MIN_WAIT_SECONDS = 0.01


class DispatchWorkerPool:
    """Run ``workers`` dispatchers in daemon threads until :meth:`stop` is called.

    Each thread gets its own dispatcher from ``dispatcher_factory`` (and so its
    own worker id); the factory decides whether they share a rate limiter.
    """

    def __init__(
        self,
        dispatcher_factory: Callable[[int], NotificationDispatcher],
        *,
        workers: int = 1,
        poll_interval: float = 1.0,
    ) -> None:
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self._dispatcher_factory = dispatcher_factory
        self._workers = workers
        self._poll_interval = poll_interval
        self._stop_event = threading.Event()
        self._threads: list[threading.Thread] = []

    @property
    def running(self) -> bool:
        return any(thread.is_alive() for thread in self._threads)

    def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._threads = []
        for index in range(self._workers):
            dispatcher = self._dispatcher_factory(index)
            thread = threading.Thread(
                target=self._run,
                args=(dispatcher,),
                name=f"notification-dispatcher-{index}",
                daemon=True,
            )
            self._threads.append(thread)
            thread.start()
        logger.info("Started %s notification dispatcher thread(s)", self._workers)

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop_event.set()
        for thread in self._threads:
            thread.join(timeout)
        logger.info("Notification dispatcher threads stopped")

    def wait(self) -> None:
        """Block until :meth:`stop` is called from another thread or a signal."""

        while not self._stop_event.wait(self._poll_interval):
            pass

    def _run(self, dispatcher: NotificationDispatcher) -> None:
        while not self._stop_event.is_set():
            try:
                reports = dispatcher.run_cycle()
            except SQLAlchemyError:
                logger.exception("Dispatch cycle for %s failed", dispatcher.worker_id)
                reports = []
            if reports:
                continue
            self._stop_event.wait(self._idle_wait(dispatcher))

    def _idle_wait(self, dispatcher: NotificationDispatcher) -> float:
        limiter = dispatcher.rate_limiter
        if limiter.remaining == 0:
            return max(limiter.seconds_until_reset(), _MIN_WAIT_SECONDS)
        return self._poll_interval


def build_worker_pool(
    settings: Settings, session_factory: sessionmaker[Session]
) -> DispatchWorkerPool:
    """Return a pool whose dispatchers share one rate limiter and adapter set."""

    channels = build_channels(settings)
    rate_limiter = build_rate_limiter(settings)

    def _factory(index: int) -> NotificationDispatcher:
        return NotificationDispatcher.from_settings(
            session_factory,
            settings,
            channels=channels,
            rate_limiter=rate_limiter,
            worker_id=f"{default_worker_id()}-{index}",
        )

    return DispatchWorkerPool(
        _factory,
        workers=settings.dispatcher_workers,
        poll_interval=settings.dispatcher_poll_interval_seconds,
    )


__all__ = ["DispatchWorkerPool", "build_worker_pool"]
