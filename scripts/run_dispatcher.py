"""Run the notification dispatcher worker pool outside the API process."""

from __future__ import annotations

import argparse
import logging
import signal

from mint_alerts.config import get_settings
from mint_alerts.infrastructure.database import SessionLocal, engine, initialize_database
from mint_alerts.infrastructure.logging import configure_logging
from mint_alerts.infrastructure.queue import build_worker_pool

logger = logging.getLogger("mint_alerts.dispatcher")


def parse_args() -> argparse.Namespace:
    """Parse command line arguments for the dispatcher."""

    settings = get_settings()
    parser = argparse.ArgumentParser(
        description="Deliver queued notifications through push, email and in-app channels.",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=settings.dispatcher_workers,
        help=f"Number of dispatcher threads (default: {settings.dispatcher_workers})",
    )
    parser.add_argument(
        "--poll-interval",
        type=float,
        default=settings.dispatcher_poll_interval_seconds,
        help="Seconds to sleep when the queue is empty",
    )
    parser.add_argument(
        "--log-level",
        default=settings.log_level,
        help=f"Logging level (default: {settings.log_level})",
    )
    return parser.parse_args()


def main() -> None:
    """Start the worker pool and block until SIGINT or SIGTERM."""

    args = parse_args()
    configure_logging(args.log_level)

    settings = get_settings().model_copy(
        update={
            "dispatcher_workers": args.workers,
            "dispatcher_poll_interval_seconds": args.poll_interval,
        }
    )
    if args.workers < 1:
        raise SystemExit("--workers must be at least 1")

    initialize_database()
    pool = build_worker_pool(settings, SessionLocal)

    def _shutdown(signum, _frame) -> None:
        logger.info("Received signal %s; stopping dispatcher", signum)
        pool.stop()

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    pool.start()
    try:
        pool.wait()
    finally:
        pool.stop()
        engine.dispose()


if __name__ == "__main__":
    main()
