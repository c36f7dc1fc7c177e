"""Durable notification queue: rate limiting, dispatching and workers."""

from .dispatcher import (
    DispatchReport,
    NotificationDispatcher,
    build_rate_limiter,
    default_worker_id,
)
from .rate_limiter import FixedWindowRateLimiter
from .worker import DispatchWorkerPool, build_worker_pool

__all__ = [
    "DispatchReport",
    "DispatchWorkerPool",
    "FixedWindowRateLimiter",
    "NotificationDispatcher",
    "build_rate_limiter",
    "build_worker_pool",
    "default_worker_id",
]
