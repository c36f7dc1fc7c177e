from fastapi import FastAPI

from .budgets import router as budgets_router
from .notifications import router as notifications_router
from .recipients import router as recipients_router
from .webhooks import router as webhooks_router


def register_routes(app: FastAPI) -> None:
    """Register every API router on the FastAPI application."""

    app.include_router(notifications_router)
    app.include_router(webhooks_router)
    app.include_router(budgets_router)
    app.include_router(recipients_router)
