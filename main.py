from contextlib import asynccontextmanager

from anyio.lowlevel import current_token
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mint_alerts.config import get_settings
from mint_alerts.infrastructure.database import SessionLocal, engine, initialize_database
from mint_alerts.infrastructure.logging import configure_logging
from mint_alerts.infrastructure.notifications import notification_manager
from mint_alerts.infrastructure.queue import build_worker_pool
from mint_alerts.interfaces.api.routes import register_routes


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Prepare the database and optional dispatcher, release them on shutdown."""

    settings = get_settings()
    configure_logging(settings.log_level)
    initialize_database()
    notification_manager.bind_token(current_token())

    pool = build_worker_pool(settings, SessionLocal) if settings.dispatcher_enabled else None
    if pool is not None:
        pool.start()
    app.state.worker_pool = pool
    try:
        yield
    finally:
        if pool is not None:
            pool.stop()
        notification_manager.bind_token(None)
        engine.dispose()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    settings = get_settings()
    app = FastAPI(title="Mint Alerts", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_routes(app)
    return app


app = create_app()
