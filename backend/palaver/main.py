"""Palaver API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map PalaverError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Store loaded on startup via lifespan; a corrupt record aborts startup

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from palaver.api.error_handlers import register_error_handlers
from palaver.api.routes import auth, debug, health, messages, users
from palaver.config import get_settings
from palaver.core.errors import PersistenceFailureError
from palaver.infrastructure.observability import setup_logging
from palaver.services.message_store import init_store
from palaver.services.session_directory import init_session_directory

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    try:
        await init_store(settings)
    except PersistenceFailureError as e:
        logger.critical(
            f"Palaver API refusing to start: {e.message}",
            extra={"error_code": e.code, "record": e.record},
        )
        raise
    init_session_directory(settings.session_max_age_seconds)
    logger.info("Palaver API started")
    yield
    logger.info("Palaver API shutting down")


app = FastAPI(title="Palaver API", version="1.0.0", lifespan=lifespan)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(messages.router)
app.include_router(debug.router)

register_error_handlers(app)
