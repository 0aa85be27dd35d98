"""FastAPI application instance."""
from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from finac.ai_chat import configure_dependencies, router as chat_router
from finac.core import get_logger
from finac.core.logger import init_logging, shutdown_logging
from finac.integration import get_current_user_id, get_db_session

LOGGER = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_logging()
    LOGGER.info("Finac AI Assistant starting")
    yield
    LOGGER.info("Finac AI Assistant stopping")
    shutdown_logging()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(title="Finac AI Assistant", version="0.1.0", lifespan=lifespan)

    configure_dependencies(get_db=get_db_session, get_user=get_current_user_id)
    app.include_router(chat_router)
    LOGGER.info("AI chat integrated successfully")

    LOGGER.info("FastAPI application initialised")
    return app


app = create_app()
