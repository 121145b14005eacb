"""taskboard - task board with nested comments, projects and analytics."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from taskboard.core.config import settings
from taskboard.core.db_client import close_connection, init_db
from taskboard.core.logging import configure_logfire, instrument_fastapi
from taskboard.interface.api_router import router as api_router


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager."""
    # Configure logging first so startup logs are captured
    configure_logfire()

    await init_db()
    logger.info("Database initialized", extra={"path": settings.sqlite_db_path})
    yield
    await close_connection()


app = FastAPI(
    title="taskboard",
    description="Task board with nested comments, projects and analytics",
    version="0.1.0",
    lifespan=lifespan,
)

# Instrument FastAPI with Logfire
instrument_fastapi(app)

# Register routers
app.include_router(api_router)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "healthy"}, status_code=200)
