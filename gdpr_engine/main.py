"""FastAPI application entry point — wires everything together.

Usage:
    python -m gdpr_engine.main
"""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI

from gdpr_engine.api.gdpr import register_error_handlers, router
from gdpr_engine.config import settings
from gdpr_engine.db.engine import async_session_factory, db_lifespan
from gdpr_engine.security.retention import retention_worker
from gdpr_engine.security.service import create_consent_service

# ── Logging setup ────────────────────────────────────────────────────

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    stream=sys.stdout,
)
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
)

logger = logging.getLogger(__name__)

# ── FastAPI lifespan ─────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application startup and shutdown lifecycle."""
    logger.info("Starting GDPR engine (env=%s)", settings.environment)

    async with db_lifespan():
        logger.info("Database initialized")

        app.state.consent_service = create_consent_service(async_session_factory, settings)
        retention_task = asyncio.create_task(
            retention_worker(async_session_factory, settings.gdpr.deletion_job_retention_days)
        )

        try:
            yield
        finally:
            logger.info("Shutting down GDPR engine...")
            retention_task.cancel()
            try:
                await retention_task
            except asyncio.CancelledError:
                pass

    logger.info("GDPR engine shutdown complete")


# ── FastAPI app ──────────────────────────────────────────────────────

app = FastAPI(
    title="Sapphire GDPR API",
    description="Consent management, data export, and right to erasure",
    version="0.1.0",
    lifespan=lifespan,
)
app.include_router(router)
register_error_handlers(app)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok", "environment": settings.environment}


# ── Entry point ──────────────────────────────────────────────────────

if __name__ == "__main__":
    uvicorn.run(
        "gdpr_engine.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )
