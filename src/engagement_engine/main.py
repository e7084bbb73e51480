"""Main entry point for the engagement engine API."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from engagement_engine.api.v1 import (
    audit_router,
    engagement_router,
    moderation_router,
    payments_router,
    posts_router,
    pricing_router,
)
from engagement_engine.core.settings import settings
from engagement_engine.services.notifications import get_notifier
from engagement_engine.services.view_ledger import LedgerMaintenanceWorker

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Engagement tracking, bot filtering and revenue accounting for posts",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(posts_router, prefix="/api/v1")
app.include_router(engagement_router, prefix="/api/v1")
app.include_router(moderation_router, prefix="/api/v1")
app.include_router(payments_router, prefix="/api/v1")
app.include_router(pricing_router, prefix="/api/v1")
app.include_router(audit_router, prefix="/api/v1")


@app.on_event("startup")
async def on_startup() -> None:
    if settings.ledger_maintenance_enabled:
        worker = LedgerMaintenanceWorker()
        await worker.start()
        app.state.ledger_worker = worker
        logger.info("Ledger maintenance worker started")
    else:
        app.state.ledger_worker = None


@app.on_event("shutdown")
async def on_shutdown() -> None:
    worker: LedgerMaintenanceWorker | None = getattr(app.state, "ledger_worker", None)
    if worker:
        await worker.stop()
    await get_notifier().close()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("engagement_engine.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
