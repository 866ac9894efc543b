"""
FastAPI application for the practice engine.

Provides REST API for:
- Daily session quota per subscription tier
- Practice session lifecycle (start, resume, answer, navigate, complete)
- Session history with cascading filters

Run with:
    uvicorn practice_engine.api.main:create_app --factory --port 8100
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from config import Settings, get_settings
from practice_engine import __version__
from practice_engine.api.store_registry import StoreRegistry
from practice_engine.practice.gateway import ContentCatalog, PersistenceGateway, RewardFunction
from practice_engine.practice.limits import SessionLimitGate


def create_app(
    gateway: Optional[PersistenceGateway] = None,
    catalog: Optional[ContentCatalog] = None,
    reward_function: Optional[RewardFunction] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """
    Build the app around a gateway and catalog.

    Without explicit collaborators the PostgreSQL implementations are used.
    `reward_function` turns a completion summary into XP/coins; when omitted,
    completed sessions carry no rewards.
    """
    settings = settings or get_settings()
    uses_database = gateway is None or catalog is None
    if uses_database:
        from practice_engine.db import SqlContentCatalog, SqlPersistenceGateway

        gateway = gateway or SqlPersistenceGateway()
        catalog = catalog or SqlContentCatalog()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler for startup/shutdown events."""
        logger.info("Starting practice engine service...")
        if uses_database:
            from practice_engine.db.database import init_db

            init_db()
        logger.info(f"Service started on {settings.api_host}:{settings.api_port}")

        yield

        logger.info("Shutting down practice engine service...")
        app.state.stores.clear()
        if uses_database:
            from practice_engine.db.database import dispose_async_engine

            await dispose_async_engine()

    app = FastAPI(
        title="Practice Engine",
        description="Timed practice sessions over a question catalog, with daily quotas per subscription tier.",
        version=__version__,
        lifespan=lifespan,
    )

    # CORS middleware for local development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Restrict in production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.gateway = gateway
    app.state.catalog = catalog
    app.state.reward_function = reward_function
    app.state.limit_gate = SessionLimitGate(gateway, settings)
    app.state.stores = StoreRegistry(settings.store_idle_ttl_seconds, settings.max_active_stores)

    # ========================================
    # Health & Status Endpoints
    # ========================================

    @app.get("/", tags=["Health"])
    def root() -> dict[str, str]:
        """Root endpoint returning service info."""
        return {"service": "practice-engine", "version": __version__, "status": "ok"}

    @app.get("/health", tags=["Health"])
    def health_check() -> dict[str, Any]:
        """Health check with an actual database round trip when one is configured."""
        if uses_database:
            from practice_engine.db.database import check_connection

            db_status = "ok" if check_connection() else "error"
        else:
            db_status = "in_memory"

        return {
            "status": "unhealthy" if db_status == "error" else "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "components": {"database": db_status},
            "active_sessions": len(app.state.stores),
            "config": settings.get_limit_config(),
        }

    from practice_engine.api.routers import practice_router

    app.include_router(practice_router.router, prefix="/api/practice", tags=["Practice"])
    return app
