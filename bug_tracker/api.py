"""
FastAPI application for the bug tracker.
"""

from __future__ import annotations

import importlib.metadata
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any, Dict

import structlog
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .config import get_settings
from .db.base import get_db, init_database
from .logging_config import configure_logging
from .routes import bugs_router, register_error_handlers, users_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_format)
    logger.info("Starting Bug Tracker", environment=settings.environment)

    try:
        init_database()
    except Exception as e:
        logger.error("Failed to start application", error=str(e))
        raise

    yield

    logger.info("Shutting down Bug Tracker")


def create_app() -> FastAPI:
    """Build the application with routers, middleware and error handlers."""
    settings = get_settings()
    app = FastAPI(
        title=settings.app_name,
        description="Issue-tracking backend with role-based access control",
        version=importlib.metadata.version("bug-tracker"),
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    app.include_router(bugs_router)
    app.include_router(users_router)

    @app.get("/healthz", tags=["system"])
    def healthz(db: Session = Depends(get_db)) -> Dict[str, Any]:
        """Health check endpoint, including a database round trip."""
        try:
            db.execute(text("SELECT 1"))
            database = "ok"
        except SQLAlchemyError as e:
            logger.warning("Database health check failed", error=str(e))
            database = "unavailable"
        return {"status": "ok" if database == "ok" else "degraded", "database": database}

    @app.get("/version", tags=["system"])
    def version() -> Dict[str, str]:
        """Return the version of the application."""
        return {"version": importlib.metadata.version("bug-tracker")}

    return app


app = create_app()
