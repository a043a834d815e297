"""Application factory and CLI entry point.

``create_app()`` builds the FastAPI application with:
  - Lifespan handler that loads the starter library and builds the service
  - CORS middleware
  - Global exception handlers (SDK errors → 4xx/502)
  - All API routes mounted under ``/api/v1``
  - A ``/health`` endpoint for readiness probes

The ``cli()`` function is the ``auditking-server`` console-script entry point.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from auditking.extraction import ExtractionError, OpenAITemplateExtractor
from auditking.library import TemplateLibrary
from auditking.report import ReportRenderer
from auditking.service import InspectionIncompleteError, InspectionService
from auditking_db.engine import dispose_engine, get_engine

from auditking_server.config import ServerSettings, load_settings
from auditking_server.errors import (
    extraction_error_handler,
    generic_error_handler,
    incomplete_handler,
    permission_error_handler,
    value_error_handler,
)
from auditking_server.routes import register_routes

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build shared resources at startup, dispose the DB pool on shutdown."""
    settings: ServerSettings = app.state.settings

    library = TemplateLibrary(library_dir=settings.library_dir)
    library.load()

    extractor = None
    if settings.openai_api_key:
        extractor = OpenAITemplateExtractor(
            settings.openai_api_key,
            model=settings.openai_model,
            base_url=settings.openai_base_url,
            timeout=settings.ai_timeout_seconds,
        )
        logger.info("AI template import enabled (model=%s)", settings.openai_model)
    else:
        logger.warning("OPENAI_API_KEY not set; AI template import is disabled")

    app.state.library = library
    app.state.service = InspectionService(
        library=library, extractor=extractor, renderer=ReportRenderer(),
    )

    yield

    await dispose_engine()
    logger.info("Database engine disposed")


def create_app(settings: ServerSettings | None = None) -> FastAPI:
    """Build and return the configured FastAPI application."""
    if settings is None:
        settings = load_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = FastAPI(
        title="Audit King API Server",
        description="REST API for inspection templates, inspections and reports",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition"],
    )

    # Most specific first; Starlette resolves handlers along the exception MRO
    app.add_exception_handler(InspectionIncompleteError, incomplete_handler)
    app.add_exception_handler(ValueError, value_error_handler)
    app.add_exception_handler(PermissionError, permission_error_handler)
    app.add_exception_handler(ExtractionError, extraction_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)

    @app.get("/health")
    async def health() -> dict:
        """Readiness probe: database connectivity plus optional features."""
        service: InspectionService | None = getattr(app.state, "service", None)
        features = {
            "ai_import": bool(service is not None and service.ai_import_enabled),
            "starter_templates": len(app.state.library.keys) if hasattr(app.state, "library") else 0,
        }
        try:
            async with get_engine().connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception as exc:
            logger.error("Health check failed: %s", exc)
            return {"status": "error", "detail": "database unavailable", **features}
        return {"status": "ok", **features}

    register_routes(app)
    return app


# Module-level ASGI export (for uvicorn auditking_server.app:app)
app = create_app()


def cli() -> None:
    """Console-script entry point: ``auditking-server``."""
    import uvicorn

    settings = load_settings()
    uvicorn.run(
        "auditking_server.app:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=False,
    )
