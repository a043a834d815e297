"""Route registration — mounts all routers under ``/api/v1``."""

from fastapi import FastAPI

from auditking_server.routes.inspections import router as inspections_router
from auditking_server.routes.reference import router as reference_router
from auditking_server.routes.reports import router as reports_router
from auditking_server.routes.sites import router as sites_router
from auditking_server.routes.templates import router as templates_router

API_PREFIX = "/api/v1"


def register_routes(app: FastAPI) -> None:
    """Include all sub-routers under the versioned API prefix."""
    app.include_router(templates_router, prefix=API_PREFIX)
    app.include_router(reports_router, prefix=API_PREFIX)
    app.include_router(inspections_router, prefix=API_PREFIX)
    app.include_router(sites_router, prefix=API_PREFIX)
    app.include_router(reference_router, prefix=API_PREFIX)
