"""auditking_db — PostgreSQL persistence layer for Audit King.

ORM models, the async engine factory and the repositories used by the
SDK service layer, the FastAPI server and the export CLI.
"""

from auditking_db.engine import dispose_engine, get_engine, get_session_factory, session_scope
from auditking_db.models.enums import InspectionStatus
from auditking_db.models.inspection import Inspection
from auditking_db.models.site import Site
from auditking_db.models.template import Template
from auditking_db.repository import InspectionRepository, SiteRepository, TemplateRepository

__all__ = [
    "Inspection",
    "InspectionRepository",
    "InspectionStatus",
    "Site",
    "SiteRepository",
    "Template",
    "TemplateRepository",
    "dispose_engine",
    "get_engine",
    "get_session_factory",
    "session_scope",
]
