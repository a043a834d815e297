"""ORM models for auditking_db."""

from auditking_db.models.base import Base
from auditking_db.models.enums import InspectionStatus
from auditking_db.models.inspection import Inspection
from auditking_db.models.site import Site
from auditking_db.models.template import Template

__all__ = ["Base", "InspectionStatus", "Inspection", "Site", "Template"]
