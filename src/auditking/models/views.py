"""Public views returned to API callers.

These models are intentionally decoupled from the ORM models in
``auditking_db`` so that API consumers never see database internals.
Identifiers are exposed as strings.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from auditking.models.answer import AnswerRow
from auditking.models.question import Definition


class TemplateInfo(BaseModel):
    """A template row with its normalized definition."""

    id: str
    name: str
    description: Optional[str] = None
    site_id: Optional[str] = None
    is_published: bool = False
    logo_data_url: Optional[str] = None
    definition: Definition
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TemplateDraft(BaseModel):
    """An unsaved template, e.g. produced by AI extraction."""

    name: str
    description: Optional[str] = None
    definition: Definition


class InspectionInfo(BaseModel):
    """Public view of an inspection and its reconciled answer rows."""

    id: str
    template_id: Optional[str] = None
    template_name: str
    site_id: Optional[str] = None
    site_name: Optional[str] = None
    status: str
    started_at: datetime
    submitted_at: Optional[datetime] = None
    score: Optional[int] = None
    items: list[AnswerRow] = []
    owner_user_id: Optional[str] = None
    owner_name: Optional[str] = None


class SiteInfo(BaseModel):
    """A site that templates and inspections can reference."""

    id: str
    name: str
    code: Optional[str] = None
    description: Optional[str] = None
    created_at: Optional[datetime] = None
