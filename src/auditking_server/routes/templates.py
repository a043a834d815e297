"""Template endpoints — CRUD plus AI import from document text.

Reads are open to any identified user; writes require the ``admin`` or
``manager`` role (enforced by the service).
"""

from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from auditking.constants import AI_MAX_QUESTIONS_PER_SECTION, AI_MAX_SECTIONS
from auditking.models.answer import Actor
from auditking.models.views import TemplateDraft, TemplateInfo
from auditking.service import InspectionService

from auditking_server.config import MAX_PAGE_LIMIT
from auditking_server.dependencies import get_actor, get_db, get_service

router = APIRouter(tags=["templates"])


# ------------------------------------------------------------------
# Request models
# ------------------------------------------------------------------

class CreateTemplateRequest(BaseModel):
    """Body for POST /templates.  ``definition`` may be any historical shape."""
    name: str
    description: str | None = None
    site_id: str | None = None
    is_published: bool = False
    logo_data_url: str | None = None
    definition: Any = None


class UpdateTemplateRequest(BaseModel):
    """Body for PATCH /templates/{id}; omitted fields are left unchanged."""
    name: str | None = None
    description: str | None = None
    site_id: str | None = None
    is_published: bool | None = None
    logo_data_url: str | None = None
    definition: Any = None


class ImportTemplateRequest(BaseModel):
    """Body for POST /templates/import."""
    model_config = ConfigDict(populate_by_name=True)

    text: str
    max_sections: int = Field(AI_MAX_SECTIONS, alias="maxSections", ge=1)
    max_questions_per_section: int = Field(
        AI_MAX_QUESTIONS_PER_SECTION, alias="maxQuestionsPerSection", ge=1,
    )


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------

@router.get("/templates")
async def list_templates(
    site_id: str | None = Query(None),
    published_only: bool = Query(False),
    limit: int = Query(MAX_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT),
    offset: int = Query(0, ge=0),
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
    service: InspectionService = Depends(get_service),
) -> list[TemplateInfo]:
    """List templates, most recently updated first."""
    return await service.list_templates(
        db, site_id=site_id, published_only=published_only, limit=limit, offset=offset,
    )


@router.post("/templates", status_code=201)
async def create_template(
    body: CreateTemplateRequest,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
    service: InspectionService = Depends(get_service),
) -> TemplateInfo:
    """Create a template; without a definition it starts from the default starter."""
    return await service.create_template(db, actor, **body.model_dump())


@router.post("/templates/import")
async def import_template(
    body: ImportTemplateRequest,
    actor: Actor = Depends(get_actor),
    service: InspectionService = Depends(get_service),
) -> TemplateDraft:
    """Draft a template from document text with AI.  The draft is not saved.

    Returns 502 when the AI service fails.
    """
    return await service.import_template(
        actor,
        body.text,
        max_sections=body.max_sections,
        max_questions_per_section=body.max_questions_per_section,
    )


@router.get("/templates/{template_id}")
async def get_template(
    template_id: str,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
    service: InspectionService = Depends(get_service),
) -> TemplateInfo:
    return await service.get_template(db, template_id)


@router.patch("/templates/{template_id}")
async def update_template(
    template_id: str,
    body: UpdateTemplateRequest,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
    service: InspectionService = Depends(get_service),
) -> TemplateInfo:
    return await service.update_template(
        db, actor, template_id, **body.model_dump(exclude_unset=True),
    )


@router.delete("/templates/{template_id}", status_code=204)
async def delete_template(
    template_id: str,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
    service: InspectionService = Depends(get_service),
) -> None:
    """Delete a template (admin only).  Inspections keep their data."""
    await service.delete_template(db, actor, template_id)
