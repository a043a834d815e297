"""Inspection endpoints — start, read, answer, submit, delete.

Answers are sent as patches (``AnswerUpdate``); the server reconciles them
against the current template, stamps provenance from the caller's identity
headers, rescores and stores the whole answer list.
"""

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from auditking.models.answer import Actor, AnswerUpdate
from auditking.models.views import InspectionInfo
from auditking.service import InspectionService

from auditking_server.config import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT
from auditking_server.dependencies import get_actor, get_db, get_service

router = APIRouter(tags=["inspections"])


# ------------------------------------------------------------------
# Request models
# ------------------------------------------------------------------

class StartInspectionRequest(BaseModel):
    """Body for POST /inspections."""
    template_id: str
    site_id: str | None = None


class AnswersRequest(BaseModel):
    """Body for PUT /inspections/{id}/answers and POST .../complete."""
    answers: list[AnswerUpdate] = []


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------

@router.post("/inspections", status_code=201)
async def start_inspection(
    body: StartInspectionRequest,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
    service: InspectionService = Depends(get_service),
) -> InspectionInfo:
    """Start an inspection from a template, owned by the caller."""
    return await service.start_inspection(db, actor, body.template_id, site_id=body.site_id)


@router.get("/inspections")
async def list_inspections(
    status: str | None = Query(None),
    site_id: str | None = Query(None),
    template_id: str | None = Query(None),
    mine: bool = Query(False, description="Only inspections owned by the caller"),
    limit: int = Query(DEFAULT_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT),
    offset: int = Query(0, ge=0),
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
    service: InspectionService = Depends(get_service),
) -> list[InspectionInfo]:
    """List inspections, most recently started first."""
    return await service.list_inspections(
        db,
        status=status,
        site_id=site_id,
        template_id=template_id,
        owner_user_id=actor.user_id if mine else None,
        limit=limit,
        offset=offset,
    )


@router.get("/inspections/{inspection_id}")
async def get_inspection(
    inspection_id: str,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
    service: InspectionService = Depends(get_service),
) -> InspectionInfo:
    """Inspection with answers reconciled against the current template."""
    return await service.get_inspection(db, inspection_id)


@router.put("/inspections/{inspection_id}/answers")
async def save_answers(
    inspection_id: str,
    body: AnswersRequest,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
    service: InspectionService = Depends(get_service),
) -> InspectionInfo:
    """Apply answer patches.  Returns 409 once the inspection is submitted."""
    return await service.save_answers(db, actor, inspection_id, body.answers)


@router.post("/inspections/{inspection_id}/complete")
async def complete_inspection(
    inspection_id: str,
    body: AnswersRequest | None = None,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
    service: InspectionService = Depends(get_service),
) -> InspectionInfo:
    """Submit the inspection.

    Returns 422 with the labels of unanswered required questions when the
    inspection cannot be submitted yet.
    """
    answers = body.answers if body is not None else []
    return await service.complete_inspection(db, actor, inspection_id, answers)


@router.delete("/inspections/{inspection_id}", status_code=204)
async def delete_inspection(
    inspection_id: str,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
    service: InspectionService = Depends(get_service),
) -> None:
    await service.delete_inspection(db, actor, inspection_id)
