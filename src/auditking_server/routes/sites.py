"""Site endpoints — CRUD for the locations inspections are run at."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from auditking.models.answer import Actor
from auditking.models.views import SiteInfo
from auditking.service import InspectionService

from auditking_server.dependencies import get_actor, get_db, get_service

router = APIRouter(tags=["sites"])


class CreateSiteRequest(BaseModel):
    name: str
    code: str | None = None
    description: str | None = None


class UpdateSiteRequest(BaseModel):
    name: str | None = None
    code: str | None = None
    description: str | None = None


@router.get("/sites")
async def list_sites(
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
    service: InspectionService = Depends(get_service),
) -> list[SiteInfo]:
    return await service.list_sites(db)


@router.post("/sites", status_code=201)
async def create_site(
    body: CreateSiteRequest,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
    service: InspectionService = Depends(get_service),
) -> SiteInfo:
    return await service.create_site(db, actor, **body.model_dump())


@router.get("/sites/{site_id}")
async def get_site(
    site_id: str,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
    service: InspectionService = Depends(get_service),
) -> SiteInfo:
    return await service.get_site(db, site_id)


@router.patch("/sites/{site_id}")
async def update_site(
    site_id: str,
    body: UpdateSiteRequest,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
    service: InspectionService = Depends(get_service),
) -> SiteInfo:
    return await service.update_site(db, actor, site_id, **body.model_dump(exclude_unset=True))


@router.delete("/sites/{site_id}", status_code=204)
async def delete_site(
    site_id: str,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
    service: InspectionService = Depends(get_service),
) -> None:
    await service.delete_site(db, actor, site_id)
