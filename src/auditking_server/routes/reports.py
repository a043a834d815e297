"""Report endpoints — PDF export of one inspection or a zip of many."""

import io
import zipfile

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from auditking.models.answer import Actor
from auditking.report import ReportError
from auditking.service import InspectionService

from auditking_server.dependencies import get_actor, get_db, get_service

router = APIRouter(tags=["reports"])


class ExportRequest(BaseModel):
    """Body for POST /inspections/export."""
    inspection_ids: list[str] = Field(..., min_length=1)


def _attachment(filename: str) -> dict[str, str]:
    return {"Content-Disposition": f'attachment; filename="{filename}"'}


@router.post("/inspections/export")
async def export_inspections(
    body: ExportRequest,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
    service: InspectionService = Depends(get_service),
) -> Response:
    """Bulk export: one text-only PDF per inspection, bundled as a zip."""
    reports = await service.export_reports(db, body.inspection_ids)
    if not reports:
        raise ReportError("Nothing to export for the selected inspections")

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for report in reports:
            archive.writestr(report.filename, report.content)
    return Response(
        content=buffer.getvalue(),
        media_type="application/zip",
        headers=_attachment("inspections.zip"),
    )


@router.get("/inspections/{inspection_id}/report")
async def inspection_report(
    inspection_id: str,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
    service: InspectionService = Depends(get_service),
) -> Response:
    """Single-inspection PDF with the template logo and section images."""
    report = await service.export_report(db, inspection_id)
    return Response(
        content=report.content,
        media_type="application/pdf",
        headers=_attachment(report.filename),
    )
