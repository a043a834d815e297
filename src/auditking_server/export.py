"""Bulk PDF export CLI — ``auditking-export``.

Renders inspections to PDF files in an output directory, either from the
database or from a local JSON store directory (``ak_templates.json`` /
``ak_inspections.json``, as written by ``JsonFileStore``).

Examples::

    # Every submitted inspection in the database
    auditking-export --out reports/

    # Selected inspections, with logos and section images
    auditking-export --out reports/ --id 3f2c... --id 9a41... --with-images

    # Inspections kept in a local store directory
    auditking-export --out reports/ --store-dir ./data
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.table import Table

from auditking.report import RenderedReport, ReportError, ReportRenderer
from auditking.storage import JsonFileStore, LocalWorkspace

logger = logging.getLogger(__name__)


def _write(reports: list[RenderedReport], out_dir: Path) -> list[RenderedReport]:
    out_dir.mkdir(parents=True, exist_ok=True)
    for report in reports:
        (out_dir / report.filename).write_bytes(report.content)
        logger.info("Wrote %s (%d pages)", report.filename, report.page_count)
    return reports


def _print_summary(reports: list[RenderedReport], out_dir: Path) -> None:
    console = Console()
    if not reports:
        console.print("[yellow]![/] No reports exported")
        return
    table = Table(title=f"Exported to {out_dir}")
    table.add_column("File")
    table.add_column("Pages", justify="right")
    table.add_column("Questions", justify="right")
    for report in reports:
        table.add_row(report.filename, str(report.page_count), str(len(report.layout)))
    console.print(table)
    console.print(f"[green]\u2713[/] {len(reports)} reports")


async def export_from_db(
    out_dir: Path,
    *,
    inspection_ids: list[str] | None = None,
    status: str | None = "submitted",
    with_images: bool = False,
    limit: int = 500,
) -> list[RenderedReport]:
    """Export inspections stored in the database; returns the written reports."""
    # Lazy imports to avoid loading DB machinery for the local mode
    from auditking.service import InspectionService
    from auditking_db.engine import dispose_engine, session_scope

    service = InspectionService()
    try:
        async with session_scope() as db:
            if not inspection_ids:
                listed = await service.list_inspections(db, status=status, limit=limit)
                inspection_ids = [i.id for i in listed]

            if with_images:
                reports = []
                for inspection_id in inspection_ids:
                    try:
                        reports.append(await service.export_report(db, inspection_id))
                    except ValueError as exc:
                        logger.warning("Skipping inspection %s: %s", inspection_id, exc)
            else:
                reports = await service.export_reports(db, inspection_ids)
        return _write(reports, out_dir)
    finally:
        await dispose_engine()


def export_from_store(
    store_dir: Path,
    out_dir: Path,
    *,
    inspection_ids: list[str] | None = None,
    status: str | None = "submitted",
    with_images: bool = False,
) -> list[RenderedReport]:
    """Export inspections kept in a local JSON store directory."""
    workspace = LocalWorkspace(JsonFileStore(store_dir))
    templates = {t.id: t for t in workspace.load_templates()}
    renderer = ReportRenderer()

    wanted = set(inspection_ids or [])
    pairs = []
    for inspection in workspace.load_inspections():
        if wanted and inspection.id not in wanted:
            continue
        if not wanted and status and inspection.status != status:
            continue
        template = templates.get(inspection.template_id or "")
        if template is None:
            logger.warning("Skipping inspection %s: template not found", inspection.id)
            continue
        pairs.append((template.definition, inspection, template.logo_data_url))

    if not with_images:
        reports = renderer.render_batch((d, i) for d, i, _ in pairs)
    else:
        reports = []
        for definition, inspection, logo in pairs:
            try:
                reports.append(renderer.render_inspection(definition, inspection, logo_data_url=logo))
            except ReportError as exc:
                logger.warning("Skipping inspection %s: %s", inspection.id, exc)
    return _write(reports, out_dir)


def cli() -> None:
    """Console-script entry point: ``auditking-export``."""
    parser = argparse.ArgumentParser(
        prog="auditking-export",
        description="Render inspections to PDF files.",
    )
    parser.add_argument("--out", required=True, type=Path, help="Output directory")
    parser.add_argument(
        "--id",
        dest="ids",
        action="append",
        default=None,
        help="Inspection id to export (repeatable). Default: all matching --status",
    )
    parser.add_argument(
        "--status",
        default="submitted",
        help="Status filter when no --id is given (default: submitted; empty for all)",
    )
    parser.add_argument(
        "--store-dir",
        type=Path,
        default=None,
        help="Read from a local JSON store directory instead of the database",
    )
    parser.add_argument(
        "--with-images",
        action="store_true",
        default=False,
        help="Embed template logos and section images (single-report layout)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: INFO)",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    status = args.status or None
    if args.store_dir is not None:
        reports = export_from_store(
            args.store_dir, args.out,
            inspection_ids=args.ids, status=status, with_images=args.with_images,
        )
    else:
        reports = asyncio.run(
            export_from_db(
                args.out, inspection_ids=args.ids, status=status, with_images=args.with_images,
            )
        )

    _print_summary(reports, args.out)
    sys.exit(0)
