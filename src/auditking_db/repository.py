"""Async CRUD repositories for templates, inspections and sites.

All public methods accept an ``AsyncSession`` so the caller controls
transaction boundaries.  Repositories only ``flush``; the request-scoped
``get_db`` dependency (or the CLI) commits.

Business rules (who may author, when an inspection may be submitted,
normalization of the ``definition`` column) live in the SDK layer.
Structural invariants such as "a submitted inspection has a timestamp"
are enforced by DB constraints.
"""

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from auditking_db.models.enums import InspectionStatus
from auditking_db.models.inspection import Inspection
from auditking_db.models.site import Site
from auditking_db.models.template import Template


class TemplateRepository:
    """Async read/write operations on the ``templates`` table."""

    async def create(
        self,
        db: AsyncSession,
        *,
        name: str,
        definition: dict[str, Any],
        description: str | None = None,
        site_id: uuid.UUID | None = None,
        is_published: bool = False,
        logo_data_url: str | None = None,
        created_by: str | None = None,
    ) -> Template:
        """Insert a new template row and return it."""
        row = Template(
            name=name,
            description=description,
            site_id=site_id,
            is_published=is_published,
            logo_data_url=logo_data_url,
            definition=definition,
            created_by=created_by,
        )
        db.add(row)
        await db.flush()  # Populate id and timestamps
        return row

    async def get_by_id(self, db: AsyncSession, template_id: uuid.UUID) -> Template | None:
        return await db.get(Template, template_id)

    async def list_all(
        self,
        db: AsyncSession,
        *,
        site_id: uuid.UUID | None = None,
        published_only: bool = False,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Template]:
        """List templates, most recently updated first."""
        stmt = select(Template)
        if site_id is not None:
            stmt = stmt.where(Template.site_id == site_id)
        if published_only:
            stmt = stmt.where(Template.is_published.is_(True))
        stmt = stmt.order_by(Template.updated_at.desc()).limit(limit).offset(offset)
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def update(
        self, db: AsyncSession, row: Template, **fields: Any
    ) -> Template:
        """Assign the given column values and flush."""
        for name, value in fields.items():
            setattr(row, name, value)
        row.updated_at = datetime.now(timezone.utc)
        await db.flush()
        return row

    async def delete(self, db: AsyncSession, row: Template) -> None:
        await db.delete(row)
        await db.flush()


class InspectionRepository:
    """Async read/write operations on the ``inspections`` table."""

    async def create(
        self,
        db: AsyncSession,
        *,
        template_id: uuid.UUID | None,
        template_name: str,
        items: list[dict[str, Any]],
        site_id: uuid.UUID | None = None,
        site_name: str | None = None,
        owner_user_id: str | None = None,
        owner_name: str | None = None,
        score: int | None = None,
    ) -> Inspection:
        """Insert a new ``in_progress`` inspection and return it."""
        row = Inspection(
            template_id=template_id,
            template_name=template_name,
            site_id=site_id,
            site_name=site_name,
            status=InspectionStatus.IN_PROGRESS,
            items=items,
            owner_user_id=owner_user_id,
            owner_name=owner_name,
            score=score,
        )
        db.add(row)
        await db.flush()
        return row

    async def get_by_id(self, db: AsyncSession, inspection_id: uuid.UUID) -> Inspection | None:
        return await db.get(Inspection, inspection_id)

    async def get_many(
        self, db: AsyncSession, inspection_ids: list[uuid.UUID]
    ) -> list[Inspection]:
        """Fetch several inspections, oldest first; unknown ids are ignored."""
        if not inspection_ids:
            return []
        stmt = (
            select(Inspection)
            .where(Inspection.id.in_(inspection_ids))
            .order_by(Inspection.started_at.asc())
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def list_all(
        self,
        db: AsyncSession,
        *,
        status: InspectionStatus | None = None,
        site_id: uuid.UUID | None = None,
        template_id: uuid.UUID | None = None,
        owner_user_id: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Inspection]:
        """List inspections, most recently started first."""
        stmt = select(Inspection)
        if status is not None:
            stmt = stmt.where(Inspection.status == status)
        if site_id is not None:
            stmt = stmt.where(Inspection.site_id == site_id)
        if template_id is not None:
            stmt = stmt.where(Inspection.template_id == template_id)
        if owner_user_id is not None:
            stmt = stmt.where(Inspection.owner_user_id == owner_user_id)
        stmt = stmt.order_by(Inspection.started_at.desc()).limit(limit).offset(offset)
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def save_items(
        self,
        db: AsyncSession,
        row: Inspection,
        items: list[dict[str, Any]],
        score: int | None,
    ) -> Inspection:
        """Replace the whole answer list and the derived score."""
        # New list object so SQLAlchemy detects the JSONB change
        row.items = list(items)
        row.score = score
        row.updated_at = datetime.now(timezone.utc)
        await db.flush()
        return row

    async def submit(
        self,
        db: AsyncSession,
        row: Inspection,
        items: list[dict[str, Any]],
        score: int | None,
    ) -> Inspection:
        """Mark an inspection as submitted with its final answers and score.

        The CHECK constraint ``ck_submitted_has_timestamp`` enforces that
        ``submitted_at`` is set whenever status is submitted.
        """
        now = datetime.now(timezone.utc)
        row.items = list(items)
        row.score = score
        row.status = InspectionStatus.SUBMITTED
        row.submitted_at = now
        row.updated_at = now
        await db.flush()
        return row

    async def delete(self, db: AsyncSession, row: Inspection) -> None:
        await db.delete(row)
        await db.flush()


class SiteRepository:
    """Async read/write operations on the ``sites`` table."""

    async def create(
        self,
        db: AsyncSession,
        *,
        name: str,
        code: str | None = None,
        description: str | None = None,
    ) -> Site:
        row = Site(name=name, code=code, description=description)
        db.add(row)
        await db.flush()
        return row

    async def get_by_id(self, db: AsyncSession, site_id: uuid.UUID) -> Site | None:
        return await db.get(Site, site_id)

    async def list_all(self, db: AsyncSession) -> list[Site]:
        """All sites, alphabetically."""
        result = await db.execute(select(Site).order_by(Site.name.asc()))
        return list(result.scalars().all())

    async def update(self, db: AsyncSession, row: Site, **fields: Any) -> Site:
        for name, value in fields.items():
            setattr(row, name, value)
        await db.flush()
        return row

    async def delete(self, db: AsyncSession, row: Site) -> None:
        await db.delete(row)
        await db.flush()
