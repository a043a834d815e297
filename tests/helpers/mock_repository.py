"""In-memory stand-ins for the ORM rows and repositories.

Each mock repository mirrors the real one's interface and side effects
(ids, timestamps, status transitions) so the service behaves identically
without a database.  Install them on a service with :func:`install`.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from auditking_db.models.enums import InspectionStatus

_EPOCH = datetime(2026, 10, 1, 8, 0, tzinfo=timezone.utc)


def _now():
    return datetime.now(timezone.utc)


@dataclass
class MockTemplateRow:
    name: str
    definition: dict
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    description: str | None = None
    site_id: uuid.UUID | None = None
    is_published: bool = False
    logo_data_url: str | None = None
    created_by: str | None = None
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)


@dataclass
class MockInspectionRow:
    template_id: uuid.UUID | None
    template_name: str
    items: list
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    site_id: uuid.UUID | None = None
    site_name: str | None = None
    status: InspectionStatus = InspectionStatus.IN_PROGRESS
    score: int | None = None
    owner_user_id: str | None = None
    owner_name: str | None = None
    started_at: datetime = field(default_factory=_now)
    submitted_at: datetime | None = None
    updated_at: datetime = field(default_factory=_now)


@dataclass
class MockSiteRow:
    name: str
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    code: str | None = None
    description: str | None = None
    created_at: datetime = field(default_factory=_now)


class MockTemplateRepository:
    def __init__(self):
        self.rows: dict[uuid.UUID, MockTemplateRow] = {}

    async def create(self, db, *, name, definition, description=None, site_id=None,
                     is_published=False, logo_data_url=None, created_by=None):
        row = MockTemplateRow(
            name=name, definition=definition, description=description, site_id=site_id,
            is_published=is_published, logo_data_url=logo_data_url, created_by=created_by,
        )
        self.rows[row.id] = row
        return row

    async def get_by_id(self, db, template_id):
        return self.rows.get(template_id)

    async def list_all(self, db, *, site_id=None, published_only=False, limit=100, offset=0):
        rows = [
            r for r in self.rows.values()
            if (site_id is None or r.site_id == site_id) and (not published_only or r.is_published)
        ]
        rows.sort(key=lambda r: r.updated_at, reverse=True)
        return rows[offset:offset + limit]

    async def update(self, db, row, **fields):
        for name, value in fields.items():
            setattr(row, name, value)
        row.updated_at = _now()
        return row

    async def delete(self, db, row):
        self.rows.pop(row.id, None)


class MockInspectionRepository:
    def __init__(self):
        self.rows: dict[uuid.UUID, MockInspectionRow] = {}

    async def create(self, db, *, template_id, template_name, items, site_id=None, site_name=None,
                     owner_user_id=None, owner_name=None, score=None):
        # Strictly increasing start times keep ordering deterministic
        row = MockInspectionRow(
            template_id=template_id, template_name=template_name, items=items,
            site_id=site_id, site_name=site_name, owner_user_id=owner_user_id,
            owner_name=owner_name, score=score,
            started_at=_EPOCH + timedelta(minutes=len(self.rows)),
        )
        self.rows[row.id] = row
        return row

    async def get_by_id(self, db, inspection_id):
        return self.rows.get(inspection_id)

    async def get_many(self, db, inspection_ids):
        rows = [self.rows[i] for i in inspection_ids if i in self.rows]
        return sorted(rows, key=lambda r: r.started_at)

    async def list_all(self, db, *, status=None, site_id=None, template_id=None,
                       owner_user_id=None, limit=50, offset=0):
        rows = [
            r for r in self.rows.values()
            if (status is None or r.status == status)
            and (site_id is None or r.site_id == site_id)
            and (template_id is None or r.template_id == template_id)
            and (owner_user_id is None or r.owner_user_id == owner_user_id)
        ]
        rows.sort(key=lambda r: r.started_at, reverse=True)
        return rows[offset:offset + limit]

    async def save_items(self, db, row, items, score):
        row.items = list(items)
        row.score = score
        row.updated_at = _now()
        return row

    async def submit(self, db, row, items, score):
        row.items = list(items)
        row.score = score
        row.status = InspectionStatus.SUBMITTED
        row.submitted_at = row.updated_at = _now()
        return row

    async def delete(self, db, row):
        self.rows.pop(row.id, None)


class MockSiteRepository:
    def __init__(self):
        self.rows: dict[uuid.UUID, MockSiteRow] = {}

    async def create(self, db, *, name, code=None, description=None):
        row = MockSiteRow(name=name, code=code, description=description)
        self.rows[row.id] = row
        return row

    async def get_by_id(self, db, site_id):
        return self.rows.get(site_id)

    async def list_all(self, db):
        return sorted(self.rows.values(), key=lambda r: r.name)

    async def update(self, db, row, **fields):
        for name, value in fields.items():
            setattr(row, name, value)
        return row

    async def delete(self, db, row):
        self.rows.pop(row.id, None)


def install(service):
    """Swap the service's repositories for in-memory ones; returns them."""
    service._templates = MockTemplateRepository()
    service._inspections = MockInspectionRepository()
    service._sites = MockSiteRepository()
    return service._templates, service._inspections, service._sites
