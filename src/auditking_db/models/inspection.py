"""Inspection ORM model — one row per audit run.

Answers are stored as a single JSONB list in ``items`` (one entry per
question, camelCase keys).  Template and site names are denormalized at
start so that lists and reports survive template or site deletion.
"""

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, ForeignKey, Index, SmallInteger, String, Text, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from auditking_db.models.base import Base, UUIDPrimaryKey, timestamp_column
from auditking_db.models.enums import InspectionStatus


class Inspection(UUIDPrimaryKey, Base):
    __tablename__ = "inspections"

    # --- Template / site references ---
    template_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("templates.id", ondelete="SET NULL"),
        nullable=True,
    )
    template_name: Mapped[str] = mapped_column(Text, nullable=False)
    site_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("sites.id", ondelete="SET NULL"),
        nullable=True,
    )
    site_name: Mapped[str | None] = mapped_column(Text, nullable=True)

    # --- Lifecycle ---
    status: Mapped[InspectionStatus] = mapped_column(
        # Store as the lowercase string value, not the Python name
        String(20),
        nullable=False,
        default=InspectionStatus.IN_PROGRESS,
        index=True,
    )
    # 0-100; null while nothing scorable has been answered
    score: Mapped[int | None] = mapped_column(SmallInteger, nullable=True)

    # [{"sectionId", "questionId", "value", "choiceLabel", "notes", "photos", ...}]
    items: Mapped[list] = mapped_column(
        JSONB,
        nullable=False,
        server_default=text("'[]'::jsonb"),
    )

    # --- Ownership ---
    owner_user_id: Mapped[str | None] = mapped_column(Text, nullable=True, index=True)
    owner_name: Mapped[str | None] = mapped_column(Text, nullable=True)

    # --- Timestamps ---
    started_at: Mapped[datetime] = timestamp_column()
    submitted_at: Mapped[datetime | None] = timestamp_column(nullable=True)
    updated_at: Mapped[datetime] = timestamp_column(touch=True)

    __table_args__ = (
        CheckConstraint(
            "status != 'submitted' OR submitted_at IS NOT NULL",
            name="ck_submitted_has_timestamp",
        ),
        CheckConstraint(
            "score IS NULL OR score BETWEEN 0 AND 100",
            name="ck_score_range",
        ),
        Index("ix_inspections_template", "template_id"),
        Index("ix_inspections_started", "started_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<Inspection(id={self.id!s}, template={self.template_name!r}, "
            f"status={self.status!r}, score={self.score})>"
        )
