"""Template ORM model — one row per inspection template.

The whole section/question tree lives in the ``definition`` JSONB column.
Rows written by older clients may hold any historical shape there; readers
always pass the column through ``auditking.normalizer`` first.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Index, Text, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from auditking_db.models.base import Base, UUIDPrimaryKey, timestamp_column


class Template(UUIDPrimaryKey, Base):
    __tablename__ = "templates"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    site_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("sites.id", ondelete="SET NULL"),
        nullable=True,
    )
    is_published: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false"),
    )
    # Base64 data URL embedded at the top of single-inspection reports
    logo_data_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    # {"sections": [{"id", "title", "image_data_url", "questions": [...]}]}
    definition: Mapped[dict] = mapped_column(
        JSONB,
        nullable=False,
        server_default=text("'{\"sections\": []}'::jsonb"),
    )

    created_by: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = timestamp_column()
    updated_at: Mapped[datetime] = timestamp_column(touch=True)

    __table_args__ = (
        Index("ix_templates_site", "site_id"),
    )

    def __repr__(self) -> str:
        return f"<Template(id={self.id!s}, name={self.name!r})>"
