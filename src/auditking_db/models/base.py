"""Declarative base, constraint naming and column helpers shared by the ORM rows."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import MetaData
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Column-level index=True names, as used in the initial migration
NAMING_CONVENTION = {"ix": "ix_%(table_name)s_%(column_0_name)s"}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=NAMING_CONVENTION)


class UUIDPrimaryKey:
    """Mixin: client-generated UUID primary key, exposed as a string by the SDK."""

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )


def timestamp_column(*, nullable: bool = False, touch: bool = False) -> Mapped[datetime]:
    """Timezone-aware timestamp; ``touch`` refreshes it on every UPDATE."""
    if nullable:
        return mapped_column(TIMESTAMP(timezone=True), nullable=True)
    return mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow if touch else None,
    )
