"""Site ORM model: a physical location that audits are run at."""

from datetime import datetime

from sqlalchemy import Text
from sqlalchemy.orm import Mapped, mapped_column

from auditking_db.models.base import Base, UUIDPrimaryKey, timestamp_column


class Site(UUIDPrimaryKey, Base):
    __tablename__ = "sites"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    # Short operator-facing code, e.g. a store number
    code: Mapped[str | None] = mapped_column(Text, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = timestamp_column()

    def __repr__(self) -> str:
        return f"<Site(id={self.id!s}, name={self.name!r})>"
