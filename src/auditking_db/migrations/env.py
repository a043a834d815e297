"""Alembic environment for the Audit King schema.

Migrations run synchronously (psycopg2) against the URL from
``auditking_db.config.get_sync_url()``; the ini file only supplies the
script location and logging.  Autogenerate is limited to the tables
declared on ``Base.metadata`` so unrelated tables in a shared database are
never touched.
"""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

import auditking_db.models  # noqa: F401  registers sites, templates, inspections
from auditking_db.config import get_sync_url
from auditking_db.models.base import Base

VERSION_TABLE = "auditking_alembic_version"

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def include_object(obj, name, type_, reflected, compare_to) -> bool:
    if type_ == "table":
        return name in target_metadata.tables
    return True


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        version_table=VERSION_TABLE,
        include_object=include_object,
        compare_type=True,
        **kwargs,
    )


def run_migrations_offline() -> None:
    """Render the migration SQL to stdout."""
    _configure(url=get_sync_url(), literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = create_engine(get_sync_url(), poolclass=pool.NullPool)
    with engine.connect() as connection:
        _configure(connection=connection)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
