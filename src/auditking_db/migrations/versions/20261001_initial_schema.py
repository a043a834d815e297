"""Create sites, templates and inspections tables.

Revision ID: 20261001_initial
Revises:
Create Date: 2026-10-01
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID

# revision identifiers, used by Alembic.
revision = "20261001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # --- sites ---
    op.create_table(
        "sites",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("code", sa.Text(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", TIMESTAMP(timezone=True), nullable=False),
    )

    # --- templates ---
    op.create_table(
        "templates",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "site_id",
            UUID(as_uuid=True),
            sa.ForeignKey("sites.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("is_published", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("logo_data_url", sa.Text(), nullable=True),
        sa.Column(
            "definition",
            JSONB(),
            nullable=False,
            server_default=sa.text("'{\"sections\": []}'::jsonb"),
        ),
        sa.Column("created_by", sa.Text(), nullable=True),
        sa.Column("created_at", TIMESTAMP(timezone=True), nullable=False),
        sa.Column("updated_at", TIMESTAMP(timezone=True), nullable=False),
    )
    op.create_index("ix_templates_site", "templates", ["site_id"])

    # --- inspections ---
    op.create_table(
        "inspections",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "template_id",
            UUID(as_uuid=True),
            sa.ForeignKey("templates.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("template_name", sa.Text(), nullable=False),
        sa.Column(
            "site_id",
            UUID(as_uuid=True),
            sa.ForeignKey("sites.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("site_name", sa.Text(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("score", sa.SmallInteger(), nullable=True),
        sa.Column("items", JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("owner_user_id", sa.Text(), nullable=True),
        sa.Column("owner_name", sa.Text(), nullable=True),
        sa.Column("started_at", TIMESTAMP(timezone=True), nullable=False),
        sa.Column("submitted_at", TIMESTAMP(timezone=True), nullable=True),
        sa.Column("updated_at", TIMESTAMP(timezone=True), nullable=False),
        sa.CheckConstraint(
            "status != 'submitted' OR submitted_at IS NOT NULL",
            name="ck_submitted_has_timestamp",
        ),
        sa.CheckConstraint(
            "score IS NULL OR score BETWEEN 0 AND 100",
            name="ck_score_range",
        ),
    )
    op.create_index("ix_inspections_status", "inspections", ["status"])
    op.create_index("ix_inspections_owner_user_id", "inspections", ["owner_user_id"])
    op.create_index("ix_inspections_template", "inspections", ["template_id"])
    op.create_index("ix_inspections_started", "inspections", ["started_at"])


def downgrade() -> None:
    op.drop_index("ix_inspections_started", table_name="inspections")
    op.drop_index("ix_inspections_template", table_name="inspections")
    op.drop_index("ix_inspections_owner_user_id", table_name="inspections")
    op.drop_index("ix_inspections_status", table_name="inspections")
    op.drop_table("inspections")
    op.drop_index("ix_templates_site", table_name="templates")
    op.drop_table("templates")
    op.drop_table("sites")
