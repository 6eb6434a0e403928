"""Create summons and summons_sections tables

Revision ID: 20261019_001
Revises:
Create Date: 2026-10-19

A summons snapshots its template; sections are created once from the
snapshot and keep (summons_id, section_key) unique and step_order fixed.
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID, JSONB

# revision identifiers, used by Alembic.
revision = "20261019_001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # summons table
    op.create_table(
        "summons",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("case_id", sa.String(64), nullable=False),
        sa.Column("template_id", sa.String(100), nullable=False),
        sa.Column("template_version", sa.String(20), nullable=False),
        sa.Column("user_fields", JSONB, nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="in_progress"),
        sa.Column("assembled_text", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("status IN ('in_progress', 'ready')", name="ck_summons_status"),
    )
    op.create_index("ix_summons_case_id", "summons", ["case_id"])

    # summons_sections table
    op.create_table(
        "summons_sections",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "summons_id", UUID(as_uuid=True),
            sa.ForeignKey("summons.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("section_key", sa.String(100), nullable=False),
        sa.Column("section_name", sa.Text, nullable=False),
        sa.Column("step_order", sa.Integer, nullable=False),
        sa.Column("kind", sa.String(30), nullable=False, server_default="generic"),
        sa.Column("placeholder_key", sa.String(100), nullable=True),
        sa.Column("flow_name", sa.String(200), nullable=True),
        sa.Column("feedback_flow_name", sa.String(200), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("generated_text", sa.Text, nullable=True),
        sa.Column("user_feedback", sa.Text, nullable=True),
        sa.Column("generation_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("warnings_json", JSONB, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("summons_id", "section_key", name="uq_summons_sections_key"),
        sa.CheckConstraint(
            "status IN ('pending', 'generating', 'draft', 'approved', 'needs_changes')",
            name="ck_summons_sections_status",
        ),
        sa.CheckConstraint("generation_count >= 0", name="ck_summons_sections_count"),
    )
    op.create_index("idx_summons_sections_order", "summons_sections", ["summons_id", "step_order"])


def downgrade() -> None:
    op.drop_index("idx_summons_sections_order", table_name="summons_sections")
    op.drop_table("summons_sections")
    op.drop_index("ix_summons_case_id", table_name="summons")
    op.drop_table("summons")
