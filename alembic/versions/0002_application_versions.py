"""Application versions

Revision ID: 0002_application_versions
Revises: 0001_initial_schema
Create Date: 2026-02-03 09:30:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0002_application_versions"
down_revision = "0001_initial_schema"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "application_versions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("application_id", sa.Uuid(), nullable=False),
        sa.Column("version_code", sa.BigInteger(), nullable=False),
        sa.Column("version_name", sa.String(length=255), nullable=True),
        sa.Column("stable", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.ForeignKeyConstraint(["application_id"], ["applications.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("application_id", "version_code", name="uq_application_versions_application_code"),
    )
    op.create_index("ix_application_versions_application_id", "application_versions", ["application_id"])


def downgrade() -> None:
    op.drop_index("ix_application_versions_application_id", table_name="application_versions")
    op.drop_table("application_versions")
