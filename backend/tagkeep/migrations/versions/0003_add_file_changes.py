"""Add file_changes history table.

Revision ID: 0003
Revises: 0002
Create Date: 2026-09-09 14:00:00.000000
"""
from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "0003"
down_revision: str | None = "0002"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create the append-only change log."""
    op.create_table(
        "file_changes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("file_id", sa.Integer(), nullable=True),
        sa.Column("old_path", sa.Text(), nullable=True),
        sa.Column("new_path", sa.Text(), nullable=True),
        sa.Column("change_type", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("affected", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("error", sa.String(1024), nullable=True),
        sa.Column("detected_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_file_changes"),
        sa.ForeignKeyConstraint(
            ["file_id"],
            ["files.id"],
            name="fk_file_changes_file_id_files",
            ondelete="SET NULL",
        ),
    )
    op.create_index("ix_file_changes_change_type", "file_changes", ["change_type"])
    op.create_index("ix_file_changes_status", "file_changes", ["status"])
    op.create_index("ix_file_changes_detected_at", "file_changes", ["detected_at"])


def downgrade() -> None:
    """Drop the change log."""
    op.drop_table("file_changes")
