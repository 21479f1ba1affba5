"""Initial schema: files, tags and file_tags.

Revision ID: 0001
Revises:
Create Date: 2026-09-02 10:00:00.000000

Shared by both backends. Uniqueness rules that only apply to live rows
(one live record per path, one live tag per name and parent) are partial
indexes, which PostgreSQL and SQLite both support.
"""
from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

LIVE_ROWS = sa.text("deleted_at IS NULL")


def upgrade() -> None:
    """Create the core tables and their indexes."""
    op.create_table(
        "files",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("current_path", sa.Text(), nullable=False),
        sa.Column("name", sa.String(1024), nullable=False, server_default=""),
        sa.Column("file_type", sa.String(16), nullable=False),
        sa.Column("size", sa.BigInteger(), nullable=True),
        sa.Column(
            "fingerprint_data",
            sa.JSON().with_variant(postgresql.JSONB(), "postgresql"),
            nullable=True,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_files"),
    )
    op.create_index(
        "uq_files_current_path_active",
        "files",
        ["current_path"],
        unique=True,
        sqlite_where=LIVE_ROWS,
        postgresql_where=LIVE_ROWS,
    )
    op.create_index("ix_files_current_path", "files", ["current_path"])
    op.create_index("ix_files_file_type", "files", ["file_type"])
    op.create_index("ix_files_deleted_at", "files", ["deleted_at"])

    op.create_table(
        "tags",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("color", sa.String(9), nullable=True),
        sa.Column("font_color", sa.String(9), nullable=True),
        sa.Column("parent_id", sa.Integer(), nullable=True),
        sa.Column("usage_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_tags"),
        sa.ForeignKeyConstraint(
            ["parent_id"],
            ["tags.id"],
            name="fk_tags_parent_id_tags",
            ondelete="CASCADE",
        ),
    )
    op.create_index(
        "uq_tags_name_parent_active",
        "tags",
        [sa.text("name"), sa.text("coalesce(parent_id, 0)")],
        unique=True,
        sqlite_where=LIVE_ROWS,
        postgresql_where=LIVE_ROWS,
    )
    op.create_index("ix_tags_name", "tags", ["name"])
    op.create_index("ix_tags_parent_id", "tags", ["parent_id"])
    op.create_index("ix_tags_usage_count", "tags", ["usage_count"])

    op.create_table(
        "file_tags",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("file_id", sa.Integer(), nullable=False),
        sa.Column("tag_id", sa.Integer(), nullable=False),
        sa.Column("confidence", sa.Float(), nullable=False, server_default="1.0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id", name="pk_file_tags"),
        sa.ForeignKeyConstraint(
            ["file_id"],
            ["files.id"],
            name="fk_file_tags_file_id_files",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["tag_id"],
            ["tags.id"],
            name="fk_file_tags_tag_id_tags",
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint("file_id", "tag_id", name="uq_file_tags_file_id_tag_id"),
    )
    op.create_index("ix_file_tags_file_id", "file_tags", ["file_id"])
    op.create_index("ix_file_tags_tag_id", "file_tags", ["tag_id"])
    op.create_index("ix_file_tags_confidence", "file_tags", ["confidence"])


def downgrade() -> None:
    """Drop the core tables."""
    op.drop_table("file_tags")
    op.drop_table("tags")
    op.drop_table("files")
