"""Add trigram and JSON search indexes.

Revision ID: 0002
Revises: 0001
Create Date: 2026-09-02 10:30:00.000000

PostgreSQL only: enables pg_trgm and adds GIN indexes for fuzzy tag name
and path matching plus the JSONB fingerprint column. SQLite has neither
feature, so the revision is recorded there without doing anything.
"""
from collections.abc import Sequence

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0002"
down_revision: str | None = "0001"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create trigram indexes for fuzzy search."""
    if op.get_bind().dialect.name != "postgresql":
        return

    op.execute("CREATE EXTENSION IF NOT EXISTS pg_trgm")

    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_tags_name_trgm
        ON tags USING gin (name gin_trgm_ops)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_files_current_path_trgm
        ON files USING gin (current_path gin_trgm_ops)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_files_fingerprint_data_gin
        ON files USING gin (fingerprint_data)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_file_tags_file_tag_confidence
        ON file_tags (file_id, tag_id, confidence)
    """)


def downgrade() -> None:
    """Remove the trigram indexes."""
    if op.get_bind().dialect.name != "postgresql":
        return

    op.execute("DROP INDEX IF EXISTS ix_file_tags_file_tag_confidence")
    op.execute("DROP INDEX IF EXISTS ix_files_fingerprint_data_gin")
    op.execute("DROP INDEX IF EXISTS ix_files_current_path_trgm")
    op.execute("DROP INDEX IF EXISTS ix_tags_name_trgm")

    # pg_trgm is left installed; other schemas may use it
