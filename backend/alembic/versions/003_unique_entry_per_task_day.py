"""Enforce one time entry per project, task and date

Revision ID: 003
Revises: 002
Create Date: 2026-02-14

"""
from typing import Sequence, Union

from alembic import op
from sqlalchemy import text

revision: str = '003'
down_revision: Union[str, None] = '002'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    conn = op.get_bind()

    # Keep the oldest entry of any duplicated (project_id, task, date) before indexing
    conn.execute(text("""
        DELETE FROM time_entries
        WHERE rowid NOT IN (
            SELECT MIN(rowid) FROM time_entries GROUP BY project_id, task, date
        )
    """))

    conn.execute(text("""
        CREATE UNIQUE INDEX IF NOT EXISTS idx_time_entries_project_task_date
        ON time_entries(project_id, task, date)
    """))


def downgrade() -> None:
    conn = op.get_bind()
    conn.execute(text("DROP INDEX IF EXISTS idx_time_entries_project_task_date"))
