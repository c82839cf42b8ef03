"""Initial schema - clients, projects, tasks, time entries, general settings

Revision ID: 001
Revises: None
Create Date: 2025-01-21

"""
from typing import Sequence, Union

from alembic import op
from sqlalchemy import text

revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    conn = op.get_bind()

    conn.execute(text("""
        CREATE TABLE IF NOT EXISTS clients (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            is_disabled INTEGER DEFAULT 0,
            created_at TEXT NOT NULL
        )
    """))

    conn.execute(text("""
        CREATE TABLE IF NOT EXISTS projects (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            client_id TEXT NOT NULL REFERENCES clients(id) ON DELETE CASCADE,
            color TEXT NOT NULL DEFAULT '#3b82f6',
            description TEXT,
            is_disabled INTEGER DEFAULT 0,
            created_at TEXT NOT NULL
        )
    """))

    conn.execute(text("""
        CREATE TABLE IF NOT EXISTS tasks (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            project_id TEXT NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
            description TEXT,
            is_recurring INTEGER DEFAULT 0,
            recurrence_pattern TEXT,
            recurrence_start TEXT,
            recurrence_end TEXT,
            is_disabled INTEGER DEFAULT 0,
            created_at TEXT NOT NULL
        )
    """))

    conn.execute(text("""
        CREATE TABLE IF NOT EXISTS time_entries (
            id TEXT PRIMARY KEY,
            user_id TEXT DEFAULT '',
            date TEXT NOT NULL,
            client_id TEXT NOT NULL,
            client_name TEXT NOT NULL,
            project_id TEXT NOT NULL,
            project_name TEXT NOT NULL,
            task TEXT NOT NULL,
            notes TEXT,
            duration REAL NOT NULL DEFAULT 0,
            hourly_cost REAL DEFAULT 0,
            is_placeholder INTEGER DEFAULT 0,
            created_at TEXT NOT NULL
        )
    """))
    conn.execute(text("CREATE INDEX IF NOT EXISTS idx_time_entries_date ON time_entries(date)"))

    conn.execute(text("""
        CREATE TABLE IF NOT EXISTS general_settings (
            id INTEGER PRIMARY KEY CHECK (id = 1),
            treat_saturday_as_holiday INTEGER DEFAULT 1,
            updated_at TEXT
        )
    """))
    conn.execute(text("INSERT OR IGNORE INTO general_settings (id) VALUES (1)"))


def downgrade() -> None:
    conn = op.get_bind()
    conn.execute(text("DROP TABLE IF EXISTS general_settings"))
    conn.execute(text("DROP TABLE IF EXISTS time_entries"))
    conn.execute(text("DROP TABLE IF EXISTS tasks"))
    conn.execute(text("DROP TABLE IF EXISTS projects"))
    conn.execute(text("DROP TABLE IF EXISTS clients"))
