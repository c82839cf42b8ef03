import sqlite3
import uuid
from datetime import date, datetime
from typing import Optional
from contextlib import contextmanager

from config import DATABASE_PATH
from models import Client, GeneralSettings, GeneratedEntry, Project, Task, TimeEntry


class DuplicateEntryError(Exception):
    """An entry already exists for this (project_id, task, date)."""

    def __init__(self, project_id: str, task: str, entry_date: date):
        super().__init__(f"Entry already exists for {project_id} / {task} on {entry_date}")
        self.project_id = project_id
        self.task = task
        self.date = entry_date


@contextmanager
def get_db():
    """Context manager for database connections."""
    conn = sqlite3.connect(DATABASE_PATH)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()

def init_db():
    """Initialize database by running Alembic migrations."""
    import subprocess
    import os

    # Run alembic upgrade from the backend directory against our database file
    backend_dir = os.path.dirname(os.path.abspath(__file__))
    subprocess.run(
        ["alembic", "upgrade", "head"],
        cwd=backend_dir,
        check=True,
        env={**os.environ, "TIMESHEET_DB_PATH": os.path.abspath(DATABASE_PATH)},
    )

def _to_db(value):
    """Convert Python values to their SQLite storage form."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, date):
        return value.isoformat()
    return value


# Clients and projects
def _row_to_client(row) -> Client:
    return Client(id=row["id"], name=row["name"], is_disabled=bool(row["is_disabled"]))

def get_all_clients() -> list[Client]:
    with get_db() as conn:
        rows = conn.execute("SELECT * FROM clients ORDER BY name").fetchall()
        return [_row_to_client(row) for row in rows]

def get_client_db(client_id: str) -> Optional[Client]:
    with get_db() as conn:
        row = conn.execute("SELECT * FROM clients WHERE id = ?", (client_id,)).fetchone()
        return _row_to_client(row) if row else None

def create_client_db(client_id: str, name: str) -> Client:
    with get_db() as conn:
        conn.execute(
            "INSERT INTO clients (id, name, is_disabled, created_at) VALUES (?, ?, 0, ?)",
            (client_id, name, datetime.now().isoformat())
        )
        conn.commit()
    return Client(id=client_id, name=name)

def _row_to_project(row) -> Project:
    return Project(
        id=row["id"],
        name=row["name"],
        client_id=row["client_id"],
        color=row["color"],
        description=row["description"],
        is_disabled=bool(row["is_disabled"]),
    )

def get_all_projects() -> list[Project]:
    with get_db() as conn:
        rows = conn.execute("SELECT * FROM projects ORDER BY name").fetchall()
        return [_row_to_project(row) for row in rows]

def get_project_db(project_id: str) -> Optional[Project]:
    with get_db() as conn:
        row = conn.execute("SELECT * FROM projects WHERE id = ?", (project_id,)).fetchone()
        return _row_to_project(row) if row else None

def create_project_db(
    project_id: str,
    name: str,
    client_id: str,
    color: str = "#3b82f6",
    description: Optional[str] = None
) -> Project:
    with get_db() as conn:
        conn.execute(
            """INSERT INTO projects (id, name, client_id, color, description, is_disabled, created_at)
               VALUES (?, ?, ?, ?, ?, 0, ?)""",
            (project_id, name, client_id, color, description, datetime.now().isoformat())
        )
        conn.commit()
    return Project(id=project_id, name=name, client_id=client_id, color=color, description=description)


# Tasks
def _row_to_task(row) -> Task:
    """Convert a database row to a Task model."""
    # Treat empty string as None for recurrence_pattern
    pattern = row["recurrence_pattern"]
    if pattern == "":
        pattern = None
    return Task(
        id=row["id"],
        name=row["name"],
        project_id=row["project_id"],
        description=row["description"],
        is_recurring=bool(row["is_recurring"]),
        recurrence_pattern=pattern,
        recurrence_start=row["recurrence_start"] or None,
        recurrence_end=row["recurrence_end"] or None,
        recurrence_duration=float(row["recurrence_duration"] or 0),
        is_disabled=bool(row["is_disabled"]),
    )

def get_all_tasks() -> list[Task]:
    with get_db() as conn:
        rows = conn.execute("SELECT * FROM tasks ORDER BY created_at, name").fetchall()
        return [_row_to_task(row) for row in rows]

def get_recurring_tasks() -> list[Task]:
    with get_db() as conn:
        rows = conn.execute(
            "SELECT * FROM tasks WHERE is_recurring = 1 ORDER BY created_at, name"
        ).fetchall()
        return [_row_to_task(row) for row in rows]

def get_task_db(task_id: str) -> Optional[Task]:
    with get_db() as conn:
        row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        return _row_to_task(row) if row else None

def create_task_db(
    task_id: str,
    name: str,
    project_id: str,
    description: Optional[str] = None,
    is_recurring: bool = False,
    recurrence_pattern: Optional[str] = None,
    recurrence_start: Optional[date] = None,
    recurrence_end: Optional[date] = None,
    recurrence_duration: float = 0
) -> Task:
    """Create a task.
    A recurring task without a start date starts today.
    """
    if is_recurring and recurrence_start is None:
        recurrence_start = date.today()

    with get_db() as conn:
        conn.execute(
            """INSERT INTO tasks
               (id, name, project_id, description, is_recurring, recurrence_pattern,
                recurrence_start, recurrence_end, recurrence_duration, is_disabled, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, 0, ?)""",
            (task_id, name, project_id, description, int(is_recurring), recurrence_pattern,
             _to_db(recurrence_start), _to_db(recurrence_end), recurrence_duration or 0,
             datetime.now().isoformat())
        )
        conn.commit()

    return Task(
        id=task_id,
        name=name,
        project_id=project_id,
        description=description,
        is_recurring=is_recurring,
        recurrence_pattern=recurrence_pattern,
        recurrence_start=recurrence_start,
        recurrence_end=recurrence_end,
        recurrence_duration=recurrence_duration or 0,
    )

def update_task_db(task_id: str, **updates) -> Optional[Task]:
    """
    Update a task with any fields provided.
    Only updates fields that differ from current values.

    Args:
        task_id: Task ID to update
        **updates: Column names and values (name, description, is_recurring,
                   recurrence_pattern, recurrence_start, recurrence_end, ...)
    """
    with get_db() as conn:
        row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        if not row:
            return None

        keys = row.keys()

        # Filter updates: only include fields that differ from current values
        changes = {}
        for field, new_value in updates.items():
            if field not in keys or field == "id":
                continue
            new_value = _to_db(new_value)
            if new_value != row[field]:
                changes[field] = new_value

        # Execute UPDATE only if there are actual changes
        if changes:
            set_clause = ", ".join(f"{field} = ?" for field in changes.keys())
            values = list(changes.values()) + [task_id]
            conn.execute(f"UPDATE tasks SET {set_clause} WHERE id = ?", values)
            conn.commit()

        # Return updated task (re-fetch to get current state)
        updated_row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        return _row_to_task(updated_row)

def set_task_recurrence_db(
    task_id: str,
    pattern: str,
    start: Optional[date] = None,
    end: Optional[date] = None,
    duration: float = 0
) -> Optional[Task]:
    """Make a task recurring, replacing any previous rule. start defaults to today."""
    return update_task_db(
        task_id,
        is_recurring=True,
        recurrence_pattern=pattern,
        recurrence_start=start or date.today(),
        recurrence_end=end,
        recurrence_duration=duration or 0,
    )

def clear_task_recurrence_db(task_id: str) -> Optional[Task]:
    """Stop a task from recurring. Generated entries are left alone."""
    return update_task_db(
        task_id,
        is_recurring=False,
        recurrence_pattern=None,
        recurrence_start=None,
        recurrence_end=None,
    )

def delete_task_db(task_id: str) -> bool:
    with get_db() as conn:
        cursor = conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
        conn.commit()
        return cursor.rowcount > 0


# Time entries
def _row_to_entry(row) -> TimeEntry:
    return TimeEntry(
        id=row["id"],
        user_id=row["user_id"] or "",
        date=row["date"],
        client_id=row["client_id"],
        client_name=row["client_name"],
        project_id=row["project_id"],
        project_name=row["project_name"],
        task=row["task"],
        notes=row["notes"],
        duration=float(row["duration"] or 0),
        hourly_cost=float(row["hourly_cost"] or 0),
        is_placeholder=bool(row["is_placeholder"]),
        created_at=row["created_at"],
    )

def get_all_entries() -> list[TimeEntry]:
    """All time entries, newest first."""
    with get_db() as conn:
        rows = conn.execute(
            "SELECT * FROM time_entries ORDER BY created_at DESC, rowid DESC"
        ).fetchall()
        return [_row_to_entry(row) for row in rows]

def create_entry_db(entry: GeneratedEntry, notes: Optional[str] = None) -> TimeEntry:
    """
    Persist a time entry.
    Raises DuplicateEntryError if the (project_id, task, date) triple is taken.
    """
    entry_id = str(uuid.uuid4())
    created_at = datetime.now().isoformat()
    with get_db() as conn:
        try:
            conn.execute(
                """INSERT INTO time_entries
                   (id, user_id, date, client_id, client_name, project_id, project_name,
                    task, notes, duration, hourly_cost, is_placeholder, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (entry_id, entry.user_id, entry.date.isoformat(), entry.client_id, entry.client_name,
                 entry.project_id, entry.project_name, entry.task, notes, entry.duration,
                 entry.hourly_cost, int(entry.is_placeholder), created_at)
            )
        except sqlite3.IntegrityError as e:
            if "UNIQUE constraint failed" not in str(e):
                raise
            raise DuplicateEntryError(entry.project_id, entry.task, entry.date) from e
        conn.commit()

    return TimeEntry(
        id=entry_id,
        created_at=created_at,
        notes=notes,
        **entry.model_dump(),
    )

def delete_entry_db(entry_id: str) -> bool:
    with get_db() as conn:
        cursor = conn.execute("DELETE FROM time_entries WHERE id = ?", (entry_id,))
        conn.commit()
        return cursor.rowcount > 0

def bulk_delete_entries_db(
    project_id: str,
    task: str,
    future_only: bool = False,
    placeholder_only: bool = False,
    today: Optional[date] = None
) -> int:
    """
    Delete the entries of one task.
    future_only keeps entries dated before today; placeholder_only keeps real entries.
    Returns the number of deleted entries.
    """
    sql = "DELETE FROM time_entries WHERE project_id = ? AND task = ?"
    params: list = [project_id, task]

    if future_only:
        sql += " AND date >= ?"
        params.append((today or date.today()).isoformat())

    if placeholder_only:
        sql += " AND is_placeholder = 1"

    with get_db() as conn:
        cursor = conn.execute(sql, params)
        conn.commit()
        return cursor.rowcount


# General settings
def get_general_settings() -> GeneralSettings:
    with get_db() as conn:
        row = conn.execute("SELECT * FROM general_settings WHERE id = 1").fetchone()
        if not row:
            return GeneralSettings()
        return GeneralSettings(treat_saturday_as_holiday=bool(row["treat_saturday_as_holiday"]))

def update_general_settings(treat_saturday_as_holiday: bool) -> GeneralSettings:
    now = datetime.now().isoformat()
    with get_db() as conn:
        conn.execute(
            """INSERT INTO general_settings (id, treat_saturday_as_holiday, updated_at)
               VALUES (1, ?, ?)
               ON CONFLICT(id) DO UPDATE SET
                   treat_saturday_as_holiday = excluded.treat_saturday_as_holiday,
                   updated_at = excluded.updated_at""",
            (int(treat_saturday_as_holiday), now)
        )
        conn.commit()
    return GeneralSettings(treat_saturday_as_holiday=treat_saturday_as_holiday)
