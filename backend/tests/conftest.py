"""
Shared pytest fixtures for backend tests.
Uses a temp-file SQLite database per test for isolation.
"""
import pytest
import sqlite3
import sys
import os

# Add backend to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import database


@pytest.fixture
def test_db(monkeypatch, tmp_path):
    """
    Create an isolated test database for each test.
    Uses a temp file (not :memory:) because database.py opens new connections per operation.
    """
    db_path = str(tmp_path / "test.db")
    monkeypatch.setattr(database, "DATABASE_PATH", db_path)
    monkeypatch.setattr(database, "init_db", lambda: None)

    # Create tables directly (skip alembic for tests)
    conn = sqlite3.connect(db_path)
    conn.executescript("""
        CREATE TABLE clients (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            is_disabled INTEGER DEFAULT 0,
            created_at TEXT NOT NULL
        );

        CREATE TABLE projects (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            client_id TEXT NOT NULL,
            color TEXT NOT NULL DEFAULT '#3b82f6',
            description TEXT,
            is_disabled INTEGER DEFAULT 0,
            created_at TEXT NOT NULL
        );

        CREATE TABLE tasks (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            project_id TEXT NOT NULL,
            description TEXT,
            is_recurring INTEGER DEFAULT 0,
            recurrence_pattern TEXT,
            recurrence_start TEXT,
            recurrence_end TEXT,
            recurrence_duration REAL DEFAULT 0,
            is_disabled INTEGER DEFAULT 0,
            created_at TEXT NOT NULL
        );

        CREATE TABLE time_entries (
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
        );

        CREATE UNIQUE INDEX idx_time_entries_project_task_date
            ON time_entries(project_id, task, date);

        CREATE TABLE general_settings (
            id INTEGER PRIMARY KEY CHECK (id = 1),
            treat_saturday_as_holiday INTEGER DEFAULT 1,
            updated_at TEXT
        );
    """)
    conn.commit()
    conn.close()

    yield db_path


@pytest.fixture
def seeded_db(test_db):
    """Test database with one client and one project (client-1 / proj-1)."""
    database.create_client_db("client-1", "Acme")
    database.create_project_db("proj-1", "Website", "client-1")
    yield test_db


@pytest.fixture
def app_client(test_db, monkeypatch):
    """
    Create a test client for the FastAPI app.
    Skips alembic migrations and the delayed startup generation run.
    """
    from fastapi.testclient import TestClient
    import main

    # Tables already created by test_db fixture
    monkeypatch.setattr(main, "init_db", lambda: None)
    monkeypatch.setattr(main, "RECURRING_STARTUP_DELAY", None)

    with TestClient(main.app) as client:
        yield client
