"""
Tests for FastAPI endpoints in main.py.
Uses database helpers to set up clients, projects and tasks.
"""
import pytest
import sys
import os
from datetime import date, timedelta

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import database
from database import create_task_db, get_all_entries


@pytest.fixture
def seeded_client(app_client):
    database.create_client_db("client-1", "Acme")
    database.create_project_db("proj-1", "Website", "client-1")
    yield app_client


class TestClientProjectEndpoints:
    """Tests for /clients and /projects."""

    def test_create_and_list(self, app_client):
        client = app_client.post("/clients", json={"name": "Acme"}).json()
        response = app_client.post("/projects", json={"name": "Website", "client_id": client["id"]})
        assert response.status_code == 200

        assert [c["name"] for c in app_client.get("/clients").json()] == ["Acme"]
        assert [p["name"] for p in app_client.get("/projects").json()] == ["Website"]

    def test_project_needs_existing_client(self, app_client):
        response = app_client.post("/projects", json={"name": "Website", "client_id": "nope"})
        assert response.status_code == 404


class TestTaskEndpoints:
    """Tests for /tasks endpoints."""

    def test_get_tasks_empty(self, app_client):
        response = app_client.get("/tasks")
        assert response.status_code == 200
        assert response.json() == []

    def test_create_task(self, seeded_client):
        response = seeded_client.post("/tasks", json={"name": "Standup", "project_id": "proj-1"})
        assert response.status_code == 200
        assert response.json()["name"] == "Standup"
        assert len(seeded_client.get("/tasks").json()) == 1

    def test_create_task_unknown_project(self, app_client):
        response = app_client.post("/tasks", json={"name": "Standup", "project_id": "nope"})
        assert response.status_code == 404

    def test_create_recurring_task_generates_entries(self, seeded_client):
        """Creating a recurring task triggers a generation run."""
        response = seeded_client.post("/tasks", json={
            "name": "Standup",
            "project_id": "proj-1",
            "is_recurring": True,
            "recurrence_pattern": "daily",
        })
        assert response.status_code == 200
        entries = get_all_entries()
        assert len(entries) > 0
        assert all(e.is_placeholder and e.task == "Standup" for e in entries)

    def test_update_task_name(self, seeded_client):
        create_task_db("id-1", "Old name", "proj-1")
        response = seeded_client.patch("/tasks/id-1", json={"name": "New name"})
        assert response.status_code == 200
        assert response.json()["name"] == "New name"

    def test_update_task_not_found(self, app_client):
        response = app_client.patch("/tasks/nonexistent", json={"name": "New name"})
        assert response.status_code == 404

    def test_delete_task(self, seeded_client):
        create_task_db("id-1", "Delete me", "proj-1")
        response = seeded_client.delete("/tasks/id-1")
        assert response.status_code == 200
        assert response.json()["status"] == "deleted"
        assert seeded_client.get("/tasks").json() == []

    def test_delete_task_not_found(self, app_client):
        assert app_client.delete("/tasks/nonexistent").status_code == 404


class TestRecurrenceEndpoints:
    """Tests for configuring and stopping recurrence."""

    def test_set_recurrence_generates_entries(self, seeded_client):
        create_task_db("id-1", "Standup", "proj-1")
        response = seeded_client.put("/tasks/id-1/recurrence", json={
            "pattern": "weekly",
            "start": "2024-06-03",
            "end": "2024-06-30",
            "duration": 1,
        })
        assert response.status_code == 200
        assert response.json()["is_recurring"] is True

        entries = get_all_entries()
        assert sorted(e.date for e in entries) == [
            date(2024, 6, 3), date(2024, 6, 10), date(2024, 6, 17), date(2024, 6, 24)
        ]
        assert all(e.duration == 1 for e in entries)

    def test_set_recurrence_rejects_unknown_pattern(self, seeded_client):
        create_task_db("id-1", "Standup", "proj-1")
        response = seeded_client.put("/tasks/id-1/recurrence", json={"pattern": "fortnightly"})
        assert response.status_code == 422

    def test_set_recurrence_not_found(self, app_client):
        response = app_client.put("/tasks/nope/recurrence", json={"pattern": "daily"})
        assert response.status_code == 404

    def test_stop_removes_placeholders_only(self, seeded_client):
        create_task_db("id-1", "Standup", "proj-1", None, True, "daily", date(2024, 6, 3))
        seeded_client.post("/recurring/generate", json={"today": "2024-06-01"})
        seeded_client.post("/entries", json={"date": "2024-05-31", "project_id": "proj-1", "task": "Standup", "duration": 2})

        response = seeded_client.delete("/tasks/id-1/recurrence", params={"action": "stop"})
        assert response.status_code == 200
        assert response.json()["deleted"] == 10

        remaining = get_all_entries()
        assert [(e.date, e.is_placeholder) for e in remaining] == [(date(2024, 5, 31), False)]
        assert seeded_client.get("/recurring").json() == []

    def test_delete_all(self, seeded_client):
        create_task_db("id-1", "Standup", "proj-1", None, True, "daily", date(2024, 6, 3))
        seeded_client.post("/recurring/generate", json={"today": "2024-06-01"})
        seeded_client.post("/entries", json={"date": "2024-05-31", "project_id": "proj-1", "task": "Standup"})

        response = seeded_client.delete("/tasks/id-1/recurrence", params={"action": "delete_all"})
        assert response.json()["deleted"] == 11
        assert get_all_entries() == []

    def test_unknown_action_rejected(self, seeded_client):
        create_task_db("id-1", "Standup", "proj-1", None, True, "daily")
        response = seeded_client.delete("/tasks/id-1/recurrence", params={"action": "explode"})
        assert response.status_code == 422


class TestGenerateEndpoint:
    """Tests for POST /recurring/generate."""

    def test_generate_and_rerun(self, seeded_client):
        create_task_db("id-1", "Standup", "proj-1", None, True, "daily", date(2024, 6, 1), None, 0.5)

        first = seeded_client.post("/recurring/generate", json={"today": "2024-06-01", "user_id": "user-7"}).json()
        # 2024-06-02 is a Sunday (and Festa della Repubblica); Saturdays are off by default
        assert [e["date"] for e in first["created"]] == [
            "2024-06-03", "2024-06-04", "2024-06-05", "2024-06-06", "2024-06-07",
            "2024-06-10", "2024-06-11", "2024-06-12", "2024-06-13", "2024-06-14",
        ]
        assert all(e["user_id"] == "user-7" and e["duration"] == 0.5 for e in first["created"])
        assert len(first["entries"]) == 10

        second = seeded_client.post("/recurring/generate", json={"today": "2024-06-01"}).json()
        assert second["created"] == []
        assert len(second["entries"]) == 10

    def test_saturday_setting_respected(self, seeded_client):
        create_task_db("id-1", "Standup", "proj-1", None, True, "daily", date(2024, 6, 1))
        seeded_client.put("/settings/general", json={"treat_saturday_as_holiday": False})

        created = seeded_client.post("/recurring/generate", json={"today": "2024-06-01"}).json()["created"]
        dates = [e["date"] for e in created]
        assert "2024-06-01" in dates
        assert "2024-06-08" in dates
        assert "2024-06-02" not in dates

    def test_existing_entry_not_duplicated(self, seeded_client):
        create_task_db("id-1", "Standup", "proj-1", None, True, "weekly", date(2024, 6, 3))
        seeded_client.post("/entries", json={"date": "2024-06-10", "project_id": "proj-1", "task": "Standup", "duration": 3})

        created = seeded_client.post("/recurring/generate", json={"today": "2024-06-01"}).json()["created"]
        assert [e["date"] for e in created] == ["2024-06-03"]

    def test_generate_without_body(self, app_client):
        response = app_client.post("/recurring/generate")
        assert response.status_code == 200
        assert response.json()["created"] == []


class TestRecurringOverview:
    """Tests for GET /recurring."""

    def test_lists_active_recurring_tasks(self, seeded_client):
        start = date.today() + timedelta(days=30)
        create_task_db("id-1", "Invoicing", "proj-1", None, True, "daily", start)
        create_task_db("id-2", "One-off", "proj-1")

        summaries = seeded_client.get("/recurring").json()
        assert len(summaries) == 1
        assert summaries[0]["task"]["id"] == "id-1"
        assert summaries[0]["client_name"] == "Acme"
        assert summaries[0]["project_name"] == "Website"
        assert summaries[0]["next_due"] >= start.isoformat()


class TestEntryEndpoints:
    """Tests for /entries endpoints."""

    def test_create_entry(self, seeded_client):
        response = seeded_client.post("/entries", json={
            "date": "2024-06-10", "project_id": "proj-1", "task": "Standup", "duration": 3, "notes": "Sprint planning"
        })
        assert response.status_code == 200
        data = response.json()
        assert data["is_placeholder"] is False
        assert data["client_name"] == "Acme"
        assert data["project_name"] == "Website"
        assert data["notes"] == "Sprint planning"

    def test_duplicate_entry_conflict(self, seeded_client):
        body = {"date": "2024-06-10", "project_id": "proj-1", "task": "Standup"}
        assert seeded_client.post("/entries", json=body).status_code == 200
        assert seeded_client.post("/entries", json=body).status_code == 409

    def test_create_entry_unknown_project(self, app_client):
        response = app_client.post("/entries", json={"date": "2024-06-10", "project_id": "nope", "task": "Standup"})
        assert response.status_code == 404

    def test_delete_entry(self, seeded_client):
        entry = seeded_client.post("/entries", json={"date": "2024-06-10", "project_id": "proj-1", "task": "Standup"}).json()
        assert seeded_client.delete(f"/entries/{entry['id']}").status_code == 200
        assert seeded_client.delete(f"/entries/{entry['id']}").status_code == 404

    def test_bulk_delete(self, seeded_client):
        for day in ["2024-06-10", "2024-06-11"]:
            seeded_client.post("/entries", json={"date": day, "project_id": "proj-1", "task": "Standup"})
        response = seeded_client.delete("/entries", params={"project_id": "proj-1", "task": "Standup"})
        assert response.json()["deleted"] == 2
        assert seeded_client.get("/entries").json() == []


class TestSettingsEndpoints:
    """Tests for /settings/general."""

    def test_get_default(self, app_client):
        assert app_client.get("/settings/general").json() == {"treat_saturday_as_holiday": True}

    def test_update(self, app_client):
        response = app_client.put("/settings/general", json={"treat_saturday_as_holiday": False})
        assert response.status_code == 200
        assert app_client.get("/settings/general").json() == {"treat_saturday_as_holiday": False}
