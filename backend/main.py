from contextlib import asynccontextmanager
from datetime import date
from typing import Optional
import asyncio
import logging
import threading
import uuid

from fastapi import BackgroundTasks, FastAPI, HTTPException
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware

from config import (
    CORS_ORIGINS,
    DEFAULT_USER_ID,
    LOG_LEVEL,
    RECURRING_HORIZON_DAYS,
    RECURRING_STARTUP_DELAY,
)
from models import (
    ClientCreate,
    GeneralSettings,
    GenerateRequest,
    GeneratedEntry,
    ProjectCreate,
    RecurrenceAction,
    RecurrenceSettings,
    RecurringTaskSummary,
    TaskCreate,
    TaskUpdate,
    TimeEntryCreate,
)
from database import (
    DuplicateEntryError,
    init_db,
    get_all_clients,
    get_client_db,
    create_client_db,
    get_all_projects,
    get_project_db,
    create_project_db,
    get_all_tasks,
    get_recurring_tasks,
    get_task_db,
    create_task_db,
    update_task_db,
    set_task_recurrence_db,
    clear_task_recurrence_db,
    delete_task_db,
    get_all_entries,
    create_entry_db,
    delete_entry_db,
    bulk_delete_entries_db,
    get_general_settings,
    update_general_settings,
)
from public_holidays import italian_holiday
from materializer import generate_recurring_entries, merge_entries
from recurrence import next_due_date, parse_recurrence_pattern
from workdays import WorkdayCalendar

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

# Generation runs must not overlap: each one reads its snapshot before creating
_generation_lock = threading.Lock()


def current_calendar() -> WorkdayCalendar:
    settings = get_general_settings()
    return WorkdayCalendar(
        treat_saturday_as_holiday=settings.treat_saturday_as_holiday,
        holiday_lookup=italian_holiday,
    )


def run_recurring_generation(
    today: Optional[date] = None,
    user_id: Optional[str] = None,
    hourly_cost: float = 0.0
) -> dict:
    """Create missing placeholder entries for every recurring task."""
    today = today or date.today()
    with _generation_lock:
        existing = get_all_entries()
        created = generate_recurring_entries(
            get_recurring_tasks(),
            existing,
            get_project_db,
            get_client_db,
            current_calendar(),
            today,
            create_entry_db,
            user_id=DEFAULT_USER_ID if user_id is None else user_id,
            hourly_cost=hourly_cost,
            horizon_days=RECURRING_HORIZON_DAYS,
        )
    return {"created": created, "entries": merge_entries(existing, created)}


def _generate_in_background() -> None:
    try:
        run_recurring_generation()
    except Exception:
        logger.exception("Recurring entry generation failed")


async def _generate_after_delay(delay: float) -> None:
    await asyncio.sleep(delay)
    await run_in_threadpool(_generate_in_background)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    # Startup
    init_db()
    startup_run = None
    if RECURRING_STARTUP_DELAY is not None:
        startup_run = asyncio.create_task(_generate_after_delay(RECURRING_STARTUP_DELAY))
    yield
    # Shutdown
    if startup_run is not None and not startup_run.done():
        startup_run.cancel()

app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/clients")
def get_clients() -> list[dict]:
    return [c.model_dump() for c in get_all_clients()]


@app.post("/clients")
def create_client(client_data: ClientCreate) -> dict:
    return create_client_db(str(uuid.uuid4()), client_data.name).model_dump()


@app.get("/projects")
def get_projects() -> list[dict]:
    return [p.model_dump() for p in get_all_projects()]


@app.post("/projects")
def create_project(project_data: ProjectCreate) -> dict:
    if not get_client_db(project_data.client_id):
        raise HTTPException(status_code=404, detail="Client not found")
    return create_project_db(
        str(uuid.uuid4()),
        project_data.name,
        project_data.client_id,
        project_data.color,
        project_data.description
    ).model_dump()


@app.get("/tasks")
def get_tasks() -> list[dict]:
    return [t.model_dump() for t in get_all_tasks()]


@app.post("/tasks")
def create_task(task_data: TaskCreate, background_tasks: BackgroundTasks) -> dict:
    if not get_project_db(task_data.project_id):
        raise HTTPException(status_code=404, detail="Project not found")
    task = create_task_db(
        str(uuid.uuid4()),
        task_data.name,
        task_data.project_id,
        task_data.description,
        task_data.is_recurring,
        task_data.recurrence_pattern,
        task_data.recurrence_start,
        task_data.recurrence_end,
        task_data.recurrence_duration
    )
    if task.is_recurring:
        background_tasks.add_task(_generate_in_background)
    return task.model_dump()


@app.patch("/tasks/{task_id}")
def update_task(task_id: str, task_data: TaskUpdate) -> dict:
    result = update_task_db(task_id, **task_data.model_dump(exclude_none=True))
    if not result:
        raise HTTPException(status_code=404, detail="Task not found")
    return result.model_dump()


@app.delete("/tasks/{task_id}")
def delete_task(task_id: str) -> dict:
    if not delete_task_db(task_id):
        raise HTTPException(status_code=404, detail="Task not found")
    return {"status": "deleted"}


@app.put("/tasks/{task_id}/recurrence")
def set_task_recurrence(task_id: str, settings: RecurrenceSettings, background_tasks: BackgroundTasks) -> dict:
    """Make a task recurring and fill in its placeholder entries."""
    result = set_task_recurrence_db(task_id, settings.pattern, settings.start, settings.end, settings.duration)
    if not result:
        raise HTTPException(status_code=404, detail="Task not found")
    background_tasks.add_task(_generate_in_background)
    return result.model_dump()


@app.delete("/tasks/{task_id}/recurrence")
def remove_task_recurrence(task_id: str, action: RecurrenceAction = "stop") -> dict:
    """
    Stop a task from recurring and clean up its entries:
    stop removes placeholders, delete_future removes entries from today on,
    delete_all removes every entry of the task.
    """
    task = get_task_db(task_id)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")

    clear_task_recurrence_db(task_id)

    if action == "stop":
        deleted = bulk_delete_entries_db(task.project_id, task.name, placeholder_only=True)
    elif action == "delete_future":
        deleted = bulk_delete_entries_db(task.project_id, task.name, future_only=True)
    else:
        deleted = bulk_delete_entries_db(task.project_id, task.name)

    logger.info("Stopped recurrence of task %s (%s), deleted %d entries", task_id, action, deleted)
    return {"status": "stopped", "deleted": deleted}


@app.get("/recurring")
def get_recurring() -> list[dict]:
    """Active recurring tasks with their client, project and next due date."""
    calendar = current_calendar()
    today = date.today()
    summaries = []
    for task in get_recurring_tasks():
        project = get_project_db(task.project_id)
        client = get_client_db(project.client_id) if project else None
        next_due = next_due_date(
            parse_recurrence_pattern(task.recurrence_pattern),
            task.recurrence_start or today,
            today,
            calendar.is_working_day,
            end=task.recurrence_end,
        )
        summaries.append(RecurringTaskSummary(
            task=task,
            client_name=client.name if client else None,
            project_name=project.name if project else None,
            next_due=next_due,
        ).model_dump())
    return summaries


@app.post("/recurring/generate")
def generate_recurring(request: Optional[GenerateRequest] = None) -> dict:
    """Run recurring entry generation now and return what was created."""
    request = request or GenerateRequest()
    result = run_recurring_generation(request.today, request.user_id, request.hourly_cost)
    return {
        "created": [e.model_dump() for e in result["created"]],
        "entries": [e.model_dump() for e in result["entries"]],
    }


@app.get("/entries")
def get_entries() -> list[dict]:
    return [e.model_dump() for e in get_all_entries()]


@app.post("/entries")
def create_entry(entry_data: TimeEntryCreate) -> dict:
    project = get_project_db(entry_data.project_id)
    client = get_client_db(project.client_id) if project else None
    if not project or not client:
        raise HTTPException(status_code=404, detail="Project not found")

    entry = GeneratedEntry(
        date=entry_data.date,
        user_id=entry_data.user_id,
        client_id=client.id,
        client_name=client.name,
        project_id=project.id,
        project_name=project.name,
        task=entry_data.task,
        duration=entry_data.duration,
        hourly_cost=entry_data.hourly_cost,
        is_placeholder=False,
    )
    try:
        return create_entry_db(entry, notes=entry_data.notes).model_dump()
    except DuplicateEntryError as e:
        raise HTTPException(status_code=409, detail=str(e))


@app.delete("/entries/{entry_id}")
def delete_entry(entry_id: str) -> dict:
    if not delete_entry_db(entry_id):
        raise HTTPException(status_code=404, detail="Entry not found")
    return {"status": "deleted"}


@app.delete("/entries")
def bulk_delete_entries(
    project_id: str,
    task: str,
    future_only: bool = False,
    placeholder_only: bool = False
) -> dict:
    """Delete the entries of one task (used when cleaning up a recurrence)."""
    deleted = bulk_delete_entries_db(project_id, task, future_only, placeholder_only)
    return {"message": f"Deleted {deleted} entries", "deleted": deleted}


@app.get("/settings/general")
def get_settings() -> dict:
    return get_general_settings().model_dump()


@app.put("/settings/general")
def put_settings(settings: GeneralSettings) -> dict:
    return update_general_settings(settings.treat_saturday_as_holiday).model_dump()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
