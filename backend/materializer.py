"""
Recurring entry materialization.

Expands each recurring task's rule into dated placeholder time entries over a
bounded window, skipping non-working days and any (project, task, date) that
already has an entry. The existing entries are passed in as a snapshot so that
a rerun against the same snapshot plus its own output creates nothing.
"""
import logging
from datetime import date, timedelta
from typing import Callable, Iterable, Iterator, Optional

from models import Client, GeneratedEntry, Project, Task, TimeEntry
from recurrence import parse_recurrence_pattern, rule_matches
from workdays import WorkdayCalendar

logger = logging.getLogger(__name__)

DEFAULT_HORIZON_DAYS = 14

EntryKey = tuple[str, str, date]


def entry_key(project_id: str, task: str, day: date) -> EntryKey:
    return (project_id, task, day)


def build_entry_index(entries: Iterable[TimeEntry]) -> set[EntryKey]:
    """Index existing entries (placeholder or real) by (project_id, task, date)."""
    return {entry_key(e.project_id, e.task, e.date) for e in entries}


def generation_window(
    task: Task,
    today: date,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
) -> Optional[tuple[date, date]]:
    """
    Compute the inclusive [start, end] range to walk for a task.
    start is the recurrence start (today if unset). end is today + horizon,
    extended to the recurrence end when that lies further out.
    Returns None when the recurrence ends before it starts.
    """
    start = task.recurrence_start or today
    default_end = today + timedelta(days=horizon_days)

    if task.recurrence_end is not None and task.recurrence_end < start:
        return None

    end = default_end
    if task.recurrence_end is not None and task.recurrence_end > default_end:
        end = task.recurrence_end
    return start, end


def iter_due_dates(
    task: Task,
    today: date,
    calendar: WorkdayCalendar,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
) -> Iterator[date]:
    """Yield, in ascending order, the working days in the window on which the task is due."""
    rule = parse_recurrence_pattern(task.recurrence_pattern)
    if rule is None:
        logger.debug("Task %s has unrecognized pattern %r", task.id, task.recurrence_pattern)
        return

    window = generation_window(task, today, horizon_days)
    if window is None:
        return

    start, end = window
    # Offsets never step past end, so an end of date.max is safe
    for offset in range((end - start).days + 1):
        current = start + timedelta(days=offset)
        # Stop at the recurrence end rather than walking the rest of the window
        if task.recurrence_end is not None and current > task.recurrence_end:
            break
        if calendar.is_working_day(current) and rule_matches(rule, current, start):
            yield current


def plan_recurring_entries(
    tasks: Iterable[Task],
    existing_entries: Iterable[TimeEntry],
    resolve_project: Callable[[str], Optional[Project]],
    resolve_client: Callable[[str], Optional[Client]],
    calendar: WorkdayCalendar,
    today: date,
    user_id: str = "",
    hourly_cost: float = 0.0,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
) -> list[GeneratedEntry]:
    """
    Work out which placeholder entries are missing, without creating anything.

    Tasks that are not recurring, or whose project or client cannot be
    resolved, are skipped. A task whose planning raises is logged and
    skipped; the other tasks are still planned. The returned list is
    ordered by task, then date.
    """
    index = build_entry_index(existing_entries)
    planned: list[GeneratedEntry] = []

    for task in tasks:
        if not task.is_recurring:
            continue

        try:
            task_entries = _plan_task(
                task, index, resolve_project, resolve_client, calendar, today,
                user_id, hourly_cost, horizon_days,
            )
        except Exception:
            logger.exception("Failed to plan recurring entries for task %s", task.id)
            continue

        # Only a fully planned task claims its dates
        index.update(entry_key(e.project_id, e.task, e.date) for e in task_entries)
        planned.extend(task_entries)

    return planned


def _plan_task(
    task: Task,
    index: set[EntryKey],
    resolve_project: Callable[[str], Optional[Project]],
    resolve_client: Callable[[str], Optional[Client]],
    calendar: WorkdayCalendar,
    today: date,
    user_id: str,
    hourly_cost: float,
    horizon_days: int,
) -> list[GeneratedEntry]:
    project = resolve_project(task.project_id)
    client = resolve_client(project.client_id) if project else None
    if not project or not client:
        logger.debug("Skipping task %s: project or client not found", task.id)
        return []

    entries = []
    for day in iter_due_dates(task, today, calendar, horizon_days):
        if entry_key(task.project_id, task.name, day) in index:
            continue
        entries.append(GeneratedEntry(
            date=day,
            user_id=user_id,
            client_id=client.id,
            client_name=client.name,
            project_id=task.project_id,
            project_name=project.name,
            task=task.name,
            duration=task.recurrence_duration or 0,
            hourly_cost=hourly_cost,
            is_placeholder=True,
        ))
    return entries


def generate_recurring_entries(
    tasks: Iterable[Task],
    existing_entries: Iterable[TimeEntry],
    resolve_project: Callable[[str], Optional[Project]],
    resolve_client: Callable[[str], Optional[Client]],
    calendar: WorkdayCalendar,
    today: date,
    create_entry: Callable[[GeneratedEntry], TimeEntry],
    user_id: str = "",
    hourly_cost: float = 0.0,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
) -> list[TimeEntry]:
    """
    Plan missing placeholder entries and persist them one at a time.

    A failed create is logged and that date is left for the next run; the
    remaining dates and tasks are still attempted. Returns the entries that
    were created, in creation order.
    """
    requests = plan_recurring_entries(
        tasks,
        existing_entries,
        resolve_project,
        resolve_client,
        calendar,
        today,
        user_id=user_id,
        hourly_cost=hourly_cost,
        horizon_days=horizon_days,
    )

    created: list[TimeEntry] = []
    for request in requests:
        try:
            created.append(create_entry(request))
        except Exception:
            logger.exception(
                "Failed to create recurring entry for %s / %s on %s",
                request.project_id, request.task, request.date,
            )

    if requests:
        logger.info("Created %d of %d recurring entries", len(created), len(requests))
    return created


def merge_entries(existing: Iterable[TimeEntry], created: Iterable[TimeEntry]) -> list[TimeEntry]:
    """Combine new and existing entries, newest created_at first."""
    return sorted([*created, *existing], key=lambda e: e.created_at, reverse=True)
