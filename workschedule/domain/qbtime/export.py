"""
Schedule event export
Turns one day of assignments into QB Time schedule events and submits them.

Every job and technician name is resolved before anything is posted: a single
unknown name aborts the whole day. Once posting starts, failures are collected
per batch and per entry instead of aborting.
"""

import logging
import math
from datetime import date, timedelta
from typing import Any

from ..schedules.editing import parse_iso_date
from ..schedules.schemas import DailySchedule, ProjectManager, WorkerAssignment
from .client import QBTimeClient, results_of
from .errors import (
    JobNotFoundError,
    MissingDateError,
    NoCalendarError,
    NoEntriesError,
    TechnicianNotFoundError,
)
from .schemas import BulkCreateResult, Directory, ExportResult, ScheduleEventEntry

logger = logging.getLogger(__name__)

# Same week -> same color in the QB Time calendar view
SCHEDULE_COLORS = [
    "#F44336", "#EF6C00", "#43A047", "#2196F3", "#673AB7",
    "#E91E63", "#009688", "#3F51B5", "#9C27B0", "#785548",
    "#BF1959", "#827717", "#486B7A", "#8A2731", "#78909C",
    "#FAB3AE", "#F8C499", "#B3D9B5", "#A6D5FA", "#D7A8DF",
    "#CDC8A2", "#6A5E72", "#888888", "#010101",
]

TITLE_MAX_LENGTH = 64
EVENT_TIMEZONE = "America/New_York"
WORKDAY_START = "08:00:00"
WORKDAY_END = "16:00:00"
EDT_OFFSET = "-04:00"
EST_OFFSET = "-05:00"


# ---------------------------------------------------------------------------
# Color by ISO week
# ---------------------------------------------------------------------------


def iso_week(d: date) -> int:
    """ISO week number: move to the Thursday of d's week and count weeks from Jan 1 of its year"""
    thursday = d + timedelta(days=4 - d.isoweekday())
    year_start = date(thursday.year, 1, 1)
    return math.ceil(((thursday - year_start).days + 1) / 7)


def week_color(d: date) -> str:
    return SCHEDULE_COLORS[iso_week(d) % len(SCHEDULE_COLORS)]


# ---------------------------------------------------------------------------
# US Eastern daylight saving (second Sunday of March to first Sunday of November)
# ---------------------------------------------------------------------------


def _sunday_index(d: date) -> int:
    # 0 = Sunday ... 6 = Saturday
    return d.isoweekday() % 7


def second_sunday_of_march(year: int) -> int:
    first_day = _sunday_index(date(year, 3, 1))
    return 8 if first_day == 0 else 15 - first_day


def first_sunday_of_november(year: int) -> int:
    first_day = _sunday_index(date(year, 11, 1))
    return 1 if first_day == 0 else 8 - first_day


def is_eastern_daylight_time(d: date) -> bool:
    if 3 < d.month < 11:
        return True
    if d.month == 3:
        return d.day >= second_sunday_of_march(d.year)
    if d.month == 11:
        return d.day < first_sunday_of_november(d.year)
    return False


def eastern_offset(d: date) -> str:
    return EDT_OFFSET if is_eastern_daylight_time(d) else EST_OFFSET


# ---------------------------------------------------------------------------
# Titles and notes
# ---------------------------------------------------------------------------


def pm_short_name(name: str) -> str:
    """``JOHN A SMITH`` -> ``JOHN S``; single names are kept as they are"""
    parts = name.split()
    if not parts:
        return ""
    if len(parts) > 1:
        return f"{parts[0]} {parts[-1][0]}"
    return parts[0]


def street_address(job: str) -> str:
    return job.split(",")[0].strip()


def first_name(worker: str) -> str:
    parts = worker.split()
    return parts[0] if parts else ""


def truncate_title(title: str, limit: int = TITLE_MAX_LENGTH) -> str:
    if len(title) > limit:
        return title[: limit - 3] + "..."
    return title


def build_title(pm_name: str, job: str, workers: list[str]) -> str:
    tech_names = ", ".join(first_name(w) for w in workers)
    return truncate_title(f"{pm_short_name(pm_name)} - {street_address(job)} ({tech_names})")


def build_notes(pm_name: str, job: str, workers: list[str]) -> str:
    return f"{pm_name} - {job} ({', '.join(workers)})"


# ---------------------------------------------------------------------------
# Entries
# ---------------------------------------------------------------------------


def exportable_assignments(schedule: DailySchedule) -> list[tuple[ProjectManager, WorkerAssignment]]:
    """(PM, assignment) pairs that have at least one worker and a job"""
    return [
        (pm, a)
        for pm in schedule.projectManagers
        for a in pm.assignments
        if a.workers and a.job
    ]


def build_entries(schedule: DailySchedule, directory: Directory) -> list[ScheduleEventEntry]:
    """
    One schedule event per assignment. Raises JobNotFoundError or
    TechnicianNotFoundError on the first name that can't be resolved.
    """
    pairs = exportable_assignments(schedule)
    if not pairs:
        return []
    if not schedule.date:
        raise MissingDateError(schedule.id)

    day = parse_iso_date(schedule.date)
    color = week_color(day)
    offset = eastern_offset(day)
    start = f"{schedule.date}T{WORKDAY_START}{offset}"
    end = f"{schedule.date}T{WORKDAY_END}{offset}"

    entries = []
    for pm, assignment in pairs:
        job = directory.find_job(assignment.job)
        if job is None:
            raise JobNotFoundError(assignment.job)

        user_ids = []
        for worker in assignment.workers:
            tech = directory.find_technician(worker)
            if tech is None:
                raise TechnicianNotFoundError(worker)
            user_ids.append(tech.id)

        entries.append(
            ScheduleEventEntry(
                assigned_user_ids=user_ids,
                jobcode_id=int(job.id),
                start=start,
                end=end,
                all_day=False,
                timezone=EVENT_TIMEZONE,
                title=build_title(pm.name, assignment.job, assignment.workers),
                notes=build_notes(pm.name, assignment.job, assignment.workers),
                location=assignment.job,
                color=color,
                draft=False,
            )
        )
    return entries


def _summarize_event(event: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": event.get("id"),
        "title": event.get("title"),
        "assigned_user_ids": event.get("assigned_user_ids"),
        "status": "ok",
    }


# ---------------------------------------------------------------------------
# Submission
# ---------------------------------------------------------------------------


async def create_schedule_events(client: QBTimeClient, entries: list[dict[str, Any]]) -> BulkCreateResult:
    """Attach the first schedule calendar to every entry and post them in batches"""
    if not entries:
        raise NoEntriesError("No schedule event entries provided")

    data = await client.get("schedule_calendars", action="fetch schedule calendars")
    calendar_ids = list(results_of(data, "schedule_calendars"))
    if not calendar_ids:
        raise NoCalendarError()

    calendar_id = int(calendar_ids[0])
    events = [
        {"schedule_calendar_id": calendar_id, **entry, "draft": entry.get("draft") or False}
        for entry in entries
    ]
    logger.info(f"📤 Sending {len(events)} schedule event(s) to calendar {calendar_id}")

    return await client.bulk_create("schedule_events", "schedule_events", events, _summarize_event)


class EventExportPipeline:
    """Sends one day to QB Time as schedule events, resolving names against ``directory``"""

    def __init__(self, client: QBTimeClient, directory: Directory):
        self.client = client
        self.directory = directory

    async def export_day(self, schedule: DailySchedule) -> ExportResult:
        entries = build_entries(schedule, self.directory)
        if not entries:
            raise NoEntriesError(
                "No valid entries to send - make sure each job has workers and a job selected"
            )

        payload = [e.model_dump(exclude_none=True) for e in entries]
        result = await create_schedule_events(self.client, payload)

        if result.failed:
            logger.warning(
                f"⚠️ {schedule.date or schedule.id}: {result.created} created, {result.failed} failed"
            )
        else:
            logger.info(f"✅ {schedule.date or schedule.id}: {result.created} schedule event(s) created")

        return ExportResult(
            success=result.created > 0,
            created=result.created,
            failed=result.failed,
            errors=result.errors,
            results=result.results,
        )
