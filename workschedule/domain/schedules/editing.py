"""
Schedule edit model

Pure functions over the Day -> PM -> Assignment tree. Every mutation returns a
new tree that replaces only the branch it touched; sibling days, PMs and
assignments are returned as the same objects, so callers can detect changes
by identity.
"""

import logging
from datetime import date as dt_date
from typing import Callable, Iterable, Optional

from .schemas import DailySchedule, DaySummary, ProjectManager, WorkerAssignment, new_id

logger = logging.getLogger(__name__)

WEEKDAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

ConfirmCallback = Callable[[str], bool]


class ScheduleEditError(LookupError):
    """Raised when an edit targets a day, PM or assignment that doesn't exist"""


class WorkerAlreadyAssigned(Exception):
    """Adding a worker who is already on another job that day was not confirmed"""

    def __init__(self, worker: str):
        self.worker = worker
        super().__init__(f"{worker} is already assigned to another job today")


def parse_iso_date(value: str) -> dt_date:
    return dt_date.fromisoformat(value)


def weekday_name(value: str) -> str:
    return WEEKDAY_NAMES[parse_iso_date(value).weekday()]


# ---------------------------------------------------------------------------
# Collection level
# ---------------------------------------------------------------------------


def add_day(schedules: list[DailySchedule]) -> tuple[list[DailySchedule], DailySchedule]:
    """Append a blank, undated day"""
    day = DailySchedule(id=new_id("day"))
    return [*schedules, day], day


def replace_schedule(schedules: list[DailySchedule], updated: DailySchedule) -> list[DailySchedule]:
    if not any(s.id == updated.id for s in schedules):
        raise ScheduleEditError(f"Schedule {updated.id} not found")
    return [updated if s.id == updated.id else s for s in schedules]


def remove_schedule(schedules: list[DailySchedule], schedule_id: str) -> list[DailySchedule]:
    return [s for s in schedules if s.id != schedule_id]


def find_schedule(schedules: Iterable[DailySchedule], schedule_id: str) -> DailySchedule:
    for s in schedules:
        if s.id == schedule_id:
            return s
    raise ScheduleEditError(f"Schedule {schedule_id} not found")


def mark_sent(schedules: list[DailySchedule], schedule_id: str) -> list[DailySchedule]:
    """Flag a day as sent. The flag is only ever set here, never cleared."""
    return [
        s.model_copy(update={"sentToQB": True}) if s.id == schedule_id and not s.sentToQB else s
        for s in schedules
    ]


def copy_day(schedule: DailySchedule, existing_ids: Iterable[str] = ()) -> DailySchedule:
    """
    Deep-clone a day under fresh ids for the day, every PM and every assignment.
    Date, day name and the sent flag are cleared; names, workers and jobs are kept.
    """
    taken = set(existing_ids) | _all_ids(schedule)

    def fresh(prefix: str) -> str:
        candidate = new_id(prefix)
        while candidate in taken:
            candidate = new_id(prefix)
        taken.add(candidate)
        return candidate

    pms = []
    for pm in schedule.projectManagers:
        pm_id = fresh("pm")
        assignments = [
            WorkerAssignment(id=fresh("job"), workers=list(a.workers), job=a.job, pmId=pm_id)
            for a in pm.assignments
        ]
        pms.append(ProjectManager(id=pm_id, name=pm.name, assignments=assignments))

    return DailySchedule(
        id=fresh("day"), date="", dayName="", sentToQB=False, projectManagers=pms
    )


def _all_ids(schedule: DailySchedule) -> set[str]:
    ids = {schedule.id}
    for pm in schedule.projectManagers:
        ids.add(pm.id)
        ids.update(a.id for a in pm.assignments)
    return ids


# ---------------------------------------------------------------------------
# Day level
# ---------------------------------------------------------------------------


def update_date(schedule: DailySchedule, new_date: str) -> DailySchedule:
    """Set the date and derive the weekday name from it"""
    if not new_date:
        return schedule.model_copy(update={"date": "", "dayName": ""})
    return schedule.model_copy(update={"date": new_date, "dayName": weekday_name(new_date)})


def add_project_manager(schedule: DailySchedule, name: str = "") -> DailySchedule:
    pm = ProjectManager(id=new_id("pm"), name=name)
    return schedule.model_copy(update={"projectManagers": [*schedule.projectManagers, pm]})


def update_project_manager(schedule: DailySchedule, pm_id: str, name: str) -> DailySchedule:
    return _replace_pm(schedule, pm_id, lambda pm: pm.model_copy(update={"name": name}))


def remove_project_manager(schedule: DailySchedule, pm_id: str) -> DailySchedule:
    _get_pm(schedule, pm_id)
    return schedule.model_copy(
        update={"projectManagers": [pm for pm in schedule.projectManagers if pm.id != pm_id]}
    )


def add_assignment(
    schedule: DailySchedule, pm_id: str, job: str = "", workers: Optional[list[str]] = None
) -> DailySchedule:
    assignment = WorkerAssignment(id=new_id("job"), workers=list(workers or []), job=job, pmId=pm_id)
    return _replace_pm(
        schedule,
        pm_id,
        lambda pm: pm.model_copy(update={"assignments": [*pm.assignments, assignment]}),
    )


def update_assignment(
    schedule: DailySchedule,
    pm_id: str,
    assignment_id: str,
    *,
    workers: Optional[list[str]] = None,
    job: Optional[str] = None,
) -> DailySchedule:
    updates = {}
    if workers is not None:
        updates["workers"] = list(workers)
    if job is not None:
        updates["job"] = job
    return _replace_assignment(
        schedule, pm_id, assignment_id, lambda a: a.model_copy(update=updates)
    )


def remove_assignment(schedule: DailySchedule, pm_id: str, assignment_id: str) -> DailySchedule:
    pm = _get_pm(schedule, pm_id)
    _get_assignment(pm, assignment_id)
    return _replace_pm(
        schedule,
        pm_id,
        lambda p: p.model_copy(
            update={"assignments": [a for a in p.assignments if a.id != assignment_id]}
        ),
    )


def workers_used_elsewhere(schedule: DailySchedule, assignment_id: str, worker: str) -> bool:
    """True if ``worker`` is on any assignment of this day other than ``assignment_id``"""
    return any(
        a.id != assignment_id and worker in a.workers
        for pm in schedule.projectManagers
        for a in pm.assignments
    )


def toggle_worker(
    schedule: DailySchedule,
    pm_id: str,
    assignment_id: str,
    worker: str,
    confirm: Optional[ConfirmCallback] = None,
) -> DailySchedule:
    """
    Remove ``worker`` from the assignment if present, otherwise add them.

    Adding someone already working another job that day asks ``confirm`` with a
    warning message; without a callback, or if it returns False, the edit is
    refused with WorkerAlreadyAssigned.
    """
    assignment = _get_assignment(_get_pm(schedule, pm_id), assignment_id)

    if worker in assignment.workers:
        remaining = [w for w in assignment.workers if w != worker]
        return update_assignment(schedule, pm_id, assignment_id, workers=remaining)

    if workers_used_elsewhere(schedule, assignment_id, worker):
        message = f"{worker} is already assigned to another job today. Are you sure?"
        if confirm is None or not confirm(message):
            logger.info(f"Worker {worker} not added to {assignment_id}: already assigned today")
            raise WorkerAlreadyAssigned(worker)

    return update_assignment(
        schedule, pm_id, assignment_id, workers=[*assignment.workers, worker]
    )


# ---------------------------------------------------------------------------
# Stats and ordering
# ---------------------------------------------------------------------------


def count_workers(schedules: Iterable[DailySchedule]) -> int:
    return sum(len(a.workers) for s in schedules for pm in s.projectManagers for a in pm.assignments)


def day_summary(schedule: DailySchedule) -> DaySummary:
    return DaySummary(
        projectManagers=len(schedule.projectManagers),
        assignments=sum(len(pm.assignments) for pm in schedule.projectManagers),
        workers=count_workers([schedule]),
    )


def sort_by_date(schedules: Iterable[DailySchedule]) -> list[DailySchedule]:
    """Oldest first; undated days go last and keep their relative order"""
    schedules = list(schedules)
    dated = sorted((s for s in schedules if s.date), key=lambda s: s.date)
    return dated + [s for s in schedules if not s.date]


def filter_by_date(
    schedules: Iterable[DailySchedule],
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
) -> list[DailySchedule]:
    """Keep days inside [date_from, date_to]; undated days are always kept"""
    result = []
    for s in schedules:
        if s.date:
            if date_from and s.date < date_from:
                continue
            if date_to and s.date > date_to:
                continue
        result.append(s)
    return result


def newest_first(schedules: Iterable[DailySchedule]) -> list[DailySchedule]:
    """Newest date first; undated days count as oldest"""
    schedules = list(schedules)
    dated = sorted((s for s in schedules if s.date), key=lambda s: s.date, reverse=True)
    return dated + [s for s in schedules if not s.date]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _get_pm(schedule: DailySchedule, pm_id: str) -> ProjectManager:
    for pm in schedule.projectManagers:
        if pm.id == pm_id:
            return pm
    raise ScheduleEditError(f"Project manager {pm_id} not found in {schedule.id}")


def _get_assignment(pm: ProjectManager, assignment_id: str) -> WorkerAssignment:
    for a in pm.assignments:
        if a.id == assignment_id:
            return a
    raise ScheduleEditError(f"Assignment {assignment_id} not found under {pm.id}")


def _replace_pm(
    schedule: DailySchedule, pm_id: str, change: Callable[[ProjectManager], ProjectManager]
) -> DailySchedule:
    target = _get_pm(schedule, pm_id)
    pms = [change(pm) if pm is target else pm for pm in schedule.projectManagers]
    return schedule.model_copy(update={"projectManagers": pms})


def _replace_assignment(
    schedule: DailySchedule,
    pm_id: str,
    assignment_id: str,
    change: Callable[[WorkerAssignment], WorkerAssignment],
) -> DailySchedule:
    target = _get_assignment(_get_pm(schedule, pm_id), assignment_id)

    def change_pm(pm: ProjectManager) -> ProjectManager:
        assignments = [change(a) if a is target else a for a in pm.assignments]
        return pm.model_copy(update={"assignments": assignments})

    return _replace_pm(schedule, pm_id, change_pm)
