"""Plain-text rendering of the schedule tree"""

from typing import Iterable, Optional

from .editing import WEEKDAY_NAMES, filter_by_date, parse_iso_date, sort_by_date
from .schemas import DailySchedule

MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)

LINE_BREAK = "\r\n"
SECTION_BREAK = LINE_BREAK * 3


def date_label(value: str) -> str:
    """``2026-03-02`` -> ``Monday, March 2, 2026``; empty -> ``No Date``"""
    if not value:
        return "No Date"
    d = parse_iso_date(value)
    return f"{WEEKDAY_NAMES[d.weekday()]}, {MONTH_NAMES[d.month - 1]} {d.day}, {d.year}"


def render_day(day: DailySchedule) -> str:
    label = date_label(day.date)
    lines = [label, "=" * len(label)]

    for pm in day.projectManagers:
        if not pm.name and not pm.assignments:
            continue
        pm_label = pm.name or "(No PM)"
        lines.append("")
        lines.append(pm_label)
        lines.append("-" * len(pm_label))
        for a in pm.assignments:
            workers = ", ".join(a.workers) if a.workers else "(no workers)"
            job = a.job or "(no job)"
            lines.append(f"  {workers}  —  {job}")

    return LINE_BREAK.join(lines)


def render_schedules(
    schedules: Iterable[DailySchedule],
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
) -> str:
    """One section per day, ordered by date with undated days last"""
    days = sort_by_date(filter_by_date(schedules, date_from, date_to))
    return SECTION_BREAK.join(render_day(day) for day in days)


def export_filename(schedules: Iterable[DailySchedule]) -> str:
    days = sort_by_date(schedules)
    first = days[0].date if days and days[0].date else "undated"
    last = days[-1].date if days and days[-1].date else "undated"
    return f"schedule-{first}-to-{last}.txt"
