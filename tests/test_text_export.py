"""Tests for the plain-text schedule report."""

from conftest import make_day

from workschedule.domain.schedules import editing
from workschedule.domain.schedules.text_export import date_label, export_filename, render_day, render_schedules


def test_date_label():
    assert date_label("2026-03-02") == "Monday, March 2, 2026"
    assert date_label("") == "No Date"


def test_render_day_layout():
    text = render_day(make_day(date="2026-03-02", pm_name="JOHN SMITH"))
    assert text.split("\r\n") == [
        "Monday, March 2, 2026",
        "=" * len("Monday, March 2, 2026"),
        "",
        "JOHN SMITH",
        "----------",
        "  Alice Jones, Bob Brown  —  123 Main St, Springfield",
    ]


def test_placeholders_and_skipped_pms():
    day = make_day(date="", pm_name="", job="", workers=[])
    day = editing.add_project_manager(day, "")
    lines = render_day(day).split("\r\n")
    assert lines[:2] == ["No Date", "======="]
    assert lines.count("(No PM)") == 1
    assert "  (no workers)  —  (no job)" in lines


def test_days_sorted_and_separated():
    undated = make_day("day-u", date="")
    later = make_day("day-l", date="2026-03-04")
    earlier = make_day("day-e", date="2026-03-02")
    sections = render_schedules([undated, later, earlier]).split("\r\n\r\n\r\n")
    assert [s.split("\r\n")[0] for s in sections] == [
        "Monday, March 2, 2026",
        "Wednesday, March 4, 2026",
        "No Date",
    ]


def test_range_filter_keeps_undated():
    days = [make_day("day-a", date="2026-03-02"), make_day("day-u", date="")]
    text = render_schedules(days, date_from="2026-03-03")
    assert text.startswith("No Date")


def test_filename():
    days = [make_day("day-l", date="2026-03-04"), make_day("day-e", date="2026-03-02")]
    assert export_filename(days) == "schedule-2026-03-02-to-2026-03-04.txt"
