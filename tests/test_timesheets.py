"""Tests for timesheet push with default custom fields, and timesheet listing."""

import asyncio
from datetime import date, timedelta

import pytest

from workschedule.domain.qbtime.errors import NoEntriesError
from workschedule.domain.qbtime.timesheets import create_timesheets, default_custom_fields, list_timesheets


@pytest.fixture
def custom_fields(fake_tsheets):
    fake_tsheets.customfields = {
        "7": {"id": 7, "name": "Service Item", "applies_to": "timesheet", "type": "managed-list"},
        "8": {"id": 8, "name": "Notes", "applies_to": "timesheet", "type": "free-form"},
        "9": {"id": 9, "name": "Vehicle", "applies_to": "user", "type": "managed-list"},
    }
    fake_tsheets.customfield_items = {
        "7": [
            {"id": 70, "name": "Plumbing", "active": True},
            {"id": 71, "name": "(none)", "active": True},
        ]
    }
    return fake_tsheets


def _run(qb_client, call):
    async def run():
        async with qb_client as qb:
            return await call(qb)

    return asyncio.run(run())


class TestDefaultCustomFields:
    def test_defaults_for_timesheet_fields_only(self, qb_client, custom_fields):
        defaults = _run(qb_client, default_custom_fields)
        assert defaults == {"7": "71", "8": ""}

    def test_inactive_none_item_is_ignored(self, qb_client, custom_fields):
        custom_fields.customfield_items["7"][1]["active"] = False
        assert _run(qb_client, default_custom_fields)["7"] == ""


class TestCreateTimesheets:
    def test_caller_values_override_defaults(self, qb_client, custom_fields):
        entry = {
            "user_id": 201,
            "jobcode_id": 301,
            "type": "manual",
            "date": "2026-03-02",
            "duration": 3600,
            "customfields": {"8": "Back door key under mat"},
        }
        result = _run(qb_client, lambda qb: create_timesheets(qb, [entry]))

        assert result["created"] == 1
        assert "errors" not in result
        posted = custom_fields.posted_items("timesheets")
        assert posted[0]["customfields"] == {"7": "71", "8": "Back door key under mat"}
        assert posted[0]["duration"] == 3600

    def test_no_entries(self, qb_client, fake_tsheets):
        with pytest.raises(NoEntriesError):
            _run(qb_client, lambda qb: create_timesheets(qb, []))
        assert fake_tsheets.requests == []


class TestListTimesheets:
    def test_defaults(self, qb_client, fake_tsheets):
        data = _run(qb_client, list_timesheets)

        call = fake_tsheets.requests[0]
        assert call.url.params["start_date"] == (date.today() - timedelta(days=30)).isoformat()
        assert call.url.params["limit"] == "10"
        assert "end_date" not in call.url.params
        assert data["total"] == 1
        assert data["timesheets"][0]["notes"] == ""
        assert data["users"] == [{"id": 201, "name": "Alice Jones"}]

    def test_explicit_range(self, qb_client, fake_tsheets):
        _run(qb_client, lambda qb: list_timesheets(qb, "2026-03-01", "2026-03-31", 50))
        params = fake_tsheets.requests[0].url.params
        assert (params["start_date"], params["end_date"], params["limit"]) == ("2026-03-01", "2026-03-31", "50")

    def test_route(self, client):
        body = client.post("/api/qbtime/timesheets-list", json={"token": "t"}).json()
        assert body["total"] == 1
