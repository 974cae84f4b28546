"""Tests for the client workspace: cache fallback, debounced saves, cleanup and send-to-QB."""

import asyncio
from unittest.mock import AsyncMock

import httpx
import pytest
from conftest import make_day

from workschedule.client.local_cache import STORAGE_KEY, FileStore, ScheduleCache
from workschedule.client.remote import ApiError, ScheduleApiClient
from workschedule.client.workspace import ScheduleWorkspace, SyncStatus
from workschedule.domain.qbtime.schemas import ExportResult
from workschedule.domain.schedules import editing


@pytest.fixture
def cache(tmp_path):
    return ScheduleCache(FileStore(tmp_path / "cache"))


@pytest.fixture
def api():
    mock = AsyncMock(spec=ScheduleApiClient)
    mock.load_schedules.return_value = []
    return mock


@pytest.fixture
def workspace(api, cache):
    return ScheduleWorkspace(api, cache, debounce_seconds=0.05)


def _days(n):
    return [make_day(f"day-{i:02d}", date=f"2026-03-{i:02d}") for i in range(1, n + 1)]


class TestLoad:
    def test_loads_from_api_and_refreshes_cache(self, workspace, api, cache):
        api.load_schedules.return_value = [make_day()]
        asyncio.run(workspace.load())
        assert workspace.status is SyncStatus.OK
        assert [s.id for s in workspace.schedules] == ["day-1"]
        assert cache.load_schedules() == workspace.schedules

    def test_falls_back_to_cache_when_api_is_down(self, workspace, api, cache):
        cache.save_schedules([make_day("cached")])
        api.load_schedules.side_effect = httpx.ConnectError("connection refused")
        asyncio.run(workspace.load())
        assert workspace.status is SyncStatus.ERROR
        assert [s.id for s in workspace.schedules] == ["cached"]

    def test_cleanup_keeps_ten_newest_when_confirmed(self, workspace, api):
        api.load_schedules.return_value = [make_day("undated", date=""), *_days(11)]
        prompts = []

        async def run():
            await workspace.load(confirm_cleanup=lambda m: prompts.append(m) or True)
            await workspace.flush()

        asyncio.run(run())
        assert [s.id for s in workspace.schedules] == [f"day-{i:02d}" for i in range(2, 12)]
        assert "12 schedules" in prompts[0]
        api.save_schedules.assert_awaited_once()

    def test_unreadable_cache_with_api_down_starts_empty(self, workspace, api, tmp_path):
        (tmp_path / "cache").mkdir()
        (tmp_path / "cache" / f"{STORAGE_KEY}.json").write_bytes(b'{"schedules": [\xff\xfe]}')
        api.load_schedules.side_effect = httpx.ConnectError("connection refused")
        assert asyncio.run(workspace.load()) == []
        assert workspace.status is SyncStatus.ERROR

    def test_cleanup_declined(self, workspace, api):
        api.load_schedules.return_value = _days(12)
        asyncio.run(workspace.load(confirm_cleanup=lambda _: False))
        assert len(workspace.schedules) == 12
        api.save_schedules.assert_not_awaited()


class TestDebouncedSave:
    def test_burst_of_edits_is_one_put(self, workspace, api, cache):
        async def run():
            await workspace.load()
            workspace.add_day()
            workspace.add_day()
            day = workspace.add_day()
            workspace.edit_day(day.id, lambda d: editing.update_date(d, "2026-03-02"))
            await asyncio.sleep(0.2)

        asyncio.run(run())
        api.save_schedules.assert_awaited_once()
        saved = api.save_schedules.await_args.args[0]
        assert len(saved) == 3
        assert saved[-1].dayName == "Monday"
        assert workspace.status is SyncStatus.OK

    def test_cache_is_written_synchronously(self, workspace, cache):
        workspace.add_day()
        assert len(cache.load_schedules()) == 1

    def test_edits_outside_a_loop_wait_for_flush(self, workspace, api):
        workspace.add_day()
        api.save_schedules.assert_not_awaited()
        asyncio.run(workspace.flush())
        api.save_schedules.assert_awaited_once()
        asyncio.run(workspace.flush())
        api.save_schedules.assert_awaited_once()

    def test_save_failure_sets_error_and_keeps_cache(self, workspace, api, cache):
        api.save_schedules.side_effect = ApiError(500, {"error": "Failed to save schedules"})

        async def run():
            workspace.add_day()
            await asyncio.sleep(0.2)

        asyncio.run(run())
        assert workspace.status is SyncStatus.ERROR
        assert len(cache.load_schedules()) == 1


class TestCollectionEdits:
    def test_copy_and_delete(self, workspace):
        workspace.replace_all([make_day()])
        copy = workspace.copy_schedule("day-1")
        assert copy.id != "day-1"
        assert copy.date == ""
        workspace.delete_schedule("day-1")
        assert [s.id for s in workspace.schedules] == [copy.id]

    def test_stats_follow_the_filter(self, workspace):
        workspace.replace_all([make_day("day-a", date="2026-03-02"), make_day("day-b", date="2026-04-01")])
        stats = workspace.stats(date_from="2026-04-01")
        assert (stats.days, stats.workers, stats.filtered) == (1, 2, True)
        assert workspace.stats().days == 2

    def test_export_text(self, workspace):
        workspace.replace_all([make_day("day-a", date="2026-03-02")])
        filename, text = workspace.export_text()
        assert filename == "schedule-2026-03-02-to-2026-03-02.txt"
        assert text.startswith("Monday, March 2, 2026")


class TestSendDay:
    def test_success_marks_day_sent(self, workspace, api):
        api.export_day.return_value = ExportResult(success=True, created=1)
        workspace.replace_all([make_day()])

        result = asyncio.run(workspace.send_day("day-1"))

        assert result.created == 1
        assert workspace.schedules[0].sentToQB is True

    def test_failure_leaves_flag_alone(self, workspace, api):
        api.export_day.side_effect = ApiError(404, {"error": 'Technician "Zed" not found in QB Time'})
        workspace.replace_all([make_day()])

        result = asyncio.run(workspace.send_day("day-1"))

        assert result.success is False
        assert result.errors == ['Technician "Zed" not found in QB Time']
        assert workspace.schedules[0].sentToQB is False

    def test_network_failure_is_a_failed_result(self, workspace, api):
        api.export_day.side_effect = httpx.ConnectError("connection refused")
        workspace.replace_all([make_day()])

        result = asyncio.run(workspace.send_day("day-1"))

        assert (result.success, result.created, result.failed) == (False, 0, 0)
        assert result.errors == ["connection refused"]
        assert workspace.schedules[0].sentToQB is False

    def test_resend_needs_confirmation(self, workspace, api):
        workspace.replace_all([make_day(sent=True)])
        assert asyncio.run(workspace.send_day("day-1")) is None
        assert asyncio.run(workspace.send_day("day-1", confirm_resend=lambda _: False)) is None
        api.export_day.assert_not_awaited()

        api.export_day.return_value = ExportResult(success=True, created=1)
        assert asyncio.run(workspace.send_day("day-1", confirm_resend=lambda _: True)).success is True
