"""
Schedule workspace

Holds the in-memory schedule collection for one user session. Every change is
written to the local cache straight away and pushed to the API after a short
quiet period, so a burst of edits becomes a single PUT.
"""

import asyncio
import logging
from enum import Enum
from typing import Callable, Optional

import httpx

from ..domain.qbtime.schemas import ExportResult
from ..domain.schedules import editing
from ..domain.schedules.editing import ConfirmCallback
from ..domain.schedules.schemas import DailySchedule, ScheduleStats
from ..domain.schedules.text_export import export_filename, render_schedules
from .local_cache import ScheduleCache
from .remote import ApiError, ScheduleApiClient

logger = logging.getLogger(__name__)

SAVE_DEBOUNCE_SECONDS = 0.5
KEEP_NEWEST_DAYS = 10


class SyncStatus(str, Enum):
    LOADING = "loading"
    OK = "ok"
    ERROR = "error"


class ScheduleWorkspace:
    def __init__(
        self,
        api: ScheduleApiClient,
        cache: ScheduleCache,
        debounce_seconds: float = SAVE_DEBOUNCE_SECONDS,
        keep_newest: int = KEEP_NEWEST_DAYS,
    ):
        self.api = api
        self.cache = cache
        self.debounce_seconds = debounce_seconds
        self.keep_newest = keep_newest
        self.schedules: list[DailySchedule] = []
        self.status = SyncStatus.LOADING
        self._save_task: Optional[asyncio.Task] = None
        self._inflight: Optional[asyncio.Task] = None
        self._dirty = False

    async def load(self, confirm_cleanup: Optional[ConfirmCallback] = None) -> list[DailySchedule]:
        """
        Load from the API, falling back to the local cache when it is unreachable.

        With more than ``keep_newest`` days, ``confirm_cleanup`` is asked whether
        to drop the oldest ones; undated days count as oldest.
        """
        self.status = SyncStatus.LOADING
        try:
            schedules = await self.api.load_schedules()
            self.status = SyncStatus.OK
            self.cache.save_schedules(schedules)
        except (ApiError, httpx.HTTPError) as e:
            logger.warning(f"⚠️ Failed to load schedules from API, using local cache: {e}")
            schedules = self.cache.load_schedules()
            self.status = SyncStatus.ERROR

        self.schedules = schedules

        if len(schedules) > self.keep_newest and confirm_cleanup is not None:
            ordered = editing.newest_first(schedules)
            to_delete = ordered[self.keep_newest:]
            message = (
                f"You have {len(schedules)} schedules. Delete the {len(to_delete)} oldest "
                f"and keep the {self.keep_newest} most recent?"
            )
            if confirm_cleanup(message):
                logger.info(f"🗑️ Auto-cleanup removing {len(to_delete)} old schedule(s)")
                keep = {s.id for s in ordered[: self.keep_newest]}
                self.apply(lambda current: [s for s in current if s.id in keep])

        return self.schedules

    # Changes

    def apply(self, change: Callable[[list[DailySchedule]], list[DailySchedule]]) -> list[DailySchedule]:
        """Replace the collection with ``change(schedules)`` and persist it"""
        self.schedules = change(self.schedules)
        self.cache.save_schedules(self.schedules)
        self._schedule_remote_save()
        return self.schedules

    def add_day(self) -> DailySchedule:
        schedules, day = editing.add_day(self.schedules)
        self.apply(lambda _: schedules)
        return day

    def update_schedule(self, updated: DailySchedule) -> None:
        self.apply(lambda s: editing.replace_schedule(s, updated))

    def edit_day(self, schedule_id: str, edit: Callable[[DailySchedule], DailySchedule]) -> DailySchedule:
        """Run one day-level edit (``editing.update_date``, ``editing.toggle_worker``...) and store it"""
        updated = edit(editing.find_schedule(self.schedules, schedule_id))
        self.update_schedule(updated)
        return updated

    def copy_schedule(self, schedule_id: str) -> DailySchedule:
        source = editing.find_schedule(self.schedules, schedule_id)
        existing = {s.id for s in self.schedules}
        copy = editing.copy_day(source, existing_ids=existing)
        self.apply(lambda s: [*s, copy])
        return copy

    def delete_schedule(self, schedule_id: str) -> None:
        self.apply(lambda s: editing.remove_schedule(s, schedule_id))

    def replace_all(self, schedules: list[DailySchedule]) -> None:
        """Swap in an imported or restored collection"""
        self.apply(lambda _: list(schedules))

    # Remote save

    def _schedule_remote_save(self) -> None:
        self._dirty = True
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop: the save waits for the next flush()
            return
        if self._save_task and not self._save_task.done():
            self._save_task.cancel()
        self._save_task = loop.create_task(self._debounced_save())

    async def _debounced_save(self) -> None:
        await asyncio.sleep(self.debounce_seconds)
        # Once the PUT starts, later edits schedule a new save instead of cancelling this one
        self._inflight, self._save_task = self._save_task, None
        await self._save_now()

    async def _save_now(self) -> None:
        snapshot = self.schedules
        self._dirty = False
        try:
            await self.api.save_schedules(snapshot)
            self.status = SyncStatus.OK
        except (ApiError, httpx.HTTPError) as e:
            logger.error(f"❌ Failed to save schedules to API: {e}")
            self.status = SyncStatus.ERROR

    async def flush(self) -> None:
        """Send any pending change now instead of waiting for the timer"""
        if self._save_task and not self._save_task.done():
            self._save_task.cancel()
            self._save_task = None
        if self._inflight and not self._inflight.done():
            await self._inflight
        if self._dirty:
            await self._save_now()

    # QuickBooks Time

    async def send_day(
        self, schedule_id: str, confirm_resend: Optional[ConfirmCallback] = None
    ) -> Optional[ExportResult]:
        """
        Export one day as schedule events. A day already sent needs
        ``confirm_resend``; returns None when the resend is declined.
        """
        schedule = editing.find_schedule(self.schedules, schedule_id)
        if schedule.sentToQB:
            message = "This schedule was already sent to QuickBooks Time. Send again?"
            if confirm_resend is None or not confirm_resend(message):
                return None

        try:
            result = await self.api.export_day(schedule)
        except ApiError as e:
            logger.error(f"❌ Failed to send {schedule_id} to QuickBooks Time: {e.message}")
            return ExportResult(success=False, created=0, failed=0, errors=[e.message])
        except httpx.HTTPError as e:
            logger.error(f"❌ Failed to send {schedule_id} to QuickBooks Time: {e}")
            return ExportResult(success=False, created=0, failed=0, errors=[str(e) or "Network error"])

        if result.success:
            self.apply(lambda s: editing.mark_sent(s, schedule_id))
            logger.info(f"✅ Sent {result.created} event(s) for {schedule.date or schedule_id}")
        return result

    # Views

    def filtered(self, date_from: Optional[str] = None, date_to: Optional[str] = None) -> list[DailySchedule]:
        return editing.filter_by_date(self.schedules, date_from, date_to)

    def stats(self, date_from: Optional[str] = None, date_to: Optional[str] = None) -> ScheduleStats:
        visible = self.filtered(date_from, date_to)
        return ScheduleStats(
            days=len(visible),
            workers=editing.count_workers(visible),
            filtered=bool(date_from or date_to),
            dateFrom=date_from,
            dateTo=date_to,
        )

    def export_text(self, date_from: Optional[str] = None, date_to: Optional[str] = None) -> tuple[str, str]:
        """(file name, CRLF text) for the days in range"""
        visible = self.filtered(date_from, date_to)
        return export_filename(visible), render_schedules(visible)
