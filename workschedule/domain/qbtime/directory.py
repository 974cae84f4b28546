"""
Directory sync
Pulls project managers, technicians, job codes and custom fields from QB Time
and flattens the paginated, id-keyed responses into plain lists.
"""

import asyncio
import logging
from datetime import date, timedelta
from typing import Any, Optional

from .client import QBTimeClient, results_of, supplemental_of
from .errors import GroupNotFoundError, NoCalendarError
from .schemas import (
    ConnectedUser,
    ConnectionInfo,
    CustomField,
    CustomFieldItem,
    Directory,
    GroupMembers,
    JobRef,
    UserRef,
)

logger = logging.getLogger(__name__)

JOBCODES_PAGE_SIZE = 50  # TSheets default page size
CUSTOMFIELD_ITEMS_PAGE_SIZE = 200
DEFAULT_EVENTS_LIMIT = 200


class DirectorySync:
    def __init__(
        self,
        client: QBTimeClient,
        pm_group: str = "PROJECT MANAGERS",
        tech_group: str = "TECHNICIANS",
    ):
        self.client = client
        self.pm_group = pm_group
        self.tech_group = tech_group

    async def connect(self) -> ConnectionInfo:
        """Check the token against ``current_user``"""
        data = await self.client.get("current_user", action="authenticate")
        users = list(results_of(data, "users").values())
        if not users:
            return ConnectionInfo(connected=True, user=None)

        current = users[0]
        name = f"{current.get('first_name', '')} {current.get('last_name', '')}".strip()
        logger.info(f"✅ Connected to QB Time as {name}")
        return ConnectionInfo(
            connected=True,
            user=ConnectedUser(id=current.get("id"), name=name, company=current.get("company_name")),
        )

    # Groups and users

    async def fetch_project_manager_group(self) -> GroupMembers:
        return await self._fetch_group_members(self.pm_group, upper_names=True)

    async def fetch_technician_group(self) -> GroupMembers:
        return await self._fetch_group_members(self.tech_group, upper_names=False)

    async def fetch_project_managers(self) -> list[UserRef]:
        return (await self.fetch_project_manager_group()).users

    async def fetch_technicians(self) -> list[UserRef]:
        return (await self.fetch_technician_group()).users

    async def _fetch_group_members(self, label: str, upper_names: bool) -> GroupMembers:
        group_name = label.upper()
        groups = results_of(await self.client.get("groups", action="fetch groups"), "groups")

        group_id: Optional[str] = None
        for gid, group in groups.items():
            if (group.get("name") or "").upper() == group_name:
                group_id = str(gid)
                break

        if group_id is None:
            available = [g.get("name") for g in groups.values()]
            logger.warning(f"⚠️ Group {group_name!r} not found; available: {available}")
            raise GroupNotFoundError(group_name, available)

        data = await self.client.get(
            "users", params={"group_ids": group_id, "active": "yes"}, action="fetch users"
        )
        users = [self._user_ref(u, upper_names) for u in results_of(data, "users").values()]
        logger.info(f"👥 {len(users)} user(s) in group {group_name!r}")
        return GroupMembers(groupId=group_id, users=users)

    @staticmethod
    def _user_ref(user: dict[str, Any], upper: bool) -> UserRef:
        first = user.get("first_name") or ""
        last = user.get("last_name") or ""
        name = user.get("display_name") or f"{first} {last}".strip()
        return UserRef(
            id=str(user.get("id")),
            name=name.upper() if upper else name,
            firstName=first,
            lastName=last,
        )

    # Job codes

    async def fetch_jobs(self) -> list[JobRef]:
        """Page through active job codes until a short or empty page"""
        jobs: list[JobRef] = []
        page = 1
        while True:
            data = await self.client.get(
                "jobcodes", params={"active": "yes", "page": page}, action="fetch jobcodes"
            )
            items = list(results_of(data, "jobcodes").values())
            jobs.extend(
                JobRef(
                    id=str(j.get("id")),
                    name=j.get("name") or "",
                    parentId=str(j["parent_id"]) if j.get("parent_id") else None,
                    type=j.get("type"),
                )
                for j in items
            )
            if len(items) < JOBCODES_PAGE_SIZE:
                break
            page += 1

        logger.info(f"📋 Fetched {len(jobs)} job code(s) in {page} page(s)")
        return jobs

    # Custom fields

    async def fetch_custom_field_items(self, customfield_id: str) -> list[CustomFieldItem]:
        """All items of one custom field, active and inactive, following ``more``"""
        items: list[CustomFieldItem] = []
        page = 1
        while True:
            data = await self.client.get(
                "customfielditems",
                params={
                    "customfield_id": customfield_id,
                    "limit": CUSTOMFIELD_ITEMS_PAGE_SIZE,
                    "page": page,
                    "active": "both",
                },
                action="fetch custom field items",
            )
            items.extend(
                CustomFieldItem(
                    id=str(item.get("id")),
                    customfield_id=str(item.get("customfield_id", customfield_id)),
                    name=item.get("name") or "",
                    short_code=item.get("short_code") or "",
                    active=bool(item.get("active")),
                    last_modified=item.get("last_modified"),
                )
                for item in results_of(data, "customfielditems").values()
            )
            if not (isinstance(data, dict) and data.get("more") is True):
                break
            page += 1
        return items

    async def fetch_custom_fields(self) -> list[CustomField]:
        """Field definitions, each with its active items"""
        data = await self.client.get("customfields", action="fetch custom fields")
        fields = [
            CustomField(
                id=str(f.get("id")),
                name=f.get("name") or "",
                required=bool(f.get("required")),
                type=f.get("ui_preference"),
                appliesTo=f.get("applies_to") or "both",
            )
            for f in results_of(data, "customfields").values()
        ]

        item_lists = await asyncio.gather(*(self.fetch_custom_field_items(f.id) for f in fields))
        return [
            field.model_copy(update={"items": [i for i in items if i.active]})
            for field, items in zip(fields, item_lists)
        ]

    # Everything the exporter needs

    async def fetch_directory(self) -> Directory:
        pms, techs, jobs = await asyncio.gather(
            self.fetch_project_managers(), self.fetch_technicians(), self.fetch_jobs()
        )
        return Directory(projectManagers=pms, technicians=techs, jobs=jobs)

    # Schedule calendars and events

    async def fetch_schedule_calendar_ids(self) -> list[str]:
        data = await self.client.get("schedule_calendars", action="fetch schedule calendars")
        calendars = results_of(data, "schedule_calendars")
        logger.info(
            f"📅 Found calendars: {list(calendars)} {[c.get('name') for c in calendars.values()]}"
        )
        return [str(cid) for cid in calendars]

    async def list_schedule_events(
        self,
        start: Optional[str] = None,
        end: Optional[str] = None,
        schedule_calendar_ids: Optional[str] = None,
    ) -> dict[str, Any]:
        calendar_ids = await self.fetch_schedule_calendar_ids()
        if not calendar_ids:
            raise NoCalendarError("No schedule calendars found")

        if not start:
            start = (date.today() - timedelta(days=30)).isoformat() + "T00:00:00-05:00"
        params = {
            "start": start,
            "schedule_calendar_ids": schedule_calendar_ids or ",".join(calendar_ids),
            "limit": DEFAULT_EVENTS_LIMIT,
            "active": "both",
            "team_events": "instance",
        }
        if end:
            params["end"] = end

        data = await self.client.get("schedule_events", params=params, action="fetch schedule events")
        events = [
            {**ev, "customfields": ev.get("customfields") or {}}
            for ev in results_of(data, "schedule_events").values()
        ]
        return {
            "events": events,
            "total": len(events),
            "users": [
                {"id": u.get("id"), "name": f"{u.get('first_name', '')} {u.get('last_name', '')}".strip()}
                for u in supplemental_of(data, "users").values()
            ],
            "jobcodes": [
                {"id": j.get("id"), "name": j.get("name")}
                for j in supplemental_of(data, "jobcodes").values()
            ],
            "calendars": [
                {"id": c.get("id"), "name": c.get("name")}
                for c in supplemental_of(data, "schedule_calendars").values()
            ],
        }
