"""
Timesheet push (legacy path) and timesheet listing

QB Time rejects timesheets that leave a required custom field empty, so every
timesheet custom field gets a default: the "(none)" item of a managed list, or
an empty string for free-form fields. Values sent by the caller win.
"""

import logging
from datetime import date, timedelta
from typing import Any, Optional

from .client import QBTimeClient, results_of, supplemental_of
from .errors import NoEntriesError

logger = logging.getLogger(__name__)

NONE_ITEM_NAMES = ("(none)", "none", "n/a")
DEFAULT_LIST_LIMIT = 10
DEFAULT_LOOKBACK_DAYS = 30


def _is_none_item(item: dict[str, Any]) -> bool:
    name = item.get("name") or ""
    return bool(item.get("active")) and (name.lower() in NONE_ITEM_NAMES or name.strip() == "")


async def default_custom_fields(client: QBTimeClient) -> dict[str, str]:
    """Map of timesheet custom field id -> default value"""
    fields = results_of(await client.get("customfields", action="fetch custom fields"), "customfields")
    defaults: dict[str, str] = {}

    for field in fields.values():
        if field.get("applies_to") != "timesheet":
            continue
        field_id = str(field.get("id"))

        if field.get("type") != "managed-list":
            defaults[field_id] = ""
            continue

        data = await client.get(
            "customfielditems", params={"customfield_id": field_id}, action="fetch custom field items"
        )
        none_item = next(
            (i for i in results_of(data, "customfielditems").values() if _is_none_item(i)), None
        )
        if none_item:
            defaults[field_id] = str(none_item.get("id"))
            logger.info(f"Using {none_item.get('name')!r} for custom field {field.get('name')!r}")
        else:
            logger.warning(f"⚠️ No '(none)' item for custom field {field.get('name')!r}, sending ''")
            defaults[field_id] = ""

    return defaults


def _summarize_timesheet(ts: dict[str, Any]) -> dict[str, Any]:
    return {"id": ts.get("id"), "user_id": ts.get("user_id"), "status": "ok"}


async def create_timesheets(client: QBTimeClient, entries: list[dict[str, Any]]) -> dict[str, Any]:
    if not entries:
        raise NoEntriesError("No timesheet entries provided")

    defaults = await default_custom_fields(client)
    enriched = []
    for entry in entries:
        rest = {k: v for k, v in entry.items() if k != "customfields"}
        supplied = entry.get("customfields") or {}
        enriched.append({**rest, "customfields": {**defaults, **supplied}})

    result = await client.bulk_create("timesheets", "timesheets", enriched, _summarize_timesheet)
    return result.model_dump(exclude_none=True)


async def list_timesheets(
    client: QBTimeClient,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    limit: Optional[int] = None,
) -> dict[str, Any]:
    # start_date is required by TSheets
    params: dict[str, Any] = {
        "start_date": start_date or (date.today() - timedelta(days=DEFAULT_LOOKBACK_DAYS)).isoformat(),
        "limit": limit or DEFAULT_LIST_LIMIT,
    }
    if end_date:
        params["end_date"] = end_date

    data = await client.get("timesheets", params=params, action="fetch timesheets")
    timesheets = [
        {
            "id": ts.get("id"),
            "user_id": ts.get("user_id"),
            "jobcode_id": ts.get("jobcode_id"),
            "type": ts.get("type"),
            "start": ts.get("start"),
            "end": ts.get("end"),
            "date": ts.get("date"),
            "duration": ts.get("duration"),
            "notes": ts.get("notes") or "",
            "customfields": ts.get("customfields") or {},
        }
        for ts in results_of(data, "timesheets").values()
    ]
    return {
        "timesheets": timesheets,
        "total": len(timesheets),
        "users": [
            {"id": u.get("id"), "name": f"{u.get('first_name', '')} {u.get('last_name', '')}".strip()}
            for u in supplemental_of(data, "users").values()
        ],
        "jobcodes": [
            {"id": j.get("id"), "name": j.get("name")} for j in supplemental_of(data, "jobcodes").values()
        ],
    }
