"""
QuickBooks Time routes
Every POST body may carry a ``token``; without one the server-side token is used.
"""

import logging
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException, Request

from ...config import Settings
from .client import QBTimeClient
from .credentials import ServerCredential, resolve_credentials
from .directory import DirectorySync
from .export import EventExportPipeline, create_schedule_events
from .schemas import (
    CreateScheduleEventsRequest,
    CustomFieldItemsRequest,
    ExportDayRequest,
    ExportResult,
    ScheduleEventsRequest,
    TimesheetsListRequest,
    TimesheetsRequest,
    TokenRequest,
)
from .timesheets import create_timesheets, list_timesheets

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/qbtime", tags=["QuickBooks Time"])


class QBTimeClientFactory:
    """Builds a client for one request from the configured base URL and a credential"""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self.transport = transport

    def __call__(self, token: Optional[str] = None) -> QBTimeClient:
        return QBTimeClient(
            resolve_credentials(token, self.settings.qbtime_token),
            base_url=self.settings.tsheets_base_url,
            timeout=self.settings.qbtime_timeout,
            transport=self.transport,
        )

    def directory(self, client: QBTimeClient) -> DirectorySync:
        return DirectorySync(
            client, pm_group=self.settings.qbtime_pm_group, tech_group=self.settings.qbtime_tech_group
        )


def get_client_factory(request: Request) -> QBTimeClientFactory:
    return request.app.state.qbtime_clients


def _network_error(action: str, e: httpx.HTTPError) -> HTTPException:
    logger.error(f"❌ QB Time {action} error: {e}")
    return HTTPException(status_code=500, detail=str(e) or "Internal server error")


@router.get("/token")
async def token_status(factory: QBTimeClientFactory = Depends(get_client_factory)):
    """Whether a server-side token is configured. The token itself is never returned."""
    return {"configured": ServerCredential(factory.settings.qbtime_token).configured}


@router.post("/connect")
async def connect(body: TokenRequest, factory: QBTimeClientFactory = Depends(get_client_factory)):
    """Verify a token works against the QB Time API"""
    try:
        async with factory(body.token) as client:
            return await factory.directory(client).connect()
    except httpx.HTTPError as e:
        raise _network_error("connect", e) from e


@router.post("/pms")
async def project_managers(
    body: Optional[TokenRequest] = None, factory: QBTimeClientFactory = Depends(get_client_factory)
):
    token = body.token if body else None
    try:
        async with factory(token) as client:
            group = await factory.directory(client).fetch_project_manager_group()
    except httpx.HTTPError as e:
        raise _network_error("project managers", e) from e
    return {"pms": group.users, "groupId": group.groupId}


@router.post("/techs")
async def technicians(
    body: Optional[TokenRequest] = None, factory: QBTimeClientFactory = Depends(get_client_factory)
):
    token = body.token if body else None
    try:
        async with factory(token) as client:
            group = await factory.directory(client).fetch_technician_group()
    except httpx.HTTPError as e:
        raise _network_error("technicians", e) from e
    return {"techs": group.users, "groupId": group.groupId}


@router.post("/jobs")
async def jobs(
    body: Optional[TokenRequest] = None, factory: QBTimeClientFactory = Depends(get_client_factory)
):
    token = body.token if body else None
    try:
        async with factory(token) as client:
            return {"jobs": await factory.directory(client).fetch_jobs()}
    except httpx.HTTPError as e:
        raise _network_error("jobs", e) from e


@router.post("/customfields")
async def custom_fields(
    body: Optional[TokenRequest] = None, factory: QBTimeClientFactory = Depends(get_client_factory)
):
    token = body.token if body else None
    try:
        async with factory(token) as client:
            return {"customFields": await factory.directory(client).fetch_custom_fields()}
    except httpx.HTTPError as e:
        raise _network_error("custom fields", e) from e


@router.post("/customfielditems")
async def custom_field_items(
    body: CustomFieldItemsRequest, factory: QBTimeClientFactory = Depends(get_client_factory)
):
    if not body.customfield_id:
        raise HTTPException(status_code=400, detail="customfield_id is required")
    try:
        async with factory(body.token) as client:
            items = await factory.directory(client).fetch_custom_field_items(body.customfield_id)
    except httpx.HTTPError as e:
        raise _network_error("custom field items", e) from e
    return {"items": items, "total": len(items)}


@router.post("/schedule-events")
async def schedule_events(
    body: ScheduleEventsRequest, factory: QBTimeClientFactory = Depends(get_client_factory)
):
    try:
        async with factory(body.token) as client:
            return await factory.directory(client).list_schedule_events(
                start=body.start, end=body.end, schedule_calendar_ids=body.schedule_calendar_ids
            )
    except httpx.HTTPError as e:
        raise _network_error("schedule events", e) from e


@router.post("/create-schedule-events")
async def create_events(
    body: CreateScheduleEventsRequest, factory: QBTimeClientFactory = Depends(get_client_factory)
):
    if not body.entries:
        raise HTTPException(status_code=400, detail="No schedule event entries provided")
    try:
        async with factory(body.token) as client:
            result = await create_schedule_events(client, body.entries)
    except httpx.HTTPError as e:
        raise _network_error("create schedule events", e) from e
    return result.model_dump(exclude_none=True)


@router.post("/export-day", response_model=ExportResult, response_model_exclude_none=True)
async def export_day(body: ExportDayRequest, factory: QBTimeClientFactory = Depends(get_client_factory)):
    """Resolve names against a fresh directory and send one day as schedule events"""
    try:
        async with factory(body.token) as client:
            directory = await factory.directory(client).fetch_directory()
            return await EventExportPipeline(client, directory).export_day(body.schedule)
    except httpx.HTTPError as e:
        raise _network_error("export day", e) from e


@router.post("/timesheets")
async def timesheets(body: TimesheetsRequest, factory: QBTimeClientFactory = Depends(get_client_factory)):
    if not body.entries:
        raise HTTPException(status_code=400, detail="No timesheet entries provided")
    try:
        async with factory(body.token) as client:
            return await create_timesheets(client, body.entries)
    except httpx.HTTPError as e:
        raise _network_error("timesheets", e) from e


@router.post("/timesheets-list")
async def timesheets_list(
    body: TimesheetsListRequest, factory: QBTimeClientFactory = Depends(get_client_factory)
):
    try:
        async with factory(body.token) as client:
            return await list_timesheets(client, body.start_date, body.end_date, body.limit)
    except httpx.HTTPError as e:
        raise _network_error("timesheets list", e) from e
