"""HTTP client for the Work Schedule Manager API"""

import logging
from typing import Any, Optional

import httpx

from ..domain.qbtime.schemas import CustomField, ExportResult, JobRef, UserRef
from ..domain.schedules.schemas import DailySchedule

logger = logging.getLogger(__name__)


class ApiError(Exception):
    def __init__(self, status_code: int, body: Any):
        self.status_code = status_code
        self.body = body
        message = body.get("error") if isinstance(body, dict) else None
        self.message = message or f"Request failed with status {status_code}"
        super().__init__(self.message)


class ScheduleApiClient:
    """
    Talks to ``/api/schedules`` and ``/api/qbtime``.

    ``token`` is the caller's QB Time token; leave it unset when the server
    holds its own.
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.transport)

    async def _request(self, method: str, path: str, json: Any = None) -> Any:
        async with self._client() as client:
            response = await client.request(method, path, json=json)
        try:
            body = response.json()
        except ValueError:
            body = response.text
        if not response.is_success:
            raise ApiError(response.status_code, body)
        return body

    def _qb_body(self, **extra: Any) -> dict[str, Any]:
        body = {k: v for k, v in extra.items() if v is not None}
        if self.token:
            body["token"] = self.token
        return body

    # Schedules

    async def load_schedules(self) -> list[DailySchedule]:
        data = await self._request("GET", "/api/schedules")
        return [DailySchedule.model_validate(s) for s in data]

    async def save_schedules(self, schedules: list[DailySchedule]) -> None:
        await self._request("PUT", "/api/schedules", json=[s.model_dump() for s in schedules])

    # QuickBooks Time

    async def token_configured(self) -> bool:
        data = await self._request("GET", "/api/qbtime/token")
        return bool(data.get("configured"))

    async def connect(self) -> dict[str, Any]:
        return await self._request("POST", "/api/qbtime/connect", json=self._qb_body())

    async def fetch_project_managers(self) -> list[UserRef]:
        data = await self._request("POST", "/api/qbtime/pms", json=self._qb_body())
        return [UserRef.model_validate(u) for u in data.get("pms", [])]

    async def fetch_technicians(self) -> list[UserRef]:
        data = await self._request("POST", "/api/qbtime/techs", json=self._qb_body())
        return [UserRef.model_validate(u) for u in data.get("techs", [])]

    async def fetch_jobs(self) -> list[JobRef]:
        data = await self._request("POST", "/api/qbtime/jobs", json=self._qb_body())
        return [JobRef.model_validate(j) for j in data.get("jobs", [])]

    async def fetch_custom_fields(self) -> list[CustomField]:
        data = await self._request("POST", "/api/qbtime/customfields", json=self._qb_body())
        return [CustomField.model_validate(f) for f in data.get("customFields", [])]

    async def export_day(self, schedule: DailySchedule) -> ExportResult:
        data = await self._request(
            "POST", "/api/qbtime/export-day", json=self._qb_body(schedule=schedule.model_dump())
        )
        return ExportResult.model_validate(data)
