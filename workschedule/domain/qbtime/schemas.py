"""QuickBooks Time schemas - directory references, event payloads and request bodies"""

from typing import Any, Optional

from pydantic import BaseModel, Field

from ..schedules.schemas import DailySchedule


# Directory references


class UserRef(BaseModel):
    """A project manager or technician from a QB Time group"""

    id: str
    name: str
    firstName: Optional[str] = None
    lastName: Optional[str] = None


class JobRef(BaseModel):
    id: str
    name: str
    parentId: Optional[str] = None
    type: Optional[str] = None  # regular, pto, unpaid_break...


class CustomFieldItem(BaseModel):
    id: str
    name: str
    active: bool = True
    customfield_id: Optional[str] = None
    short_code: str = ""
    last_modified: Optional[str] = None


class CustomField(BaseModel):
    id: str
    name: str
    required: bool = False
    type: Optional[str] = None  # ui_preference: drop_down, text...
    appliesTo: str = "both"
    items: list[CustomFieldItem] = Field(default_factory=list)


class GroupMembers(BaseModel):
    groupId: str
    users: list[UserRef]


class Directory(BaseModel):
    """Snapshot of the lookup tables used to resolve names to QB Time ids"""

    projectManagers: list[UserRef] = Field(default_factory=list)
    technicians: list[UserRef] = Field(default_factory=list)
    jobs: list[JobRef] = Field(default_factory=list)

    def find_job(self, name: str) -> Optional[JobRef]:
        wanted = name.lower()
        return next((j for j in self.jobs if j.name.lower() == wanted), None)

    def find_technician(self, name: str) -> Optional[UserRef]:
        wanted = name.strip().lower()
        return next((t for t in self.technicians if t.name.lower() == wanted), None)


class ConnectedUser(BaseModel):
    id: Any
    name: str
    company: Optional[str] = None


class ConnectionInfo(BaseModel):
    connected: bool = True
    user: Optional[ConnectedUser] = None


# Outgoing payloads


class ScheduleEventEntry(BaseModel):
    assigned_user_ids: list[str]
    jobcode_id: int
    start: str
    end: str
    all_day: bool = False
    timezone: str = "America/New_York"
    title: str
    notes: Optional[str] = None
    location: Optional[str] = None
    color: Optional[str] = None
    draft: bool = False
    customfields: Optional[dict[str, str]] = None


class BulkCreateResult(BaseModel):
    """Aggregate of a batched bulk-create call"""

    created: int = 0
    failed: int = 0
    results: list[dict[str, Any]] = Field(default_factory=list)
    errors: Optional[list[dict[str, Any]]] = None


class ExportResult(BaseModel):
    success: bool
    created: int = 0
    failed: int = 0
    errors: Optional[list[Any]] = None
    results: list[dict[str, Any]] = Field(default_factory=list)


# Request bodies - every call may carry its own token


class TokenRequest(BaseModel):
    token: Optional[str] = None


class CustomFieldItemsRequest(TokenRequest):
    customfield_id: Optional[str] = None


class ScheduleEventsRequest(TokenRequest):
    start: Optional[str] = None
    end: Optional[str] = None
    schedule_calendar_ids: Optional[str] = None


class CreateScheduleEventsRequest(TokenRequest):
    entries: list[dict[str, Any]] = Field(default_factory=list)


class TimesheetsRequest(TokenRequest):
    entries: list[dict[str, Any]] = Field(default_factory=list)


class TimesheetsListRequest(TokenRequest):
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    limit: Optional[int] = None


class ExportDayRequest(TokenRequest):
    schedule: DailySchedule
