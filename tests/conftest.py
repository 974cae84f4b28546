"""
Test configuration: in-memory database, app factory and a fake QB Time API.

The fake serves the handful of TSheets endpoints the app calls through
httpx.MockTransport and records every request, so tests can assert on what was
(or wasn't) sent.
"""

import json
import sys
from pathlib import Path
from typing import Any, Callable, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

REPO_ROOT = Path(__file__).parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from workschedule.config import Settings  # noqa: E402
from workschedule.database import Database  # noqa: E402
from workschedule.domain.qbtime.client import QBTimeClient  # noqa: E402
from workschedule.domain.qbtime.credentials import PerRequestCredential  # noqa: E402
from workschedule.domain.schedules.schemas import (  # noqa: E402
    DailySchedule,
    ProjectManager,
    WorkerAssignment,
)
from workschedule.main import create_app  # noqa: E402

TSHEETS_URL = "https://rest.tsheets.com/api/v1"


class FakeTSheets:
    """Minimal stand-in for the TSheets REST API"""

    def __init__(self):
        self.groups = {
            "10": {"id": 10, "name": "Project Managers"},
            "20": {"id": 20, "name": "Technicians"},
        }
        self.users_by_group = {
            "10": [{"id": 101, "first_name": "John", "last_name": "Smith"}],
            "20": [
                {"id": 201, "first_name": "Alice", "last_name": "Jones"},
                {"id": 202, "first_name": "Bob", "last_name": "Brown"},
            ],
        }
        self.jobcodes = [
            {"id": 301, "name": "123 Main St, Springfield", "parent_id": 0, "type": "regular"},
            {"id": 302, "name": "9 Elm Ave, Shelbyville", "parent_id": 0, "type": "regular"},
        ]
        self.calendars = {"72": {"id": 72, "name": "Main Calendar"}}
        self.customfields: dict[str, dict] = {}
        self.customfield_items: dict[str, list[dict]] = {}
        self.timesheets = {
            "900": {"id": 900, "user_id": 201, "jobcode_id": 301, "type": "regular", "date": "2026-03-02"}
        }
        # Optional override for bulk POSTs: (collection, items) -> Response
        self.bulk_responder: Optional[Callable[[str, list[dict]], httpx.Response]] = None
        self.requests: list[httpx.Request] = []

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    @property
    def posts(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == "POST"]

    def posted_items(self, endpoint: str) -> list[dict]:
        items = []
        for r in self.posts:
            if r.url.path.endswith("/" + endpoint):
                items.extend(json.loads(r.content)["data"])
        return items

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        endpoint = request.url.path.rsplit("/", 1)[-1]
        params = request.url.params

        if request.method == "POST":
            items = json.loads(request.content)["data"]
            if self.bulk_responder is not None:
                return self.bulk_responder(endpoint, items)
            return created_response(endpoint, items)

        if endpoint == "current_user":
            return _results(
                "users",
                {"101": {"id": 101, "first_name": "John", "last_name": "Smith", "company_name": "Acme"}},
            )
        if endpoint == "groups":
            return _results("groups", self.groups)
        if endpoint == "users":
            members = self.users_by_group.get(params.get("group_ids"), [])
            return _results("users", {str(u["id"]): u for u in members})
        if endpoint == "jobcodes":
            page = int(params.get("page", "1"))
            chunk = self.jobcodes[(page - 1) * 50 : page * 50]
            return _results("jobcodes", {str(j["id"]): j for j in chunk})
        if endpoint == "customfields":
            return _results("customfields", self.customfields)
        if endpoint == "customfielditems":
            items = self.customfield_items.get(params.get("customfield_id"), [])
            return _results("customfielditems", {str(i["id"]): i for i in items})
        if endpoint == "schedule_calendars":
            return _results("schedule_calendars", self.calendars)
        if endpoint == "schedule_events":
            body = {
                "results": {"schedule_events": {"5": {"id": 5, "title": "JOHN S - 123 Main St (Alice)"}}},
                "supplemental_data": {"schedule_calendars": self.calendars},
            }
            return httpx.Response(200, json=body)
        if endpoint == "timesheets":
            body = {
                "results": {"timesheets": self.timesheets},
                "supplemental_data": {
                    "users": {"201": {"id": 201, "first_name": "Alice", "last_name": "Jones"}}
                },
            }
            return httpx.Response(200, json=body)

        return httpx.Response(404, json={"error": f"unknown endpoint {endpoint}"})


def _results(collection: str, items: dict[str, Any]) -> httpx.Response:
    return httpx.Response(200, json={"results": {collection: items}, "more": False})


def created_response(collection: str, items: list[dict], status: int = 200) -> httpx.Response:
    return httpx.Response(
        200,
        json={
            "results": {
                collection: {
                    str(i + 1): {**item, "id": 1000 + i, "_status_code": status, "_status_message": "Created"}
                    for i, item in enumerate(items)
                }
            }
        },
    )


def make_day(
    day_id: str = "day-1",
    date: str = "2026-04-01",
    pm_name: str = "JOHN SMITH",
    job: str = "123 Main St, Springfield",
    workers: Optional[list[str]] = None,
    sent: bool = False,
) -> DailySchedule:
    """One day with one PM and one assignment"""
    pm_id = f"{day_id}-pm"
    assignment = WorkerAssignment(
        id=f"{day_id}-job",
        workers=["Alice Jones", "Bob Brown"] if workers is None else workers,
        job=job,
        pmId=pm_id,
    )
    return DailySchedule(
        id=day_id,
        date=date,
        dayName="Wednesday" if date == "2026-04-01" else "",
        sentToQB=sent,
        projectManagers=[ProjectManager(id=pm_id, name=pm_name, assignments=[assignment])],
    )


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url="sqlite://",
        db_log_slow_queries=False,
        qbtime_token=None,
        schedule_cache_dir=str(tmp_path / "cache"),
    )


@pytest.fixture
def database(settings):
    """Fresh in-memory database with tables created"""
    db = Database.from_settings(settings)
    db.create_tables()
    yield db
    db.dispose()


@pytest.fixture
def session(database):
    db = database.SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def fake_tsheets():
    return FakeTSheets()


@pytest.fixture
def qb_client(fake_tsheets):
    """Unopened QBTimeClient wired to the fake; use with ``async with``"""
    return QBTimeClient(
        PerRequestCredential("test-token"), base_url=TSHEETS_URL, transport=fake_tsheets.transport()
    )


@pytest.fixture
def app(settings, database, fake_tsheets):
    return create_app(settings=settings, database=database, qbtime_transport=fake_tsheets.transport())


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c
