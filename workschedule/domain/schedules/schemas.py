"""Schedule domain schemas - the Day -> PM -> Assignment -> Workers tree"""

import random
import string
import time
from typing import Optional

from pydantic import BaseModel, Field

_ID_ALPHABET = string.digits + string.ascii_lowercase


def new_id(prefix: str) -> str:
    """Time-based id with a short random base-36 suffix, e.g. ``pm-1718000000000-k3x9a``"""
    suffix = "".join(random.choices(_ID_ALPHABET, k=5))
    return f"{prefix}-{int(time.time() * 1000)}-{suffix}"


class WorkerAssignment(BaseModel):
    """A job and the technicians working it under one PM"""

    id: str
    workers: list[str] = Field(default_factory=list)
    job: str = ""
    pmId: str = ""


class ProjectManager(BaseModel):
    id: str
    name: str = ""
    assignments: list[WorkerAssignment] = Field(default_factory=list)


class DailySchedule(BaseModel):
    id: str
    date: str = ""  # YYYY-MM-DD, empty while undated
    dayName: str = ""
    sentToQB: bool = False
    projectManagers: list[ProjectManager] = Field(default_factory=list)


class SaveResponse(BaseModel):
    ok: bool = True


class ErrorResponse(BaseModel):
    error: str


class DaySummary(BaseModel):
    """Header numbers shown on a day card"""

    projectManagers: int
    assignments: int
    workers: int


class ScheduleStats(BaseModel):
    days: int
    workers: int
    filtered: bool = False
    dateFrom: Optional[str] = None
    dateTo: Optional[str] = None
