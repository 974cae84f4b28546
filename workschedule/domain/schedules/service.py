"""Schedule service - Business logic for the persisted schedule collection"""

import logging

from fastapi import HTTPException
from sqlalchemy.orm import Session

from .repository import ScheduleRepository
from .schemas import DailySchedule

logger = logging.getLogger(__name__)


class ScheduleService:
    """Service layer for loading and replacing the schedule collection"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ScheduleRepository()

    def load(self) -> list[DailySchedule]:
        schedules = self.repo.load(self.db)
        logger.info(f"📥 Loaded {len(schedules)} schedule(s)")
        return schedules

    def save_all(self, schedules: list[DailySchedule]) -> None:
        """Validate id uniqueness, then replace the stored collection"""
        self.validate_ids(schedules)
        self.repo.save_all(self.db, schedules)
        logger.info(f"💾 Saved {len(schedules)} schedule(s)")

    @staticmethod
    def validate_ids(schedules: list[DailySchedule]) -> None:
        # PM and assignment ids are primary keys, so they must be unique across the collection
        seen: dict[str, set[str]] = {"schedule": set(), "project manager": set(), "assignment": set()}

        def check(kind: str, value: str) -> None:
            if not value:
                raise HTTPException(status_code=400, detail=f"Missing {kind} id")
            if value in seen[kind]:
                raise HTTPException(status_code=400, detail=f"Duplicate {kind} id: {value}")
            seen[kind].add(value)

        for s in schedules:
            check("schedule", s.id)
            for pm in s.projectManagers:
                check("project manager", pm.id)
                for a in pm.assignments:
                    check("assignment", a.id)
