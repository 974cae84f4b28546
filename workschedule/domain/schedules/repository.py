"""Schedule repository - replace-all persistence of the schedule tree"""

import logging
from collections import defaultdict

from sqlalchemy.orm import Session

from ...models import AssignmentRow, ProjectManagerRow, ScheduleRow
from .schemas import DailySchedule, ProjectManager, WorkerAssignment

logger = logging.getLogger(__name__)


class ScheduleRepository:
    """Repository for schedule database operations"""

    @staticmethod
    def load(db: Session) -> list[DailySchedule]:
        """Read all three tables and rebuild the nested tree, ordered by date then sort order"""
        schedule_rows = db.query(ScheduleRow).order_by(ScheduleRow.date).all()
        pm_rows = db.query(ProjectManagerRow).order_by(ProjectManagerRow.sort_order).all()
        assignment_rows = db.query(AssignmentRow).order_by(AssignmentRow.sort_order).all()

        assignments_by_pm: dict[str, list[WorkerAssignment]] = defaultdict(list)
        for a in assignment_rows:
            assignments_by_pm[a.pm_id].append(
                WorkerAssignment(id=a.id, workers=list(a.workers or []), job=a.job or "", pmId=a.pm_id)
            )

        pms_by_schedule: dict[str, list[ProjectManager]] = defaultdict(list)
        for pm in pm_rows:
            pms_by_schedule[pm.schedule_id].append(
                ProjectManager(id=pm.id, name=pm.name or "", assignments=assignments_by_pm.get(pm.id, []))
            )

        # Rows whose parent is gone are simply never reached from a schedule
        return [
            DailySchedule(
                id=s.id,
                date=s.date or "",
                dayName=s.day_name or "",
                sentToQB=bool(s.sent_to_qb),
                projectManagers=pms_by_schedule.get(s.id, []),
            )
            for s in schedule_rows
        ]

    @staticmethod
    def save_all(db: Session, schedules: list[DailySchedule]) -> None:
        """
        Replace everything in one transaction: delete every row (children
        first) and re-insert the given collection with list positions as sort
        order. Any failure rolls back and leaves the store untouched.
        """
        try:
            # Children first; cascades are not relied on
            db.query(AssignmentRow).delete(synchronize_session=False)
            db.query(ProjectManagerRow).delete(synchronize_session=False)
            db.query(ScheduleRow).delete(synchronize_session=False)
            db.flush()
            # Rows loaded earlier in this session would clash with the re-inserted ids
            db.expunge_all()

            for s in schedules:
                db.add(ScheduleRow(id=s.id, date=s.date, day_name=s.dayName, sent_to_qb=s.sentToQB))
            db.flush()

            for s in schedules:
                for pi, pm in enumerate(s.projectManagers):
                    db.add(ProjectManagerRow(id=pm.id, schedule_id=s.id, name=pm.name, sort_order=pi))
            db.flush()

            for s in schedules:
                for pm in s.projectManagers:
                    for ai, a in enumerate(pm.assignments):
                        db.add(
                            AssignmentRow(
                                id=a.id,
                                pm_id=pm.id,
                                schedule_id=s.id,
                                workers=list(a.workers),
                                job=a.job,
                                sort_order=ai,
                            )
                        )

            db.commit()
        except Exception:
            db.rollback()
            raise
