"""
Schedule persistence models
Denormalized rows for schedules, project managers and worker assignments
"""
from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Text, false
from sqlalchemy.sql import func

from .database import Base


class ScheduleRow(Base):
    __tablename__ = "schedules"

    id = Column(String(100), primary_key=True)
    date = Column(String(10), nullable=False, default="", server_default="")  # YYYY-MM-DD or ""
    day_name = Column(String(20), nullable=False, default="", server_default="")
    sent_to_qb = Column(Boolean, nullable=False, default=False, server_default=false())

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class ProjectManagerRow(Base):
    __tablename__ = "project_managers"

    id = Column(String(100), primary_key=True)
    schedule_id = Column(
        String(100), ForeignKey("schedules.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(255), nullable=False, default="", server_default="")
    sort_order = Column(Integer, nullable=False, default=0)


class AssignmentRow(Base):
    __tablename__ = "assignments"

    id = Column(String(100), primary_key=True)
    pm_id = Column(
        String(100),
        ForeignKey("project_managers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    schedule_id = Column(
        String(100), ForeignKey("schedules.id", ondelete="CASCADE"), nullable=False, index=True
    )
    workers = Column(JSON, nullable=False, default=list)  # ordered technician names
    job = Column(Text, nullable=False, default="", server_default="")
    sort_order = Column(Integer, nullable=False, default=0)
