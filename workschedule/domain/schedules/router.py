"""Schedule router - full-collection load/save and text export"""

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...database import get_db
from .editing import filter_by_date
from .schemas import DailySchedule, SaveResponse
from .service import ScheduleService
from .text_export import export_filename, render_schedules

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/schedules", tags=["Schedules"])


def get_schedule_service(db: Session = Depends(get_db)) -> ScheduleService:
    """Dependency injection for ScheduleService"""
    return ScheduleService(db)


@router.get("", response_model=list[DailySchedule])
async def get_schedules(service: ScheduleService = Depends(get_schedule_service)):
    """Return every schedule with its nested PMs and assignments"""
    try:
        return service.load()
    except SQLAlchemyError as e:
        logger.error(f"❌ GET /api/schedules error: {e}")
        return JSONResponse(status_code=500, content={"error": "Failed to load schedules"})


@router.put("", response_model=SaveResponse)
async def put_schedules(
    schedules: list[DailySchedule] = Body(...),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Full sync: replace all persisted schedules with the submitted collection"""
    try:
        service.save_all(schedules)
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        logger.error(f"❌ PUT /api/schedules error: {e}")
        return JSONResponse(status_code=500, content={"error": "Failed to save schedules"})
    return SaveResponse(ok=True)


@router.get("/export")
async def export_schedules_text(
    date_from: Optional[str] = Query(None, alias="from"),
    date_to: Optional[str] = Query(None, alias="to"),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Download the (optionally date-filtered) schedule as a plain-text report"""
    try:
        stored = service.load()
    except SQLAlchemyError as e:
        logger.error(f"❌ GET /api/schedules/export error: {e}")
        return JSONResponse(status_code=500, content={"error": "Failed to load schedules"})

    schedules = filter_by_date(stored, date_from, date_to)
    if not schedules:
        raise HTTPException(status_code=404, detail="Nothing to export - no days match the filter")

    text = render_schedules(schedules)
    filename = export_filename(schedules)
    return PlainTextResponse(
        text,
        media_type="text/plain; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
