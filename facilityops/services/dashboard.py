"""
Cleaning KPIs over a trailing window (default 30 days).
"""
from datetime import date, timedelta
from typing import Optional

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from ..config import settings
from ..models.models import CleaningAssignment, Facility
from .cleaning import get_facility, local_today
from .progress import completion_percentage


def _status_counts(db: Session, since: date, facility_id: Optional[int] = None) -> dict:
    query = db.query(
        func.count(CleaningAssignment.id),
        func.count(case((CleaningAssignment.status == "completed", 1))),
        func.count(case((CleaningAssignment.status == "pending", 1))),
        func.count(case((CleaningAssignment.status == "in_progress", 1))),
    ).filter(CleaningAssignment.scheduled_date >= since)
    if facility_id is not None:
        query = query.filter(CleaningAssignment.facility_id == facility_id)
    total, completed, pending, in_progress = query.one()
    return {
        "total": int(total or 0),
        "completed": int(completed or 0),
        "pending": int(pending or 0),
        "in_progress": int(in_progress or 0),
    }


def cleaning_kpis(db: Session, today: Optional[date] = None) -> dict:
    """
    Org-wide cleaning metrics.
    Adherence is completed / total assignments scheduled in the window;
    overdue counts pending assignments dated before today.
    """
    today = today or local_today()
    since = today - timedelta(days=settings.dashboard_window_days)
    counts = _status_counts(db, since)
    overdue = (
        db.query(func.count(CleaningAssignment.id))
        .filter(CleaningAssignment.status == "pending", CleaningAssignment.scheduled_date < today)
        .scalar()
    )
    upcoming = (
        db.query(func.count(CleaningAssignment.id))
        .filter(
            CleaningAssignment.scheduled_date >= today,
            CleaningAssignment.scheduled_date < today + timedelta(days=settings.rotation_window_days),
        )
        .scalar()
    )
    return {
        "total_facilities": db.query(func.count(Facility.id)).scalar() or 0,
        "cleaning_adherence_rate": completion_percentage(counts["completed"], counts["total"]),
        "overdue_tasks": int(overdue or 0),
        "upcoming_assignments": int(upcoming or 0),
        "window_days": settings.dashboard_window_days,
        "recent": counts,
    }


def facility_cleaning_stats(db: Session, facility_id: int, today: Optional[date] = None) -> dict:
    get_facility(db, facility_id)
    today = today or local_today()
    since = today - timedelta(days=settings.dashboard_window_days)
    counts = _status_counts(db, since, facility_id=facility_id)
    counts["adherence_rate"] = completion_percentage(counts["completed"], counts["total"])
    return {"facility_id": facility_id, "window_days": settings.dashboard_window_days, "cleaning": counts}
