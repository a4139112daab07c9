from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth.security import get_current_user
from ..db import get_db
from ..models.models import User
from ..services.dashboard import cleaning_kpis, facility_cleaning_stats
from .params import parse_id


router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/cleaning")
def get_cleaning_kpis(db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    return cleaning_kpis(db)


@router.get("/facility/{facility_id}")
def get_facility_stats(facility_id: str, db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    return facility_cleaning_stats(db, parse_id(facility_id, "facility"))
