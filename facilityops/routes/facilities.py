from typing import Any, Dict

import structlog
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..auth.security import get_current_user, require_roles
from ..db import get_db
from ..models.models import Facility, User, user_facilities
from ..schemas.facilities import FacilityCreate, FacilityUpdate, StaffLinkRequest
from ..services.cleaning import eligible_staff, get_facility
from ..services.errors import InvalidInput, NotFound
from ..services.permissions import ROLE_ADMIN, ROLE_MANAGER, is_cleaner, is_manager_or_admin
from .params import parse_id


router = APIRouter(prefix="/facilities", tags=["facilities"])
logger = structlog.get_logger(__name__)


def _serialize_facility(f: Facility) -> Dict[str, Any]:
    return {
        "id": f.id,
        "name": f.name,
        "location": f.location,
        "description": f.description,
        "created_at": f.created_at.isoformat() if f.created_at else None,
    }


def _user_basic(u: User, eligible_ids: set) -> Dict[str, Any]:
    return {
        "id": u.id,
        "username": u.username,
        "email": u.email,
        "roles": sorted(r.name for r in u.roles),
        "eligible_for_rotation": u.id in eligible_ids,
    }


@router.get("")
def list_facilities(db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    query = db.query(Facility)
    # Cleaners only see the facilities they are linked to
    if is_cleaner(me) and not is_manager_or_admin(me):
        query = query.join(user_facilities, user_facilities.c.facility_id == Facility.id).filter(
            user_facilities.c.user_id == me.id
        )
    return [_serialize_facility(f) for f in query.order_by(Facility.name.asc()).all()]


@router.get("/{facility_id}")
def get_facility_detail(facility_id: str, db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    return _serialize_facility(get_facility(db, parse_id(facility_id, "facility")))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_facility(
    req: FacilityCreate,
    db: Session = Depends(get_db),
    me: User = Depends(require_roles(ROLE_ADMIN, ROLE_MANAGER)),
):
    facility = Facility(name=req.name, location=req.location or "", description=req.description or "")
    db.add(facility)
    db.commit()
    db.refresh(facility)
    logger.info("facility_created", facility_id=facility.id, actor_id=me.id)
    return _serialize_facility(facility)


@router.put("/{facility_id}")
def update_facility(
    facility_id: str,
    req: FacilityUpdate,
    db: Session = Depends(get_db),
    _: User = Depends(require_roles(ROLE_ADMIN, ROLE_MANAGER)),
):
    facility = get_facility(db, parse_id(facility_id, "facility"))
    data = req.model_dump(exclude_unset=True)
    if "name" in data:
        name = (data["name"] or "").strip()
        if not name:
            raise InvalidInput("Facility name required")
        data["name"] = name
    for field, value in data.items():
        setattr(facility, field, value)
    db.commit()
    db.refresh(facility)
    return _serialize_facility(facility)


@router.delete("/{facility_id}")
def delete_facility(
    facility_id: str,
    db: Session = Depends(get_db),
    me: User = Depends(require_roles(ROLE_ADMIN)),
):
    facility = get_facility(db, parse_id(facility_id, "facility"))
    fid = facility.id
    db.delete(facility)
    db.commit()
    logger.info("facility_deleted", facility_id=fid, actor_id=me.id)
    return {"ok": True}


@router.get("/{facility_id}/users")
def list_facility_users(facility_id: str, db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    facility = get_facility(db, parse_id(facility_id, "facility"))
    eligible_ids = {u.id for u in eligible_staff(db, facility.id)}
    return [_user_basic(u, eligible_ids) for u in sorted(facility.staff, key=lambda u: u.id)]


@router.post("/{facility_id}/users")
def link_user(
    facility_id: str,
    req: StaffLinkRequest,
    db: Session = Depends(get_db),
    _: User = Depends(require_roles(ROLE_ADMIN, ROLE_MANAGER)),
):
    facility = get_facility(db, parse_id(facility_id, "facility"))
    user = db.query(User).filter(User.id == req.user_id).first()
    if not user:
        raise NotFound("User not found")
    if user not in facility.staff:
        facility.staff.append(user)
        db.commit()
        logger.info("facility_staff_linked", facility_id=facility.id, user_id=user.id)
    return {"ok": True}


@router.delete("/{facility_id}/users/{user_id}")
def unlink_user(
    facility_id: str,
    user_id: str,
    db: Session = Depends(get_db),
    _: User = Depends(require_roles(ROLE_ADMIN, ROLE_MANAGER)),
):
    facility = get_facility(db, parse_id(facility_id, "facility"))
    uid = parse_id(user_id, "user")
    user = next((u for u in facility.staff if u.id == uid), None)
    if not user:
        raise NotFound("User is not assigned to this facility")
    facility.staff.remove(user)
    db.commit()
    logger.info("facility_staff_unlinked", facility_id=facility.id, user_id=uid)
    return {"ok": True}
