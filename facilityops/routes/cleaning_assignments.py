from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, File, UploadFile, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..auth.security import get_current_user, require_roles
from ..config import settings
from ..db import get_db
from ..models.models import CleaningAssignment, CleaningChecklistItem, User
from ..schemas.cleaning import AssignmentCreateRequest, AssignmentStatusRequest
from ..services import cleaning as cleaning_service
from ..services.errors import InvalidInput
from ..services.permissions import ROLE_ADMIN, ROLE_MANAGER
from ..services.progress import area_progress, assignment_progress, completion_percentage
from ..storage.provider import StorageProvider
from .files import PHOTO_EXTENSIONS, checklist_photo_key, get_storage
from .params import parse_date, parse_id


router = APIRouter(prefix="/cleaning-assignments", tags=["cleaning"])

ALLOWED_PHOTO_TYPES = set(PHOTO_EXTENSIONS)


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def _serialize_item(item: CleaningChecklistItem) -> Dict[str, Any]:
    return {
        "id": item.id,
        "assignment_id": item.assignment_id,
        "area": item.area,
        "task_name": item.task_name,
        "is_completed": bool(item.is_completed),
        "photo_url": item.photo_url,
        "completed_at": _iso(item.completed_at),
    }


def _serialize_assignment(a: CleaningAssignment, cleaner_name: Optional[str] = None, cleaner_email: Optional[str] = None) -> Dict[str, Any]:
    return {
        "id": a.id,
        "facility_id": a.facility_id,
        "assigned_user_id": a.assigned_user_id,
        "scheduled_date": a.scheduled_date.isoformat(),
        "status": a.status,
        "started_at": _iso(a.started_at),
        "completed_at": _iso(a.completed_at),
        "created_at": _iso(a.created_at),
        "cleaner_name": cleaner_name,
        "cleaner_email": cleaner_email,
    }


def _serialize_detail(a: CleaningAssignment) -> Dict[str, Any]:
    user = a.assigned_user
    items = sorted(a.checklist_items, key=lambda it: (it.area, it.id))
    payload = _serialize_assignment(a, user.username if user else None, user.email if user else None)
    progress = assignment_progress(items)
    payload.update(
        {
            "completed_items": progress.completed,
            "total_items": progress.total,
            "progress": progress.percentage,
            "area_progress": {area: p.to_dict() for area, p in area_progress(items).items()},
            "checklist": [_serialize_item(it) for it in items],
        }
    )
    return payload


@router.get("/facility/{facility_id}")
def list_facility_assignments(
    facility_id: str,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    rows = cleaning_service.list_assignment_summaries(
        db,
        parse_id(facility_id, "facility"),
        start_date=parse_date(start_date, "start_date"),
        end_date=parse_date(end_date, "end_date"),
    )
    out = []
    for a, username, email, done, total in rows:
        payload = _serialize_assignment(a, username, email)
        payload.update({"completed_items": done, "total_items": total, "progress": completion_percentage(done, total)})
        out.append(payload)
    return out


@router.get("/{assignment_id}")
def get_assignment(assignment_id: str, db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    assignment = cleaning_service.get_assignment(db, parse_id(assignment_id, "assignment"))
    return _serialize_detail(assignment)


@router.post("")
def create_assignment(
    req: AssignmentCreateRequest,
    db: Session = Depends(get_db),
    _: User = Depends(require_roles(ROLE_ADMIN, ROLE_MANAGER)),
):
    assignment, created = cleaning_service.create_or_override_assignment(
        db, req.facility_id, req.assigned_user_id, req.scheduled_date
    )
    payload = _serialize_detail(cleaning_service.get_assignment(db, assignment.id))
    payload.pop("checklist")
    payload["overridden"] = not created
    return JSONResponse(status_code=status.HTTP_201_CREATED if created else status.HTTP_200_OK, content=payload)


@router.post("/auto-assign/{facility_id}")
def auto_assign(
    facility_id: str,
    db: Session = Depends(get_db),
    _: User = Depends(require_roles(ROLE_ADMIN, ROLE_MANAGER)),
):
    result = cleaning_service.auto_assign(db, parse_id(facility_id, "facility"))
    return result.to_dict()


@router.patch("/{assignment_id}/status")
def update_status(
    assignment_id: str,
    req: AssignmentStatusRequest,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    assignment = cleaning_service.set_assignment_status(db, parse_id(assignment_id, "assignment"), req.status, actor=me)
    return _serialize_assignment(assignment)


@router.patch("/checklist/{item_id}/toggle")
def toggle_item(item_id: str, db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    item = cleaning_service.toggle_checklist_item(db, parse_id(item_id, "checklist item"), actor=me)
    return _serialize_item(item)


@router.post("/checklist/{item_id}/photo")
def upload_item_photo(
    item_id: str,
    photo: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
    storage: StorageProvider = Depends(get_storage),
):
    item_pk = parse_id(item_id, "checklist item")
    if photo is None:
        raise InvalidInput("Photo is required")
    content_type = (photo.content_type or "").lower()
    if content_type not in ALLOWED_PHOTO_TYPES:
        raise InvalidInput("Only image files are allowed")
    # Read one byte past the limit so oversize uploads are detected without buffering them whole
    data = photo.file.read(settings.max_photo_bytes + 1)
    if not data:
        raise InvalidInput("Photo is required")
    if len(data) > settings.max_photo_bytes:
        raise InvalidInput(f"Photo exceeds the {settings.max_photo_bytes // (1024 * 1024)}MB limit")

    item = cleaning_service.ensure_item_access(db, item_pk, me)
    key = checklist_photo_key(item.assignment.facility_id, item.assignment_id, item.id, photo.filename or "photo", content_type)
    storage.upload(key, data, content_type)
    item = cleaning_service.attach_photo(db, item.id, storage.public_url(key), actor=me)
    return _serialize_item(item)
