"""
Cleaning assignment scheduling.

Covers the repository queries over assignments and checklist items, the
7-day round-robin auto-assign batch, single-date create-or-override, and
the status/checklist mutations performed by cleaners.
"""
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional, Tuple

import pytz
import structlog
from sqlalchemy import case, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from ..config import settings
from ..models.models import (
    CleaningAssignment,
    CleaningChecklistItem,
    Facility,
    Role,
    User,
    user_facilities,
)
from .checklist_templates import iter_template
from .errors import CleaningError, ConflictOrConstraint, IneligibleAssignee, InvalidInput, NotFound
from .permissions import ROLE_CLEANER, ensure_can_work_assignment
from .progress import apply_status
from .rotation import pick_assignee, rotation_start_index


logger = structlog.get_logger(__name__)


@dataclass
class AutoAssignResult:
    created: int = 0
    assignments: List[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"created": self.created, "assignments": self.assignments}


def local_today() -> date:
    """Current calendar date in the configured business timezone."""
    return datetime.now(pytz.timezone(settings.tz_default)).date()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Queries


def get_facility(db: Session, facility_id: int) -> Facility:
    facility = db.query(Facility).filter(Facility.id == facility_id).first()
    if not facility:
        raise NotFound("Facility not found")
    return facility


def get_assignment(db: Session, assignment_id: int) -> CleaningAssignment:
    assignment = (
        db.query(CleaningAssignment)
        .options(joinedload(CleaningAssignment.assigned_user))
        .filter(CleaningAssignment.id == assignment_id)
        .first()
    )
    if not assignment:
        raise NotFound("Assignment not found")
    return assignment


def get_checklist_item(db: Session, item_id: int) -> CleaningChecklistItem:
    item = (
        db.query(CleaningChecklistItem)
        .options(joinedload(CleaningChecklistItem.assignment))
        .filter(CleaningChecklistItem.id == item_id)
        .first()
    )
    if not item:
        raise NotFound("Checklist item not found")
    return item


def find_assignment(db: Session, facility_id: int, scheduled_date: date) -> Optional[CleaningAssignment]:
    return (
        db.query(CleaningAssignment)
        .filter(
            CleaningAssignment.facility_id == facility_id,
            CleaningAssignment.scheduled_date == scheduled_date,
        )
        .first()
    )


def eligible_staff(db: Session, facility_id: int) -> List[User]:
    """Active users linked to the facility holding the cleaner role, by user ID ascending."""
    return (
        db.query(User)
        .join(user_facilities, user_facilities.c.user_id == User.id)
        .join(User.roles)
        .filter(
            user_facilities.c.facility_id == facility_id,
            Role.name == ROLE_CLEANER,
            User.is_active.is_(True),
        )
        .order_by(User.id.asc())
        .all()
    )


def is_eligible(db: Session, facility_id: int, user_id: int) -> bool:
    return any(u.id == user_id for u in eligible_staff(db, facility_id))


def latest_assignment(db: Session, facility_id: int) -> Optional[CleaningAssignment]:
    return (
        db.query(CleaningAssignment)
        .filter(CleaningAssignment.facility_id == facility_id)
        .order_by(CleaningAssignment.scheduled_date.desc(), CleaningAssignment.id.desc())
        .first()
    )


def list_assignment_summaries(
    db: Session,
    facility_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> List[Tuple[CleaningAssignment, Optional[str], Optional[str], int, int]]:
    """
    Assignments for a facility, newest date first, each with its cleaner's
    username/email and completed/total checklist counts.
    """
    get_facility(db, facility_id)
    if start_date and end_date and start_date > end_date:
        raise InvalidInput("start_date must be on or before end_date")

    completed_items = func.count(case((CleaningChecklistItem.is_completed.is_(True), 1)))
    total_items = func.count(CleaningChecklistItem.id)
    query = (
        db.query(CleaningAssignment, User.username, User.email, completed_items, total_items)
        .outerjoin(User, User.id == CleaningAssignment.assigned_user_id)
        .outerjoin(CleaningChecklistItem, CleaningChecklistItem.assignment_id == CleaningAssignment.id)
        .filter(CleaningAssignment.facility_id == facility_id)
    )
    if start_date:
        query = query.filter(CleaningAssignment.scheduled_date >= start_date)
    if end_date:
        query = query.filter(CleaningAssignment.scheduled_date <= end_date)
    rows = (
        query.group_by(CleaningAssignment.id, User.username, User.email)
        .order_by(CleaningAssignment.scheduled_date.desc())
        .all()
    )
    return [(a, username, email, int(done or 0), int(total or 0)) for a, username, email, done, total in rows]


# ---------------------------------------------------------------------------
# Creation


def create_seeded_assignment(
    db: Session, facility_id: int, user_id: int, scheduled_date: date
) -> CleaningAssignment:
    """
    Add an assignment together with its full checklist and flush both.
    The caller owns the transaction, so a failure leaves neither behind.
    """
    assignment = CleaningAssignment(
        facility_id=facility_id,
        assigned_user_id=user_id,
        scheduled_date=scheduled_date,
        status="pending",
    )
    assignment.checklist_items = [
        CleaningChecklistItem(area=area, task_name=task_name, is_completed=False)
        for area, task_name in iter_template()
    ]
    db.add(assignment)
    db.flush()
    return assignment


def _auto_assign_batch(db: Session, facility_id: int, today: date, created: List[CleaningAssignment]) -> dict:
    staff = eligible_staff(db, facility_id)
    staff_ids = [u.id for u in staff]
    last = latest_assignment(db, facility_id)
    start_index = rotation_start_index(staff_ids, last.assigned_user_id if last else None)

    window = [today + timedelta(days=offset) for offset in range(settings.rotation_window_days)]
    taken = {
        row.scheduled_date
        for row in db.query(CleaningAssignment.scheduled_date).filter(
            CleaningAssignment.facility_id == facility_id,
            CleaningAssignment.scheduled_date >= window[0],
            CleaningAssignment.scheduled_date <= window[-1],
        )
    }

    for day in window:
        if day in taken:
            continue
        user_id = pick_assignee(staff_ids, start_index, len(created))
        created.append(create_seeded_assignment(db, facility_id, user_id, day))
    return {u.id: u.username for u in staff}


def auto_assign(db: Session, facility_id: int, today: Optional[date] = None) -> AutoAssignResult:
    """
    Fill the rotation window starting at `today` with round-robin assignments.

    Dates that already have an assignment are left untouched and do not use
    up a rotation slot. The batch commits as a whole; a uniqueness clash with
    a concurrent writer re-runs it once against fresh history.
    """
    get_facility(db, facility_id)
    today = today or local_today()

    for attempt in (1, 2):
        created: List[CleaningAssignment] = []
        try:
            names = _auto_assign_batch(db, facility_id, today, created)
            summaries = [
                {
                    "id": a.id,
                    "scheduled_date": a.scheduled_date.isoformat(),
                    "assigned_user_id": a.assigned_user_id,
                    "cleaner_name": names.get(a.assigned_user_id),
                }
                for a in created
            ]
            db.commit()
        except IntegrityError:
            db.rollback()
            if attempt == 2:
                logger.warning("auto_assign_conflict", facility_id=facility_id, attempt=attempt)
                raise ConflictOrConstraint(
                    "Another scheduling run changed this facility; no assignments were saved"
                ) from None
            logger.info("auto_assign_conflict_retry", facility_id=facility_id)
            continue
        except CleaningError:
            db.rollback()
            raise
        except Exception:
            db.rollback()
            logger.error(
                "auto_assign_failed",
                facility_id=facility_id,
                created_before_failure=len(created),
                committed=0,
            )
            raise
        break

    logger.info("auto_assign_completed", facility_id=facility_id, start=today.isoformat(), created=len(summaries))
    return AutoAssignResult(created=len(summaries), assignments=summaries)


def create_or_override_assignment(
    db: Session, facility_id: int, user_id: int, scheduled_date: date
) -> Tuple[CleaningAssignment, bool]:
    """
    Assign `user_id` to the facility on `scheduled_date`.

    Returns the assignment and whether it was newly created. An existing
    assignment only gets its assignee replaced; status and checklist
    progress are kept.
    """
    get_facility(db, facility_id)
    if not is_eligible(db, facility_id, user_id):
        raise IneligibleAssignee("Selected cleaner is not assigned to this facility")

    for attempt in (1, 2):
        existing = find_assignment(db, facility_id, scheduled_date)
        try:
            if existing:
                previous_user_id = existing.assigned_user_id
                existing.assigned_user_id = user_id
                db.commit()
                logger.info(
                    "assignment_overridden",
                    assignment_id=existing.id,
                    facility_id=facility_id,
                    scheduled_date=scheduled_date.isoformat(),
                    previous_user_id=previous_user_id,
                    user_id=user_id,
                )
                return existing, False
            assignment = create_seeded_assignment(db, facility_id, user_id, scheduled_date)
            db.commit()
        except IntegrityError:
            db.rollback()
            if attempt == 2:
                raise ConflictOrConstraint("Assignment for this date changed concurrently, try again") from None
            logger.info(
                "assignment_create_conflict",
                facility_id=facility_id,
                scheduled_date=scheduled_date.isoformat(),
            )
            continue
        except Exception:
            db.rollback()
            raise
        logger.info(
            "assignment_created",
            assignment_id=assignment.id,
            facility_id=facility_id,
            scheduled_date=scheduled_date.isoformat(),
            user_id=user_id,
        )
        return assignment, True
    # Unreachable: the second attempt either returns or raises
    raise ConflictOrConstraint("Assignment for this date changed concurrently, try again")


# ---------------------------------------------------------------------------
# Cleaner actions


def set_assignment_status(
    db: Session, assignment_id: int, status: str, actor: Optional[User] = None
) -> CleaningAssignment:
    assignment = get_assignment(db, assignment_id)
    ensure_can_work_assignment(actor, assignment, "You can only update your own assignments")
    previous = assignment.status
    apply_status(assignment, status, now=_utcnow())
    db.commit()
    db.refresh(assignment)
    logger.info("assignment_status_changed", assignment_id=assignment.id, previous=previous, status=status)
    return assignment


def toggle_checklist_item(db: Session, item_id: int, actor: Optional[User] = None) -> CleaningChecklistItem:
    item = get_checklist_item(db, item_id)
    ensure_can_work_assignment(actor, item.assignment, "You can only update your own checklist")
    if item.is_completed:
        item.is_completed = False
        item.completed_at = None
        item.photo_url = None
    else:
        item.is_completed = True
        item.completed_at = _utcnow()
    db.commit()
    db.refresh(item)
    return item


def attach_photo(
    db: Session, item_id: int, photo_url: str, actor: Optional[User] = None
) -> CleaningChecklistItem:
    if not photo_url or not photo_url.strip():
        raise InvalidInput("Photo is required")
    item = get_checklist_item(db, item_id)
    ensure_can_work_assignment(actor, item.assignment, "You can only upload to your own checklist")
    item.photo_url = photo_url.strip()
    item.is_completed = True
    item.completed_at = _utcnow()
    db.commit()
    db.refresh(item)
    logger.info("checklist_photo_attached", item_id=item.id, assignment_id=item.assignment_id)
    return item


def ensure_item_access(db: Session, item_id: int, actor: Optional[User]) -> CleaningChecklistItem:
    """Load an item and check the actor may work it, before any upload happens."""
    item = get_checklist_item(db, item_id)
    ensure_can_work_assignment(actor, item.assignment, "You can only upload to your own checklist")
    return item
