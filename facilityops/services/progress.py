"""
Checklist progress and assignment status transitions.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable

from ..models.models import ASSIGNMENT_STATUSES, CHECKLIST_AREAS, CleaningAssignment, CleaningChecklistItem
from .errors import InvalidInput


@dataclass(frozen=True)
class Progress:
    completed: int
    total: int
    percentage: int

    def to_dict(self) -> dict:
        return {"completed": self.completed, "total": self.total, "percentage": self.percentage}


def completion_percentage(completed: int, total: int) -> int:
    if total <= 0:
        return 0
    # Half-up, so 12.5% reports as 13 rather than banker's 12
    value = Decimal(100 * completed) / Decimal(total)
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def assignment_progress(items: Iterable[CleaningChecklistItem]) -> Progress:
    items = list(items)
    completed = sum(1 for it in items if it.is_completed)
    return Progress(completed, len(items), completion_percentage(completed, len(items)))


def area_progress(items: Iterable[CleaningChecklistItem]) -> Dict[str, Progress]:
    by_area: Dict[str, list] = {area: [] for area in CHECKLIST_AREAS}
    for it in items:
        by_area.setdefault(it.area, []).append(it)
    return {area: assignment_progress(area_items) for area, area_items in by_area.items()}


def apply_status(assignment: CleaningAssignment, status: str, now: datetime = None) -> None:
    """
    Move an assignment to a new status.
    started_at is only stamped on the first move to in_progress;
    completed_at is stamped on every move to completed.
    """
    if status not in ASSIGNMENT_STATUSES:
        raise InvalidInput(f"Invalid status '{status}'. Expected one of: {', '.join(ASSIGNMENT_STATUSES)}")
    now = now or datetime.now(timezone.utc)
    if status == "in_progress" and assignment.started_at is None:
        assignment.started_at = now
    elif status == "completed":
        assignment.completed_at = now
    assignment.status = status
