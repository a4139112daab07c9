"""
Role and ownership checks for facility and cleaning operations.
"""
from typing import Optional

from ..models.models import CleaningAssignment, User
from .errors import Forbidden


ROLE_ADMIN = "Administrator"
ROLE_MANAGER = "Manager"
ROLE_CLEANER = "User"


def role_names(user: Optional[User]) -> set:
    if user is None:
        return set()
    return {r.name for r in user.roles}


def is_admin(user: Optional[User]) -> bool:
    """Check if user has the Administrator role."""
    return ROLE_ADMIN in role_names(user)


def is_manager_or_admin(user: Optional[User]) -> bool:
    return bool({ROLE_ADMIN, ROLE_MANAGER} & role_names(user))


def is_cleaner(user: Optional[User]) -> bool:
    return ROLE_CLEANER in role_names(user)


def ensure_can_work_assignment(user: Optional[User], assignment: CleaningAssignment, message: str) -> None:
    """
    Only the assigned cleaner or an administrator may change an assignment's
    status or checklist. A missing actor means the call is trusted (scripts, tests).
    """
    if user is None:
        return
    if assignment.assigned_user_id == user.id or is_admin(user):
        return
    raise Forbidden(message)
