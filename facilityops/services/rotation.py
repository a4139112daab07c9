"""
Round-robin rotation for cleaning duty.
The cursor is never stored: it is derived from the facility's most recent
assignment each time a batch is scheduled.
"""
from typing import Optional, Sequence

from .errors import NoEligibleStaff


def rotation_start_index(eligible_ids: Sequence[int], last_assignee_id: Optional[int]) -> int:
    """
    Position in the eligible list where the next batch starts.

    Args:
        eligible_ids: Eligible user IDs ordered by user ID ascending
        last_assignee_id: Assignee of the latest-dated assignment, if any

    Returns:
        0 when there is no history or the last assignee left the pool,
        otherwise the slot right after the last assignee
    """
    if not eligible_ids:
        raise NoEligibleStaff("No users assigned to this facility")
    if last_assignee_id is None:
        return 0
    positions = {uid: idx for idx, uid in enumerate(eligible_ids)}
    idx = positions.get(last_assignee_id)
    if idx is None:
        # Last assignee is no longer eligible: restart from the first cleaner
        return 0
    return (idx + 1) % len(eligible_ids)


def pick_assignee(eligible_ids: Sequence[int], start_index: int, created_so_far: int) -> int:
    if not eligible_ids:
        raise NoEligibleStaff("No users assigned to this facility")
    return eligible_ids[(start_index + created_so_far) % len(eligible_ids)]
