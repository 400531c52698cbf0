from enum import Enum
from typing import Optional

class RepairStatus(str, Enum):
    PENDING = "Pending"
    ASSIGNED = "Assigned"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (RepairStatus.COMPLETED, RepairStatus.CANCELLED)

    @classmethod
    def from_value(cls, value: Optional[str]) -> Optional["RepairStatus"]:
        for status in cls:
            if status.value == value:
                return status
        return None

def can_transition(current: Optional[str], new: RepairStatus) -> bool:
    """Terminal states are final; any other move along the lifecycle is allowed."""
    current_status = RepairStatus.from_value(current)
    if current_status is None:
        return True
    if current_status == new:
        return True
    return not current_status.is_terminal

def transition_error(current: Optional[str], new: RepairStatus, has_technician: bool) -> Optional[str]:
    """
    Why a repair in `current` cannot be set to `new` by an edit, or None if it can.

    Only a claim assigns a technician; working states need one, and a
    claimed repair cannot go back to the open board.
    """
    if not can_transition(current, new):
        return f"Cannot change status of a {current} repair"
    if new == RepairStatus.from_value(current):
        return None
    if new == RepairStatus.ASSIGNED:
        return "Only a claim can assign a repair"
    if new in (RepairStatus.IN_PROGRESS, RepairStatus.COMPLETED) and not has_technician:
        return "Repair has no technician yet"
    if new == RepairStatus.PENDING and has_technician:
        return "Cannot reopen a claimed repair"
    return None
