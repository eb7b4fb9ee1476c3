"""Task lifecycle state machine.

States: pending → in_progress → completed → verified
pending → completed is allowed as a combined accept-and-complete.
verified is terminal; no state moves backward.
"""

from ecoledger.exceptions import InvalidTransitionError
from ecoledger.models import TaskStatusEnum

VALID_TRANSITIONS: dict[str, list[str]] = {
    "pending": ["in_progress", "completed"],
    "in_progress": ["completed"],
    "completed": ["verified"],
    "verified": [],     # terminal
}

# States a completion may start from
COMPLETABLE_STATES: tuple[str, ...] = ("pending", "in_progress")

# States that already carry a reward
REWARDED_STATES: tuple[str, ...] = ("completed", "verified")


def status_value(status: str | TaskStatusEnum) -> str:
    """Normalise an ORM status (enum or raw string) to its string value."""
    return status.value if isinstance(status, TaskStatusEnum) else status


def can_transition(current: str, target: str) -> bool:
    """Check if a task state transition is valid."""
    return target in VALID_TRANSITIONS.get(current, [])


def validate_transition(current: str, target: str) -> None:
    """Validate a task state transition, raising InvalidTransitionError if invalid."""
    if not can_transition(current, target):
        raise InvalidTransitionError(current, target, VALID_TRANSITIONS.get(current, []))
