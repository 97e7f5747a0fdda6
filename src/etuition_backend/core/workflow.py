'''
State transitions for tuitions and applications.

Every call site that moves a tuition or an application to a new status goes
through these tables, so the allowed moves live in one place.
'''
from ..common.exceptions import ConflictError, ForbiddenError
from ..database.db_enums import ApplicationStatus, TuitionStatus


APPLICATION_TRANSITIONS: dict[ApplicationStatus, frozenset[ApplicationStatus]] = {
    ApplicationStatus.PENDING: frozenset({ApplicationStatus.APPROVED, ApplicationStatus.REJECTED}),
    ApplicationStatus.APPROVED: frozenset(),
    ApplicationStatus.REJECTED: frozenset(),
}

TUITION_TRANSITIONS: dict[TuitionStatus, frozenset[TuitionStatus]] = {
    TuitionStatus.PENDING: frozenset({TuitionStatus.ACTIVE, TuitionStatus.ASSIGNED}),
    TuitionStatus.ACTIVE: frozenset({TuitionStatus.ASSIGNED}),
    TuitionStatus.ASSIGNED: frozenset(),
}

# Statuses counted as a live application when checking for duplicates.
OPEN_APPLICATION_STATUSES = (ApplicationStatus.PENDING.value, ApplicationStatus.APPROVED.value)


def can_transition_application(current: str, target: str) -> bool:
    return ApplicationStatus(target) in APPLICATION_TRANSITIONS[ApplicationStatus(current)]


def can_transition_tuition(current: str, target: str) -> bool:
    return TuitionStatus(target) in TUITION_TRANSITIONS[TuitionStatus(current)]


def ensure_application_transition(current: str, target: str) -> None:
    """
    Raises ConflictError if an application cannot move from `current` to `target`.
    """
    if not can_transition_application(current, target):
        raise ConflictError(f"Application cannot move from '{current}' to '{target}'.")


def ensure_tuition_transition(current: str, target: str) -> None:
    """
    Raises ConflictError if a tuition cannot move from `current` to `target`.
    """
    if not can_transition_tuition(current, target):
        raise ConflictError(f"Tuition cannot move from '{current}' to '{target}'.")


def ensure_application_mutable(status: str) -> None:
    """An approved application can no longer be edited, rejected or deleted."""
    if status == ApplicationStatus.APPROVED.value:
        raise ForbiddenError("An approved application cannot be modified.")


def is_tuition_open(status: str) -> bool:
    """A tuition accepts applications until it is assigned."""
    return status != TuitionStatus.ASSIGNED.value


def tuition_states_allowing(target: str) -> list[str]:
    """Tuition statuses from which a move to `target` is allowed, for conditional updates."""
    return [
        state.value for state in TuitionStatus
        if TuitionStatus(target) in TUITION_TRANSITIONS[state]
    ]
