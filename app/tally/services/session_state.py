from __future__ import annotations

from enum import Enum

from app.tally.core.error_catalog import BusinessRuleViolationError


class SessionStatus(str, Enum):
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


_ALLOWED_TRANSITIONS: dict[SessionStatus, frozenset[SessionStatus]] = {
    SessionStatus.IN_PROGRESS: frozenset({SessionStatus.COMPLETED, SessionStatus.CANCELLED}),
    SessionStatus.COMPLETED: frozenset(),
    SessionStatus.CANCELLED: frozenset(),
}


def _status(value) -> SessionStatus:
    return value if isinstance(value, SessionStatus) else SessionStatus(value)


def can_transition(current, target) -> bool:
    return _status(target) in _ALLOWED_TRANSITIONS[_status(current)]


def ensure_transition(current, target) -> SessionStatus:
    current_status = _status(current)
    target_status = _status(target)
    if target_status not in _ALLOWED_TRANSITIONS[current_status]:
        if current_status == SessionStatus.COMPLETED:
            message = "Session already completed"
        elif current_status == SessionStatus.CANCELLED:
            message = "Session is cancelled"
        else:
            message = f"Cannot move session from {current_status.value} to {target_status.value}"
        raise BusinessRuleViolationError(
            message,
            details={"from": current_status.value, "to": target_status.value},
        )
    return target_status


def ensure_editable(session) -> None:
    status = _status(session.status)
    if status == SessionStatus.COMPLETED:
        raise BusinessRuleViolationError("Cannot edit completed session", details={"status": status.value})
    if status == SessionStatus.CANCELLED:
        raise BusinessRuleViolationError("Cannot edit cancelled session", details={"status": status.value})


def ensure_deletable(session) -> None:
    if _status(session.status) == SessionStatus.COMPLETED:
        raise BusinessRuleViolationError(
            "Cannot delete completed session",
            details={"status": SessionStatus.COMPLETED.value},
        )
