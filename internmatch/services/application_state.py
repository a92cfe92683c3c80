"""
Application status state machine.

    pending     -> reviewed, shortlisted, accepted, rejected, withdrawn
    reviewed    -> shortlisted, accepted, rejected, withdrawn
    shortlisted -> accepted, rejected, withdrawn
    accepted, rejected, withdrawn are terminal

Only the owning student moves an application to withdrawn; only the
posting company moves it anywhere else.
"""

from datetime import datetime
from typing import Dict, FrozenSet, Optional

from internmatch.core.errors import Forbidden, InvalidTransition, ValidationError
from internmatch.schemas.schemas import ApplicationStatus

PENDING = ApplicationStatus.pending.value
WITHDRAWN = ApplicationStatus.withdrawn.value

TRANSITIONS: Dict[str, FrozenSet[str]] = {
    "pending": frozenset({"reviewed", "shortlisted", "accepted", "rejected", "withdrawn"}),
    "reviewed": frozenset({"shortlisted", "accepted", "rejected", "withdrawn"}),
    "shortlisted": frozenset({"accepted", "rejected", "withdrawn"}),
    "accepted": frozenset(),
    "rejected": frozenset(),
    "withdrawn": frozenset(),
}

TERMINAL: FrozenSet[str] = frozenset(s for s, targets in TRANSITIONS.items() if not targets)

COMPANY_TARGETS: FrozenSet[str] = frozenset(s.value for s in ApplicationStatus) - {PENDING, WITHDRAWN}


def can_transition(current: str, target: str) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


def check_transition(current: str, target: str) -> None:
    """Raise InvalidTransition unless current -> target is in the table."""
    if not can_transition(current, target):
        raise InvalidTransition(f"Cannot change status from '{current}' to '{target}'")


def check_company_target(target: str) -> str:
    """Validate a status requested by a company; returns the normalized value."""
    known = {s.value for s in ApplicationStatus}
    if target not in known:
        raise ValidationError(f"Unknown status '{target}'")
    if target == WITHDRAWN:
        raise Forbidden("Only the student can withdraw an application")
    if target not in COMPANY_TARGETS:
        raise InvalidTransition(f"Cannot change status to '{target}'")
    return target


def transition_fields(application: dict, target: str, now: datetime,
                      feedback: Optional[str] = None) -> dict:
    """
    Fields to $set for an accepted transition.

    updated_at always moves; reviewed_at is stamped the first time the
    application leaves pending and never again.
    """
    fields = {"status": target, "updated_at": now}
    if application.get("status") == PENDING and not application.get("reviewed_at"):
        fields["reviewed_at"] = now
    if feedback is not None:
        fields["feedback"] = feedback
    return fields
