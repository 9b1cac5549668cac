from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol

from hireform.errors import InvalidStatusTransition
from hireform.types import ApplicationStatus

INITIAL_STATUS: ApplicationStatus = "PENDING"
TERMINAL_STATUSES: frozenset[str] = frozenset({"ACCEPTED", "REJECTED", "WITHDRAWN"})

TRANSITIONS: dict[str, frozenset[str]] = {
    "PENDING": frozenset({"UNDER_REVIEW", "WITHDRAWN"}),
    "UNDER_REVIEW": frozenset({"SHORTLISTED", "WITHDRAWN"}),
    "SHORTLISTED": frozenset({"ACCEPTED", "REJECTED", "WITHDRAWN"}),
    "ACCEPTED": frozenset(),
    "REJECTED": frozenset(),
    "WITHDRAWN": frozenset(),
}


class StatusTracked(Protocol):
    status: str
    status_updated_at: datetime | None
    viewed_at: datetime | None


@dataclass(slots=True)
class StatusLifecycle:
    """Review-stage state machine for submitted applications."""

    transitions: dict[str, frozenset[str]]

    @classmethod
    def default(cls) -> "StatusLifecycle":
        return cls(transitions=TRANSITIONS)

    def allowed_targets(self, current: str) -> frozenset[str]:
        if current not in self.transitions:
            raise InvalidStatusTransition(current, "?")
        return self.transitions[current]

    def can_transition(self, current: str, target: str) -> bool:
        return target in self.transitions.get(current, frozenset())

    def is_terminal(self, status: str) -> bool:
        return status in TERMINAL_STATUSES

    def transition(self, application: StatusTracked, target: str, now: datetime | None = None) -> None:
        if not self.can_transition(application.status, target):
            raise InvalidStatusTransition(application.status, target)
        application.status = target
        application.status_updated_at = now or datetime.now(UTC)

    def mark_viewed(self, application: StatusTracked, now: datetime | None = None) -> bool:
        if application.viewed_at is not None:
            return False
        application.viewed_at = now or datetime.now(UTC)
        return True


def initial_status(requested: str | None = None) -> ApplicationStatus:
    """Status for a newly submitted application; applicants cannot choose another."""
    if requested not in (None, INITIAL_STATUS):
        raise InvalidStatusTransition("NEW", str(requested))
    return INITIAL_STATUS
