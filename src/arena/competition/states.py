"""Match and application state machines.

Match:       open -> closed | finished,  closed -> closed | finished,  finished is terminal.
Application: pending -> approved | rejected, decisions are final.

Transitions are validated against the tables below, nothing else moves a status.
"""

from __future__ import annotations

from enum import Enum

from arena.errors import AlreadyDecided, AlreadyFinished, InvalidTransition


class MatchMode(str, Enum):
    SOLO = "solo"
    TEAM = "team"


class MatchStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"
    FINISHED = "finished"


class ApplicationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


MATCH_TRANSITIONS: dict[MatchStatus, frozenset[MatchStatus]] = {
    MatchStatus.OPEN: frozenset({MatchStatus.CLOSED, MatchStatus.FINISHED}),
    # Closing an already closed match is a no-op, not an error.
    MatchStatus.CLOSED: frozenset({MatchStatus.CLOSED, MatchStatus.FINISHED}),
    MatchStatus.FINISHED: frozenset(),
}

APPLICATION_TRANSITIONS: dict[ApplicationStatus, frozenset[ApplicationStatus]] = {
    ApplicationStatus.PENDING: frozenset({ApplicationStatus.APPROVED, ApplicationStatus.REJECTED}),
    ApplicationStatus.APPROVED: frozenset(),
    ApplicationStatus.REJECTED: frozenset(),
}


def validate_match_transition(current: str, target: MatchStatus) -> None:
    """Raise unless ``current -> target`` is a legal match transition."""
    current_status = MatchStatus(current)
    if current_status is MatchStatus.FINISHED:
        raise AlreadyFinished()
    if target not in MATCH_TRANSITIONS[current_status]:
        raise InvalidTransition(f"Invalid transition: {current_status.value} -> {target.value}")


def validate_application_transition(current: str, target: ApplicationStatus) -> None:
    """Raise unless ``current -> target`` is a legal application transition."""
    current_status = ApplicationStatus(current)
    if target not in APPLICATION_TRANSITIONS[current_status]:
        if not APPLICATION_TRANSITIONS[current_status]:
            raise AlreadyDecided(f"Application is already {current_status.value}")
        raise InvalidTransition(f"Invalid transition: {current_status.value} -> {target.value}")
