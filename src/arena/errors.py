"""Domain error taxonomy.

Every error carries a stable machine-readable ``kind`` (the category) and
``code`` (the specific failure) so the presentation layer can map it without
string matching. Only ``StorageFailure`` is retryable.
"""

from __future__ import annotations


class ArenaError(Exception):
    """Base class for all domain errors."""

    kind: str = "error"
    status_code: int = 400
    retryable: bool = False
    default_message: str = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def code(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict[str, str]:
        return {"detail": self.message, "kind": self.kind, "code": self.code}


# ── Categories ──


class NotFound(ArenaError):
    kind = "not_found"
    status_code = 404
    default_message = "Not found"


class InvalidState(ArenaError):
    kind = "invalid_state"
    status_code = 409
    default_message = "Operation not allowed in the current state"


class InvalidInput(ArenaError):
    kind = "invalid_input"
    status_code = 400
    default_message = "Invalid input"


class AuthorizationDenied(ArenaError):
    kind = "authorization_denied"
    status_code = 403
    default_message = "Not allowed"


class Conflict(ArenaError):
    kind = "conflict"
    status_code = 409
    default_message = "Conflict"


class StorageFailure(ArenaError):
    kind = "storage_failure"
    status_code = 503
    retryable = True
    default_message = "Storage failure, please retry"


# ── NotFound ──


class MatchNotFound(NotFound):
    default_message = "Match not found"


class ApplicationNotFound(NotFound):
    default_message = "Application not found"


class UserNotFound(NotFound):
    default_message = "User not found"


# ── InvalidState ──


class InvalidTransition(InvalidState):
    default_message = "Invalid status transition"


class MatchNotOpen(InvalidState):
    default_message = "Match is not open"


class AlreadyDecided(InvalidState):
    default_message = "Application has already been decided"


class AlreadyFinished(InvalidState):
    default_message = "Match already finished"


class MatchModeLocked(InvalidState):
    default_message = "Match mode cannot change once applications exist"


# ── InvalidInput ──


class AmbiguousWinner(InvalidInput):
    default_message = "Choose exactly one winner: winner_user_id or winner_team_id"


class InvalidBonus(InvalidInput):
    default_message = "bonus_points must be >= 0"


class InvalidPoints(InvalidInput):
    default_message = "points must be >= 0"


class TeamRequired(InvalidInput):
    default_message = "team_id is required for team match"


class CannotDeleteSelf(InvalidInput):
    default_message = "Cannot delete yourself"


# ── AuthorizationDenied ──


class NotAuthenticated(AuthorizationDenied):
    status_code = 401
    default_message = "Not authenticated"


class AdminRequired(AuthorizationDenied):
    default_message = "Admin only"


# ── Conflict ──


class AlreadyInTeam(Conflict):
    default_message = "You are already a member of a team. Leave it first."


class TeamUnavailable(Conflict):
    default_message = "Team closed or not found"


class NotTeamMember(Conflict):
    default_message = "You are not a member of this team"


class WinnerNotParticipant(Conflict):
    default_message = "Winner is not a participant of this match"
