"""Draft engine exceptions.

Every failure carries a stable ``code`` so transports can forward it to the
requesting client unchanged.
"""


class DraftError(Exception):
    """Base exception for all draft room errors."""
    code = 'draft_error'
    status = 400

    def __init__(self, message=None):
        super().__init__(message or self.__doc__.strip().rstrip('.'))

    @property
    def message(self) -> str:
        return str(self)

    def to_dict(self):
        return {'message': self.message, 'code': self.code}


class NotYourTurn(DraftError):
    """It is not your turn."""
    code = 'not_your_turn'


class PlayerAlreadyDrafted(DraftError):
    """Player already drafted."""
    code = 'player_already_drafted'
    status = 409


class PlayerNotFound(DraftError):
    """No player at that board position."""
    code = 'player_not_found'


class SlotUnavailable(DraftError):
    """Roster slot is not available."""
    code = 'slot_unavailable'


class PositionMismatch(SlotUnavailable):
    """Player cannot fill this roster slot."""
    code = 'position_mismatch'


class InsufficientBudget(DraftError):
    """Insufficient budget."""
    code = 'insufficient_budget'


class InvalidParticipantCount(DraftError):
    """Participant count does not match room capacity."""
    code = 'invalid_participant_count'


class DraftNotActive(DraftError):
    """Draft is not active."""
    code = 'draft_not_active'
    status = 409


class UnknownParticipant(DraftError):
    """User is not a participant in this draft."""
    code = 'unknown_participant'
    status = 403


class SessionNotFound(DraftError):
    """Draft not found."""
    code = 'session_not_found'
    status = 404


class RoomAlreadyExists(DraftError):
    """A draft is already running in this room."""
    code = 'room_already_exists'
    status = 409


class DuplicatePickInFlight(DraftError):
    """Another action is already being processed for this draft."""
    code = 'duplicate_pick_in_flight'
    status = 409
