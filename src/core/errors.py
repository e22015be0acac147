"""
Error types raised by the matchmaking core and the match store.
"""


class TournamentError(Exception):
    """Base class for all tournament errors."""


class NotFoundError(TournamentError):
    """A referenced record does not exist."""


class TournamentNotFoundError(NotFoundError):
    def __init__(self, tournament_id):
        super().__init__(f"Tournament {tournament_id} not found")
        self.tournament_id = tournament_id


class MatchNotFoundError(NotFoundError):
    pass


class PlayerNotFoundError(NotFoundError):
    pass


class ValidationError(TournamentError, ValueError):
    """Input is missing or malformed."""


class SkillValidationError(ValidationError):
    """A player's skills do not line up with the tournament's skill fields."""


class StoreError(TournamentError):
    """A read or write against the match store failed."""


class VersionConflictError(StoreError):
    """A row changed between the read and the write that depends on it."""

    def __init__(self, key, expected, actual):
        super().__init__(f"Version conflict on {key}: expected {expected}, found {actual}")
        self.key = key
        self.expected = expected
        self.actual = actual
