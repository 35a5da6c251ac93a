"""
Domain errors raised by the bracket services.

Routers never translate these by hand: main.py registers a single handler that
turns any BracketError into {"detail": message} with the class status code.
"""


class BracketError(Exception):
    """Base class for bracket domain errors."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(BracketError):
    """Malformed or missing input."""


class StateConflict(BracketError):
    """Operation not valid for the entity's current status."""


class InsufficientParticipants(StateConflict):
    def __init__(self, available: int):
        super().__init__(f"Need at least 2 participants to seed round 1 (found {available})")
        self.available = available


class RoundIncomplete(StateConflict):
    def __init__(self, round_id: int):
        super().__init__(f"Not all matches in round {round_id} are completed")
        self.round_id = round_id


class RoundEmpty(StateConflict):
    def __init__(self, round_id: int):
        super().__init__(f"Round {round_id} has no matches")
        self.round_id = round_id


class NotFound(BracketError):
    status_code = 404


class RoundNotFound(NotFound):
    def __init__(self, round_id: int):
        super().__init__("Round not found")
        self.round_id = round_id


class MatchNotFound(NotFound):
    def __init__(self, match_id: int):
        super().__init__("Match not found")
        self.match_id = match_id


class ParticipantNotFound(NotFound):
    def __init__(self, participant_id: int):
        super().__init__("Participant not found")
        self.participant_id = participant_id
