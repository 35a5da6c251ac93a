from knockout.models.match import Match
from knockout.models.match_event import MatchEvent
from knockout.models.participant import Participant
from knockout.models.round import Round
from knockout.models.tournament_config import TournamentConfig

__all__ = [
    "Participant",
    "Round",
    "Match",
    "MatchEvent",
    "TournamentConfig",
]
