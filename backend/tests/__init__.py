# Force SQLModel table registration at test discovery time
# This ensures all models are registered before any test database creation
from knockout.models.match import Match  # noqa: F401
from knockout.models.match_event import MatchEvent  # noqa: F401
from knockout.models.participant import Participant  # noqa: F401
from knockout.models.round import Round  # noqa: F401
from knockout.models.tournament_config import TournamentConfig  # noqa: F401
