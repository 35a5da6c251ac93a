from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from knockout.models.match import Match

GOAL_HOME = "goal_home"
GOAL_AWAY = "goal_away"
GOAL_EVENT_TYPES = (GOAL_HOME, GOAL_AWAY)


class MatchEvent(SQLModel, table=True):
    """Append-only log entry for an ongoing match."""

    id: Optional[int] = Field(default=None, primary_key=True)
    match_id: int = Field(foreign_key="match.id", index=True)
    event_type: str  # "goal_home" | "goal_away"
    minute: Optional[int] = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    match: "Match" = Relationship(back_populates="events")
