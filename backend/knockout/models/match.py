from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from knockout.models.match_event import MatchEvent
    from knockout.models.round import Round

MATCH_SCHEDULED = "scheduled"
MATCH_ONGOING = "ongoing"
MATCH_COMPLETED = "completed"


class Match(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    round_id: int = Field(foreign_key="round.id", index=True)

    # Weak references: lookup only, participants outlive their matches
    participant_home_id: Optional[int] = Field(default=None, foreign_key="participant.id")
    participant_away_id: Optional[int] = Field(default=None, foreign_key="participant.id")

    status: str = Field(default=MATCH_SCHEDULED)  # "scheduled" | "ongoing" | "completed"
    home_goals: int = Field(default=0)
    away_goals: int = Field(default=0)

    # Set only when the match is completed
    home_pass_accuracy: Optional[float] = Field(default=None)
    away_pass_accuracy: Optional[float] = Field(default=None)
    home_possession: Optional[float] = Field(default=None)
    away_possession: Optional[float] = Field(default=None)

    scheduled_at: Optional[datetime] = Field(default=None, index=True)
    started_at: Optional[datetime] = Field(default=None)
    ended_at: Optional[datetime] = Field(default=None)

    match_title: Optional[str] = Field(default=None)
    venue: Optional[str] = Field(default=None)
    published: bool = Field(default=False)
    admin_id: Optional[str] = Field(default=None)  # Who started the match

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})

    # Relationships
    round: "Round" = Relationship(back_populates="matches")
    events: List["MatchEvent"] = Relationship(back_populates="match")
