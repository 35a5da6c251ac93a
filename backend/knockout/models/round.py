from datetime import date, datetime
from typing import TYPE_CHECKING, List, Optional

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from knockout.models.match import Match

ROUND_UPCOMING = "upcoming"
ROUND_IN_PROGRESS = "in_progress"
ROUND_COMPLETED = "completed"
ROUND_STATUSES = (ROUND_UPCOMING, ROUND_IN_PROGRESS, ROUND_COMPLETED)


class Round(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    round_number: int = Field(index=True)  # Not unique; latest created wins on lookups
    name: str
    total_matches: int = Field(default=0)  # Declared capacity, informational
    status: str = Field(default=ROUND_UPCOMING)  # "upcoming" | "in_progress" | "completed"
    released: bool = Field(default=False)
    suggestion_seed: Optional[int] = Field(default=None)  # Written once, then frozen

    # Informational bounds; scheduling never reads these
    start_date: Optional[date] = Field(default=None)
    end_date: Optional[date] = Field(default=None)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})

    # Relationships
    matches: List["Match"] = Relationship(back_populates="round")
