from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class Participant(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: Optional[str] = Field(default=None, index=True)  # External account; opaque here
    full_name: str
    handle: Optional[str] = Field(default=None)  # In-game username

    # Latest reported match stats (overwritten per match, not averaged)
    avg_pass_accuracy: float = Field(default=0.0)
    avg_possession: float = Field(default=0.0)

    eliminated: bool = Field(default=False, index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def display_name(self) -> str:
        return self.handle or self.full_name or "TBD"
