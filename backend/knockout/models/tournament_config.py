from typing import Any, Optional

from sqlalchemy import JSON
from sqlmodel import Column, Field, SQLModel


class TournamentConfig(SQLModel, table=True):
    """Key/value tournament settings (daily window, games per day, display name)."""

    key: str = Field(primary_key=True)
    value_json: Optional[Any] = Field(default=None, sa_column=Column(JSON, nullable=True))
