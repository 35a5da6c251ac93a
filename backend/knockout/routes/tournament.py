from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator
from sqlmodel import Session, select

from knockout.database import get_session
from knockout.models.tournament_config import TournamentConfig
from knockout.services.schedule_service import (
    CONFIG_DAILY_END_TIME,
    CONFIG_DAILY_START_TIME,
    CONFIG_GAMES_PER_DAY_ROUND1,
    get_schedule_config,
    is_valid_hhmm,
)

router = APIRouter()

CONFIG_TOURNAMENT_STATUS = "tournament_status"
CONFIG_TOURNAMENT_NAME = "tournament_name"
DEFAULT_TOURNAMENT_STATUS = "not_started"
DEFAULT_TOURNAMENT_NAME = "eFootball Knockout Cup"


class TournamentConfigResponse(BaseModel):
    tournament_status: str
    tournament_name: str
    daily_start_time: str
    daily_end_time: str
    games_per_day_round1: int


class TournamentConfigUpdate(BaseModel):
    tournament_status: Optional[str] = None
    tournament_name: Optional[str] = None
    daily_start_time: Optional[str] = None
    daily_end_time: Optional[str] = None
    games_per_day_round1: Optional[int] = None

    @field_validator("daily_start_time", "daily_end_time")
    @classmethod
    def validate_time_of_day(cls, v):
        if v is not None and not is_valid_hhmm(v):
            raise ValueError("must be a time of day in HH:MM format")
        return v.strip() if v else v

    @field_validator("games_per_day_round1")
    @classmethod
    def validate_games_per_day(cls, v):
        if v is not None and v < 1:
            raise ValueError("games_per_day_round1 must be >= 1")
        return v


def _read_config(session: Session) -> TournamentConfigResponse:
    rows = session.exec(
        select(TournamentConfig).where(
            TournamentConfig.key.in_([CONFIG_TOURNAMENT_STATUS, CONFIG_TOURNAMENT_NAME])
        )
    ).all()
    values: Dict[str, Any] = {row.key: row.value_json for row in rows}
    schedule = get_schedule_config(session)
    return TournamentConfigResponse(
        tournament_status=values.get(CONFIG_TOURNAMENT_STATUS) or DEFAULT_TOURNAMENT_STATUS,
        tournament_name=values.get(CONFIG_TOURNAMENT_NAME) or DEFAULT_TOURNAMENT_NAME,
        daily_start_time=schedule.daily_start_time,
        daily_end_time=schedule.daily_end_time,
        games_per_day_round1=schedule.games_per_day_round1,
    )


@router.get("/tournament/config", response_model=TournamentConfigResponse)
def get_tournament_config(session: Session = Depends(get_session)):
    """Tournament name/status and the scheduling window (defaults when unset)"""
    return _read_config(session)


@router.put("/tournament/config", response_model=TournamentConfigResponse)
def update_tournament_config(payload: TournamentConfigUpdate, session: Session = Depends(get_session)):
    """Upsert the provided config keys"""
    keys = {
        "tournament_status": CONFIG_TOURNAMENT_STATUS,
        "tournament_name": CONFIG_TOURNAMENT_NAME,
        "daily_start_time": CONFIG_DAILY_START_TIME,
        "daily_end_time": CONFIG_DAILY_END_TIME,
        "games_per_day_round1": CONFIG_GAMES_PER_DAY_ROUND1,
    }
    for field, value in payload.model_dump(exclude_unset=True).items():
        if value is None:
            continue
        row = session.get(TournamentConfig, keys[field])
        if row is None:
            row = TournamentConfig(key=keys[field])
        row.value_json = value
        session.add(row)
    session.commit()
    return _read_config(session)
