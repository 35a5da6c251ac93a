from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, field_validator
from sqlmodel import Session, select

from knockout.database import get_session
from knockout.errors import ParticipantNotFound
from knockout.models.participant import Participant
from knockout.routes.deps import get_ranking_service
from knockout.services.ranking_service import DEFAULT_RANKING_LIMIT, RankingService

router = APIRouter()


class ParticipantCreate(BaseModel):
    full_name: str
    handle: Optional[str] = None
    user_id: Optional[str] = None

    @field_validator("full_name")
    @classmethod
    def validate_full_name(cls, v):
        if not v or not v.strip():
            raise ValueError("full_name cannot be empty")
        return v.strip()


class ParticipantResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: Optional[str] = None
    full_name: str
    handle: Optional[str] = None
    avg_pass_accuracy: float
    avg_possession: float
    eliminated: bool
    created_at: datetime


@router.get("/participants/active", response_model=List[ParticipantResponse])
def list_active_participants(session: Session = Depends(get_session)):
    """Participants still in the tournament, alphabetical"""
    return session.exec(
        select(Participant)
        .where(Participant.eliminated == False)  # noqa: E712
        .order_by(Participant.full_name, Participant.created_at)
    ).all()


@router.get("/participants/ranked", response_model=List[ParticipantResponse])
def list_ranked_participants(
    limit: int = Query(default=DEFAULT_RANKING_LIMIT, ge=1),
    service: RankingService = Depends(get_ranking_service),
):
    """Eligible participants by pass accuracy, then possession"""
    return service.ranked_eligible(limit)


@router.post("/participants", response_model=ParticipantResponse, status_code=201)
def create_participant(payload: ParticipantCreate, session: Session = Depends(get_session)):
    """Register a participant whose payment has been approved"""
    participant = Participant(**payload.model_dump())
    session.add(participant)
    session.commit()
    session.refresh(participant)
    return participant


@router.post("/participants/{participant_id}/eliminate", response_model=ParticipantResponse)
def eliminate_participant(participant_id: int, session: Session = Depends(get_session)):
    """Mark a participant eliminated. Already eliminated is a no-op."""
    participant = session.get(Participant, participant_id)
    if not participant:
        raise ParticipantNotFound(participant_id)
    if not participant.eliminated:
        participant.eliminated = True
        session.add(participant)
        session.commit()
        session.refresh(participant)
    return participant
