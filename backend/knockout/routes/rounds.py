from datetime import date, datetime
from typing import List, Optional, Union

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from knockout.models.round import Round
from knockout.routes.deps import get_bracket_service
from knockout.services.bracket_service import BracketService, RoundCreated, RoundReady

router = APIRouter()


class RoundCreate(BaseModel):
    name: str
    round_number: int
    total_matches: int = 0
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("name cannot be empty")
        return v.strip()

    @field_validator("round_number")
    @classmethod
    def validate_round_number(cls, v):
        if v < 1:
            raise ValueError("round_number must be >= 1")
        return v

    @field_validator("total_matches")
    @classmethod
    def validate_total_matches(cls, v):
        if v < 0:
            raise ValueError("total_matches must be >= 0")
        return v

    @model_validator(mode="after")
    def validate_date_range(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must be >= start_date")
        return self


class RoundUpdate(BaseModel):
    name: Optional[str] = None
    round_number: Optional[int] = None
    total_matches: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: Optional[str] = None
    released: Optional[bool] = None


class RoundResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    round_number: int
    name: str
    total_matches: int
    status: str
    released: bool
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    created_at: datetime
    match_count: Optional[int] = None


class RoundCreatedResponse(BaseModel):
    round_id: int
    round_number: int
    match_count: int


class TryAdvanceResponse(BaseModel):
    ready: bool
    advanced: bool = False
    round_id: Optional[int] = None
    next_round: Optional[RoundCreatedResponse] = None


def round_response(round_: Round, match_count: Optional[int] = None) -> RoundResponse:
    response = RoundResponse.model_validate(round_)
    response.match_count = match_count
    return response


@router.get("/rounds", response_model=List[RoundResponse])
def list_rounds(service: BracketService = Depends(get_bracket_service)):
    """List rounds with match counts, ordered by round number"""
    return [round_response(round_, count) for round_, count in service.list_rounds()]


@router.post("/rounds", response_model=RoundResponse, status_code=201)
def create_round(payload: RoundCreate, service: BracketService = Depends(get_bracket_service)):
    """Create an upcoming, unreleased round"""
    round_ = service.create_round(
        payload.round_number,
        payload.name,
        payload.total_matches,
        payload.start_date,
        payload.end_date,
    )
    return round_response(round_, 0)


@router.get("/rounds/{round_id}", response_model=RoundResponse)
def get_round(round_id: int, service: BracketService = Depends(get_bracket_service)):
    round_ = service.get_round(round_id)
    return round_response(round_, service.count_matches(round_id))


@router.patch("/rounds/{round_id}", response_model=RoundResponse)
def update_round(round_id: int, payload: RoundUpdate, service: BracketService = Depends(get_bracket_service)):
    """Update name / status / released. Releasing requires the previous round to be completed."""
    round_ = service.update_round(round_id, payload.model_dump(exclude_unset=True))
    return round_response(round_, service.count_matches(round_id))


@router.delete("/rounds/{round_id}", status_code=204)
def delete_round(round_id: int, service: BracketService = Depends(get_bracket_service)):
    """Delete a round that has no matches"""
    service.delete_round(round_id)
    return Response(status_code=204)


@router.post("/rounds/{round_id}/advance", response_model=RoundCreatedResponse, status_code=201)
def advance_round(round_id: int, service: BracketService = Depends(get_bracket_service)):
    """Pair this round's winners into the next round (all matches must be completed)"""
    created = service.advance_round(round_id)
    return RoundCreatedResponse(**created.__dict__)


@router.post("/rounds/{round_id}/try-advance", response_model=TryAdvanceResponse)
def try_advance_round(
    round_id: int,
    auto_advance: bool = Query(default=False),
    service: BracketService = Depends(get_bracket_service),
):
    """Report whether the round is fully decided; advance it when auto_advance is set"""
    outcome: Union[None, RoundReady, RoundCreated] = service.try_advance_round(round_id, auto_advance)
    if outcome is None:
        return TryAdvanceResponse(ready=False, round_id=round_id)
    if isinstance(outcome, RoundReady):
        return TryAdvanceResponse(ready=True, round_id=round_id)
    return TryAdvanceResponse(
        ready=True,
        advanced=True,
        round_id=round_id,
        next_round=RoundCreatedResponse(**outcome.__dict__),
    )
