from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from knockout.routes.deps import get_bracket_service, get_match_service
from knockout.routes.rounds import RoundCreatedResponse, RoundResponse, round_response
from knockout.services.bracket_service import BracketService
from knockout.services.match_service import MatchService, MatchView

router = APIRouter()


class SeedRequest(BaseModel):
    tournament_start_date: Optional[date] = None


class BracketRound(BaseModel):
    round: RoundResponse
    matches: List[MatchView]


class BracketResponse(BaseModel):
    bracket: List[BracketRound]


@router.get("/bracket", response_model=BracketResponse)
def get_bracket(
    bracket_service: BracketService = Depends(get_bracket_service),
    match_service: MatchService = Depends(get_match_service),
):
    """Every round with its enriched matches, for bracket display"""
    rounds = []
    for round_, count in bracket_service.list_rounds():
        matches = match_service.enrich(bracket_service.get_matches_by_round(round_.id))
        rounds.append(BracketRound(round=round_response(round_, count), matches=matches))
    return BracketResponse(bracket=rounds)


@router.post("/bracket/seed", response_model=RoundCreatedResponse, status_code=201)
def seed_bracket(payload: SeedRequest, service: BracketService = Depends(get_bracket_service)):
    """Create round 1 from the participant ranking (1v2, 3v4, ...). Defaults to today."""
    created = service.seed_round1(payload.tournament_start_date or date.today())
    return RoundCreatedResponse(**created.__dict__)
