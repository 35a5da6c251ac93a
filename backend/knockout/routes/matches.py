"""
Match endpoints: enriched reads, admin CRUD, suggested pairings and the
runtime actions (start, goal, end, publish).

Runtime actions that produce a live event hand it to the dispatcher as a
background task, after the response is sent.
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Response
from pydantic import BaseModel, field_validator

from knockout.routes.deps import get_actor_id, get_match_service, get_suggestion_generator
from knockout.services.bracket_service import MatchResult
from knockout.services.live_events import LiveEventDispatcher, get_dispatcher
from knockout.services.match_service import MatchService, MatchView
from knockout.services.suggestion_service import PairingSuggestion, SuggestionGenerator

router = APIRouter()


class MatchCreate(BaseModel):
    round_id: int
    participant_home_id: Optional[int] = None
    participant_away_id: Optional[int] = None
    scheduled_at: Optional[datetime] = None
    match_title: Optional[str] = None
    venue: Optional[str] = None
    published: bool = False


class MatchUpdate(BaseModel):
    participant_home_id: Optional[int] = None
    participant_away_id: Optional[int] = None
    scheduled_at: Optional[datetime] = None
    match_title: Optional[str] = None
    venue: Optional[str] = None
    published: Optional[bool] = None


class MatchPublish(BaseModel):
    match_title: Optional[str] = None
    venue: Optional[str] = None
    scheduled_at: Optional[datetime] = None


class GoalEventCreate(BaseModel):
    event_type: str
    minute: Optional[int] = None


class MatchEndRequest(BaseModel):
    home_goals: int = 0
    away_goals: int = 0
    home_pass_accuracy: Optional[float] = None
    away_pass_accuracy: Optional[float] = None
    home_possession: Optional[float] = None
    away_possession: Optional[float] = None

    @field_validator("home_goals", "away_goals")
    @classmethod
    def validate_goals(cls, v):
        if v < 0:
            raise ValueError("goals must be >= 0")
        return v

    @field_validator("home_pass_accuracy", "away_pass_accuracy", "home_possession", "away_possession")
    @classmethod
    def validate_percentage(cls, v):
        if v is not None and not 0 <= v <= 100:
            raise ValueError("must be between 0 and 100")
        return v


class MatchEndResponse(BaseModel):
    match: MatchView
    round_ready: bool = False


class MatchEventResponse(BaseModel):
    id: int
    match_id: int
    event_type: str
    minute: Optional[int] = None
    created_at: datetime


class SuggestionItem(BaseModel):
    home_participant_id: int
    away_participant_id: int
    home_name: str
    away_name: str
    home_handle: Optional[str] = None
    away_handle: Optional[str] = None


class SuggestionResponse(BaseModel):
    round_id: int
    round_number: int
    suggestions: List[SuggestionItem]


def _suggestion_item(s: PairingSuggestion) -> SuggestionItem:
    return SuggestionItem(**s.__dict__)


@router.get("/matches", response_model=List[MatchView])
def list_matches(
    status: Optional[str] = Query(default=None, description="upcoming|scheduled|ongoing|completed"),
    round_id: Optional[int] = Query(default=None),
    published: Optional[bool] = Query(default=None),
    service: MatchService = Depends(get_match_service),
):
    """List matches ordered by kickoff time"""
    return service.list_matches(status=status, round_id=round_id, published=published)


@router.get("/matches/suggested", response_model=SuggestionResponse)
def suggested_pairings(
    round_id: int = Query(...),
    generator: SuggestionGenerator = Depends(get_suggestion_generator),
):
    """Preview pairings for a round. Stable across reloads until matches are created."""
    result = generator.suggest(round_id)
    return SuggestionResponse(
        round_id=result.round_id,
        round_number=result.round_number,
        suggestions=[_suggestion_item(s) for s in result.suggestions],
    )


@router.get("/matches/{match_id}", response_model=MatchView)
def get_match(match_id: int, service: MatchService = Depends(get_match_service)):
    return service.get_match(match_id)


@router.post("/matches", response_model=MatchView, status_code=201)
def create_match(payload: MatchCreate, service: MatchService = Depends(get_match_service)):
    return service.create_match(payload.model_dump())


@router.patch("/matches/{match_id}", response_model=MatchView)
def update_match(match_id: int, payload: MatchUpdate, service: MatchService = Depends(get_match_service)):
    return service.update_match(match_id, payload.model_dump(exclude_unset=True))


@router.delete("/matches/{match_id}", status_code=204)
def delete_match(match_id: int, service: MatchService = Depends(get_match_service)):
    service.delete_match(match_id)
    return Response(status_code=204)


@router.post("/matches/{match_id}/publish", response_model=MatchView)
def publish_match(
    match_id: int,
    payload: Optional[MatchPublish] = None,
    service: MatchService = Depends(get_match_service),
):
    update_data = payload.model_dump(exclude_unset=True) if payload else {}
    return service.publish_match(match_id, update_data)


@router.post("/matches/{match_id}/start", response_model=MatchView)
def start_match(
    match_id: int,
    background_tasks: BackgroundTasks,
    actor_id: Optional[str] = Depends(get_actor_id),
    service: MatchService = Depends(get_match_service),
    dispatcher: LiveEventDispatcher = Depends(get_dispatcher),
):
    """Set the match ongoing. Starting an ongoing match returns it unchanged."""
    view, event = service.start_match(match_id, actor_id)
    if event is not None:
        background_tasks.add_task(dispatcher.dispatch, event)
    return view


@router.get("/matches/{match_id}/events", response_model=List[MatchEventResponse])
def list_match_events(match_id: int, service: MatchService = Depends(get_match_service)):
    return [MatchEventResponse(**e.model_dump()) for e in service.list_events(match_id)]


@router.post("/matches/{match_id}/events", response_model=MatchView)
def add_goal_event(
    match_id: int,
    payload: GoalEventCreate,
    background_tasks: BackgroundTasks,
    service: MatchService = Depends(get_match_service),
    dispatcher: LiveEventDispatcher = Depends(get_dispatcher),
):
    """Log a goal (goal_home | goal_away) on an ongoing match"""
    view, event = service.record_goal(match_id, payload.event_type, payload.minute)
    background_tasks.add_task(dispatcher.dispatch, event)
    return view


@router.post("/matches/{match_id}/end", response_model=MatchEndResponse)
def end_match(
    match_id: int,
    payload: MatchEndRequest,
    background_tasks: BackgroundTasks,
    service: MatchService = Depends(get_match_service),
    dispatcher: LiveEventDispatcher = Depends(get_dispatcher),
):
    """Complete the match with final score and stats. Re-ending returns the stored result.

    round_ready tells the admin the whole round is decided; the next round is
    only created through /rounds/{id}/advance.
    """
    view, event, ready = service.end_match(match_id, MatchResult(**payload.model_dump()))
    if event is not None:
        background_tasks.add_task(dispatcher.dispatch, event)
    return MatchEndResponse(match=view, round_ready=ready is not None)
