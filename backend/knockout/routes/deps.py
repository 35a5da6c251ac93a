from typing import Optional

from fastapi import Depends, Header
from sqlmodel import Session

from knockout.database import get_session
from knockout.services.bracket_service import BracketService
from knockout.services.match_service import MatchService
from knockout.services.ranking_service import RankingService
from knockout.services.suggestion_service import SuggestionGenerator


def get_bracket_service(session: Session = Depends(get_session)) -> BracketService:
    return BracketService(session)


def get_match_service(session: Session = Depends(get_session)) -> MatchService:
    return MatchService(session)


def get_ranking_service(session: Session = Depends(get_session)) -> RankingService:
    return RankingService(session)


def get_suggestion_generator(session: Session = Depends(get_session)) -> SuggestionGenerator:
    return SuggestionGenerator(session)


def get_actor_id(x_actor_id: Optional[str] = Header(default=None)) -> Optional[str]:
    """Identity of whoever performed the action, as resolved by the auth layer. Not validated here."""
    return x_actor_id
