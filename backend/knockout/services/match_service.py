"""
Match runtime: CRUD, start, goal log, end and publish.

Reads return MatchView, the enriched representation (participant names and
handles resolved) shared by the HTTP responses and the live event payloads.
State transitions that can race (start, goal, end) are conditional UPDATEs.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict
from sqlalchemy import func, update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from knockout.errors import MatchNotFound, ParticipantNotFound, RoundNotFound, StateConflict, ValidationError
from knockout.models.match import MATCH_COMPLETED, MATCH_ONGOING, MATCH_SCHEDULED, Match
from knockout.models.match_event import GOAL_EVENT_TYPES, GOAL_HOME, MatchEvent
from knockout.models.participant import Participant
from knockout.models.round import ROUND_COMPLETED, Round
from knockout.services.bracket_service import BracketService, MatchResult, RoundReady
from knockout.services.live_events import GoalScored, MatchEnded, MatchStarted

logger = logging.getLogger(__name__)

STATUS_ALIASES = {"upcoming": MATCH_SCHEDULED, "scheduled": MATCH_SCHEDULED}
MATCH_EDITABLE_FIELDS = (
    "scheduled_at",
    "match_title",
    "venue",
    "participant_home_id",
    "participant_away_id",
    "published",
)


class MatchView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    round_id: int
    participant_home_id: Optional[int] = None
    participant_away_id: Optional[int] = None
    scheduled_at: Optional[datetime] = None
    status: str
    home_goals: int = 0
    away_goals: int = 0
    home_pass_accuracy: Optional[float] = None
    away_pass_accuracy: Optional[float] = None
    home_possession: Optional[float] = None
    away_possession: Optional[float] = None
    match_title: Optional[str] = None
    venue: Optional[str] = None
    published: bool = False
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    admin_id: Optional[str] = None

    home_name: str = "TBD"
    away_name: str = "TBD"
    home_handle: Optional[str] = None
    away_handle: Optional[str] = None
    home_user_id: Optional[str] = None
    away_user_id: Optional[str] = None


class MatchService:
    def __init__(self, session: Session):
        self.session = session
        self.bracket = BracketService(session)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def enrich(self, matches: Iterable[Match]) -> List[MatchView]:
        matches = list(matches)
        ids = {
            pid
            for m in matches
            for pid in (m.participant_home_id, m.participant_away_id)
            if pid is not None
        }
        by_id: Dict[int, Participant] = {}
        if ids:
            by_id = {
                p.id: p for p in self.session.exec(select(Participant).where(Participant.id.in_(ids))).all()
            }

        views = []
        for m in matches:
            view = MatchView.model_validate(m)
            home = by_id.get(m.participant_home_id) if m.participant_home_id is not None else None
            away = by_id.get(m.participant_away_id) if m.participant_away_id is not None else None
            if home is not None:
                view.home_name = home.display_name
                view.home_handle = home.handle
                view.home_user_id = home.user_id
            if away is not None:
                view.away_name = away.display_name
                view.away_handle = away.handle
                view.away_user_id = away.user_id
            views.append(view)
        return views

    def _get(self, match_id: int) -> Match:
        match = self.session.get(Match, match_id)
        if match is None:
            raise MatchNotFound(match_id)
        return match

    def get_match(self, match_id: int) -> MatchView:
        return self.enrich([self._get(match_id)])[0]

    def list_matches(
        self,
        status: Optional[str] = None,
        round_id: Optional[int] = None,
        published: Optional[bool] = None,
    ) -> List[MatchView]:
        query = select(Match)
        if status:
            query = query.where(Match.status == STATUS_ALIASES.get(status, status))
        if round_id is not None:
            query = query.where(Match.round_id == round_id)
        if published is not None:
            query = query.where(Match.published == published)
        query = query.order_by(Match.scheduled_at, Match.created_at, Match.id)
        return self.enrich(self.session.exec(query).all())

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def _require_participant(self, participant_id: Optional[int]) -> None:
        if participant_id is not None and self.session.get(Participant, participant_id) is None:
            raise ParticipantNotFound(participant_id)

    @staticmethod
    def _require_distinct(home_id: Optional[int], away_id: Optional[int]) -> None:
        if home_id is not None and away_id is not None and home_id == away_id:
            raise ValidationError("Home and away participants must be different")

    def create_match(self, data: Dict[str, Any]) -> MatchView:
        round_id = data.get("round_id")
        round_ = self.session.get(Round, round_id) if round_id is not None else None
        if round_ is None:
            raise RoundNotFound(round_id)
        if round_.status == ROUND_COMPLETED:
            raise StateConflict("Cannot create matches in a completed round")

        home_id = data.get("participant_home_id")
        away_id = data.get("participant_away_id")
        self._require_distinct(home_id, away_id)
        self._require_participant(home_id)
        self._require_participant(away_id)

        match = Match(
            round_id=round_.id,
            participant_home_id=home_id,
            participant_away_id=away_id,
            scheduled_at=data.get("scheduled_at"),
            match_title=data.get("match_title"),
            venue=data.get("venue"),
            published=bool(data.get("published", False)),
            status=MATCH_SCHEDULED,
        )
        self.session.add(match)
        self._commit()
        self.session.refresh(match)
        logger.info(f"Created match {match.id} in round {round_.id}")
        return self.get_match(match.id)

    def update_match(self, match_id: int, update_data: Dict[str, Any]) -> MatchView:
        match = self._get(match_id)
        changes = {k: v for k, v in update_data.items() if k in MATCH_EDITABLE_FIELDS}
        if not changes:
            raise ValidationError("No valid fields to update")
        if match.status == MATCH_COMPLETED:
            raise StateConflict("Completed matches cannot be edited")

        home_id = changes.get("participant_home_id", match.participant_home_id)
        away_id = changes.get("participant_away_id", match.participant_away_id)
        self._require_distinct(home_id, away_id)
        if "participant_home_id" in changes:
            self._require_participant(home_id)
        if "participant_away_id" in changes:
            self._require_participant(away_id)

        for field, value in changes.items():
            setattr(match, field, value)
        match.updated_at = datetime.utcnow()
        self.session.add(match)
        self._commit()
        return self.get_match(match_id)

    def delete_match(self, match_id: int) -> None:
        match = self._get(match_id)
        if match.status == MATCH_COMPLETED:
            raise StateConflict("Cannot delete a completed match")
        for event in self.session.exec(select(MatchEvent).where(MatchEvent.match_id == match_id)).all():
            self.session.delete(event)
        self.session.delete(match)
        self._commit()
        logger.info(f"Deleted match {match_id}")

    def publish_match(self, match_id: int, update_data: Dict[str, Any]) -> MatchView:
        match = self._get(match_id)
        for field in ("match_title", "venue", "scheduled_at"):
            if field in update_data:
                setattr(match, field, update_data[field])
        match.published = True
        match.updated_at = datetime.utcnow()
        self.session.add(match)
        self._commit()
        return self.get_match(match_id)

    # ------------------------------------------------------------------
    # Runtime
    # ------------------------------------------------------------------

    def start_match(self, match_id: int, admin_id: Optional[str] = None) -> Tuple[MatchView, Optional[MatchStarted]]:
        """scheduled -> ongoing. Starting an ongoing match is a no-op (no event)."""
        match = self._get(match_id)
        if match.status == MATCH_ONGOING:
            return self.get_match(match_id), None
        if match.status == MATCH_COMPLETED:
            raise StateConflict("Match already completed")

        now = datetime.utcnow()
        started = self._execute(
            update(Match)
            .where(Match.id == match_id, Match.status == MATCH_SCHEDULED)
            .values(
                status=MATCH_ONGOING,
                started_at=func.coalesce(Match.started_at, now),
                admin_id=admin_id,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        self.session.refresh(match)
        if not started:
            # Lost a race with another start/end; report whatever is stored now
            if match.status == MATCH_COMPLETED:
                raise StateConflict("Match already completed")
            return self.get_match(match_id), None

        view = self.get_match(match_id)
        logger.info(f"Started match {match_id} (admin={admin_id})")
        return view, MatchStarted(match_id=match_id, match=view.model_dump(mode="json"))

    def record_goal(self, match_id: int, event_type: str, minute: Optional[int] = None) -> Tuple[MatchView, GoalScored]:
        if event_type not in GOAL_EVENT_TYPES:
            raise ValidationError(f"event_type must be one of: {', '.join(GOAL_EVENT_TYPES)}")
        if minute is not None and minute < 0:
            raise ValidationError("minute cannot be negative")
        match = self._get(match_id)
        if match.status != MATCH_ONGOING:
            raise StateConflict("Match is not ongoing")

        goal_column = Match.home_goals if event_type == GOAL_HOME else Match.away_goals
        try:
            scored = self.session.execute(
                update(Match)
                .where(Match.id == match_id, Match.status == MATCH_ONGOING)
                .values({goal_column: goal_column + 1, Match.updated_at: datetime.utcnow()})
                .execution_options(synchronize_session=False)
            ).rowcount
            if not scored:
                self.session.rollback()
                raise StateConflict("Match is not ongoing")
            event = MatchEvent(match_id=match_id, event_type=event_type, minute=minute)
            self.session.add(event)
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception(f"Recording goal for match {match_id} failed, transaction rolled back")
            raise

        self.session.refresh(match)
        self.session.refresh(event)
        view = self.get_match(match_id)
        return view, GoalScored(
            match_id=match_id,
            home_goals=view.home_goals,
            away_goals=view.away_goals,
            event={
                "id": event.id,
                "event_type": event.event_type,
                "minute": event.minute,
                "created_at": event.created_at.isoformat(),
            },
        )

    def list_events(self, match_id: int) -> List[MatchEvent]:
        self._get(match_id)
        return list(
            self.session.exec(
                select(MatchEvent).where(MatchEvent.match_id == match_id).order_by(MatchEvent.created_at, MatchEvent.id)
            ).all()
        )

    def end_match(
        self, match_id: int, result: MatchResult
    ) -> Tuple[MatchView, Optional[MatchEnded], Optional[RoundReady]]:
        """Apply the final result, then report whether the round is ready to advance.

        The next round is never created here; advancement stays an admin action.
        """
        outcome = self.bracket.apply_match_result(match_id, result)
        view = self.get_match(match_id)
        if not outcome.applied:
            return view, None, None

        ready = self.bracket.try_advance_round(outcome.match.round_id, auto_advance=False)
        return view, MatchEnded(match_id=match_id, match=view.model_dump(mode="json")), ready

    def _execute(self, statement) -> int:
        try:
            rowcount = self.session.execute(statement).rowcount
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception("Match update failed, transaction rolled back")
            raise
        return rowcount

    def _commit(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception("Commit failed, transaction rolled back")
            raise
