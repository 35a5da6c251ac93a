"""
Bracket progression: round lifecycle, round-1 seeding, result application and
round advancement.

Every write path here is a bounded read-then-write sequence committed once.
On a storage error the session is rolled back, so a round is never left
half-created without its matches.

Known gap: advance_round checks "all matches completed" and then writes the
next round. A match inserted into the source round in between is not detected.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple, Union

from sqlalchemy import func, update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from knockout.errors import (
    InsufficientParticipants,
    MatchNotFound,
    RoundEmpty,
    RoundIncomplete,
    RoundNotFound,
    StateConflict,
    ValidationError,
)
from knockout.models.match import MATCH_COMPLETED, MATCH_SCHEDULED, Match
from knockout.models.participant import Participant
from knockout.models.round import ROUND_COMPLETED, ROUND_STATUSES, ROUND_UPCOMING, Round
from knockout.services.ranking_service import RankingService
from knockout.services.schedule_service import ScheduleAssigner
from knockout.services.suggestion_service import pair_sequentially

logger = logging.getLogger(__name__)

ROUND_NAMES = {
    2: "Round of 64",
    3: "Round of 32",
    4: "Round of 16",
    5: "Quarter-finals",
    6: "Semi-finals",
    7: "Final",
}

ROUND_UPDATABLE_FIELDS = ("name", "round_number", "total_matches", "start_date", "end_date", "status", "released")


def round_name_for(round_number: int) -> str:
    return ROUND_NAMES.get(round_number, f"Round {round_number}")


@dataclass
class MatchResult:
    """Final score and stats reported when a match ends."""

    home_goals: int = 0
    away_goals: int = 0
    home_pass_accuracy: Optional[float] = None
    away_pass_accuracy: Optional[float] = None
    home_possession: Optional[float] = None
    away_possession: Optional[float] = None


@dataclass
class ResultOutcome:
    match: Match
    applied: bool  # False when the match was already completed (idempotent replay)


@dataclass
class RoundCreated:
    round_id: int
    round_number: int
    match_count: int


@dataclass
class RoundReady:
    """All matches of the round are completed; advancement left to the admin."""

    round_id: int


def match_winner(match: Match) -> Optional[int]:
    """Participant id with strictly more goals; None for draws or unfinished matches."""
    if match.status != MATCH_COMPLETED:
        return None
    home = match.home_goals or 0
    away = match.away_goals or 0
    if home > away:
        return match.participant_home_id
    if away > home:
        return match.participant_away_id
    return None


def side_stats(match: Match, participant_id: int) -> Tuple[float, float]:
    """(pass_accuracy, possession) recorded for one side of a match, 0 when missing."""
    if match.participant_home_id == participant_id:
        return match.home_pass_accuracy or 0.0, match.home_possession or 0.0
    return match.away_pass_accuracy or 0.0, match.away_possession or 0.0


def rank_round_winners(matches: List[Match]) -> List[int]:
    """Winners of a round, best first.

    Each winner is ranked by the best pass accuracy seen across their matches
    in the round, with possession from that same match as the tie-break.
    Drawn matches contribute nobody.
    """
    best: Dict[int, Tuple[float, float]] = {}
    for match in matches:
        winner_id = match_winner(match)
        if winner_id is None:
            continue
        stats = side_stats(match, winner_id)
        if winner_id not in best or stats[0] > best[winner_id][0]:
            best[winner_id] = stats
    return sorted(best, key=lambda pid: (-best[pid][0], -best[pid][1]))


class BracketService:
    def __init__(self, session: Session):
        self.session = session
        self.ranking = RankingService(session)
        self.scheduler = ScheduleAssigner(session)

    # ------------------------------------------------------------------
    # Rounds
    # ------------------------------------------------------------------

    def get_round(self, round_id: int) -> Round:
        round_ = self.session.get(Round, round_id)
        if round_ is None:
            raise RoundNotFound(round_id)
        return round_

    def list_rounds(self) -> List[Tuple[Round, int]]:
        """All rounds with their match counts, ordered by number then creation."""
        rows = self.session.exec(
            select(Round, func.count(Match.id))
            .outerjoin(Match, Match.round_id == Round.id)
            .group_by(Round.id)
            .order_by(Round.round_number, Round.created_at, Round.id)
        ).all()
        return [(round_, int(count)) for round_, count in rows]

    def count_matches(self, round_id: int) -> int:
        return int(self.session.exec(select(func.count(Match.id)).where(Match.round_id == round_id)).one())

    def _new_round(
        self,
        round_number: int,
        name: str,
        total_matches: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Round:
        if round_number is None or round_number < 1:
            raise ValidationError("round_number must be >= 1")
        if not name or not name.strip():
            raise ValidationError("name is required")
        round_ = Round(
            round_number=round_number,
            name=name.strip(),
            total_matches=total_matches or 0,
            status=ROUND_UPCOMING,
            released=False,
            start_date=start_date,
            end_date=end_date,
        )
        self.session.add(round_)
        return round_

    def create_round(
        self,
        round_number: int,
        name: str,
        total_matches: int = 0,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Round:
        """Insert an upcoming, unreleased round. Duplicate numbers are tolerated."""
        round_ = self._new_round(round_number, name, total_matches, start_date, end_date)
        self._commit()
        self.session.refresh(round_)
        logger.info(f"Created round {round_.id} (number={round_.round_number}, name={round_.name!r})")
        return round_

    def previous_round(self, round_number: int, exclude_id: Optional[int] = None) -> Optional[Round]:
        """Most recently created round numbered round_number - 1, other than *exclude_id*."""
        query = select(Round).where(Round.round_number == round_number - 1)
        if exclude_id is not None:
            query = query.where(Round.id != exclude_id)
        return self.session.exec(
            query.order_by(Round.created_at.desc(), Round.id.desc()).limit(1)
        ).first()

    def can_release(self, round_number: int, round_id: Optional[int] = None) -> bool:
        """A round may be released when the latest round numbered one lower is completed (or absent)."""
        if round_number - 1 < 1:
            return True
        prev = self.previous_round(round_number, exclude_id=round_id)
        return prev is None or prev.status == ROUND_COMPLETED

    def update_round(self, round_id: int, update_data: Dict[str, Any]) -> Round:
        """Apply admin edits to a round, enforcing the release gate.

        The gate is checked against the round as it will be after the edit, so
        renumbering a released round counts as releasing it under the new number.
        """
        round_ = self.get_round(round_id)
        changes = {k: v for k, v in update_data.items() if k in ROUND_UPDATABLE_FIELDS}
        if not changes:
            raise ValidationError("No valid fields to update")

        if "name" in changes:
            name = (changes["name"] or "").strip()
            if not name:
                raise ValidationError("name cannot be empty")
            changes["name"] = name
        if "round_number" in changes and (changes["round_number"] is None or changes["round_number"] < 1):
            raise ValidationError("round_number must be >= 1")
        if "total_matches" in changes and (changes["total_matches"] is None or changes["total_matches"] < 0):
            raise ValidationError("total_matches must be >= 0")
        if "status" in changes and changes["status"] not in ROUND_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(ROUND_STATUSES)}")
        if "released" in changes and not isinstance(changes["released"], bool):
            raise ValidationError("released must be true or false")

        target_number = changes.get("round_number", round_.round_number)
        target_released = changes.get("released", round_.released)
        gate_applies = not round_.released or target_number != round_.round_number
        if target_released and gate_applies and not self.can_release(target_number, round_.id):
            raise StateConflict("Previous round must be completed before releasing this round")

        for field, value in changes.items():
            setattr(round_, field, value)
        round_.updated_at = datetime.utcnow()
        self.session.add(round_)
        self._commit()
        self.session.refresh(round_)
        if changes.get("released"):
            logger.info(f"Released round {round_.id} (number={round_.round_number})")
        return round_

    def delete_round(self, round_id: int) -> None:
        round_ = self.get_round(round_id)
        if self.count_matches(round_id) > 0:
            raise StateConflict("Cannot delete a round that already has matches. Delete matches first.")
        self.session.delete(round_)
        self._commit()
        logger.info(f"Deleted round {round_id}")

    # ------------------------------------------------------------------
    # Seeding and advancement
    # ------------------------------------------------------------------

    def seed_round1(self, tournament_start_date: Union[date, datetime]) -> RoundCreated:
        """Create round 1 from the ranking: 1v2, 3v4, ...; an odd last participant sits out."""
        participants = self.ranking.ranked_eligible()
        if len(participants) < 2:
            raise InsufficientParticipants(len(participants))

        pairs = pair_sequentially(participants)
        start_day = tournament_start_date.date() if isinstance(tournament_start_date, datetime) else tournament_start_date
        try:
            round_ = self._new_round(1, "Round 1", len(pairs), start_day, None)
            self.session.flush()
            matches = [
                Match(
                    round_id=round_.id,
                    participant_home_id=home.id,
                    participant_away_id=away.id,
                    status=MATCH_SCHEDULED,
                )
                for home, away in pairs
            ]
            self.scheduler.assign_fresh(matches, 1, start_day)
            self.session.add_all(matches)
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception("Seeding round 1 failed, transaction rolled back")
            raise

        logger.info(f"Seeded round 1 (round {round_.id}) with {len(matches)} matches")
        return RoundCreated(round_id=round_.id, round_number=1, match_count=len(matches))

    def get_matches_by_round(self, round_id: int) -> List[Match]:
        self.get_round(round_id)
        return list(
            self.session.exec(
                select(Match)
                .where(Match.round_id == round_id)
                .order_by(Match.scheduled_at, Match.created_at, Match.id)
            ).all()
        )

    def latest_scheduled_at(self) -> Optional[datetime]:
        """Latest kickoff across every match in the system (not just one round)."""
        return self.session.exec(
            select(Match.scheduled_at)
            .where(Match.scheduled_at.is_not(None))
            .order_by(Match.scheduled_at.desc())
            .limit(1)
        ).first()

    def advance_round(self, round_id: int) -> RoundCreated:
        """Pair the winners of a fully completed round into the next round."""
        round_ = self.get_round(round_id)
        matches = self.get_matches_by_round(round_id)
        if not matches:
            raise RoundEmpty(round_id)
        if any(m.status != MATCH_COMPLETED for m in matches):
            raise RoundIncomplete(round_id)

        ranked = rank_round_winners(matches)
        pairs = pair_sequentially(ranked)
        next_number = (round_.round_number or 1) + 1
        after = self.latest_scheduled_at() or datetime.utcnow()

        try:
            next_round = self._new_round(next_number, round_name_for(next_number), len(pairs))
            self.session.flush()
            new_matches = [
                Match(
                    round_id=next_round.id,
                    participant_home_id=home_id,
                    participant_away_id=away_id,
                    status=MATCH_SCHEDULED,
                )
                for home_id, away_id in pairs
            ]
            self.scheduler.assign_continuation(new_matches, after)
            self.session.add_all(new_matches)
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception(f"Advancing round {round_id} failed, transaction rolled back")
            raise

        logger.info(
            f"Advanced round {round_id} -> round {next_round.id} "
            f"(number={next_number}, winners={len(ranked)}, matches={len(new_matches)})"
        )
        return RoundCreated(round_id=next_round.id, round_number=next_number, match_count=len(new_matches))

    def try_advance_round(
        self, round_id: int, auto_advance: bool = True
    ) -> Union[None, RoundReady, RoundCreated]:
        """None while the round is empty or undecided; otherwise advance or just acknowledge."""
        matches = self.get_matches_by_round(round_id)
        if not matches or any(m.status != MATCH_COMPLETED for m in matches):
            return None
        if not auto_advance:
            return RoundReady(round_id=round_id)
        return self.advance_round(round_id)

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def apply_match_result(self, match_id: int, result: MatchResult) -> ResultOutcome:
        """Complete a match and apply its effects on both participants.

        The status flip is a conditional UPDATE guarded by status != completed,
        so a replayed result (client retry) touches nothing and just returns
        the stored match.
        """
        match = self.session.get(Match, match_id)
        if match is None:
            raise MatchNotFound(match_id)
        if result.home_goals < 0 or result.away_goals < 0:
            raise ValidationError("goals cannot be negative")

        try:
            flipped = self.session.execute(
                update(Match)
                .where(Match.id == match_id, Match.status != MATCH_COMPLETED)
                .values(
                    status=MATCH_COMPLETED,
                    ended_at=datetime.utcnow(),
                    home_goals=result.home_goals,
                    away_goals=result.away_goals,
                    home_pass_accuracy=result.home_pass_accuracy,
                    away_pass_accuracy=result.away_pass_accuracy,
                    home_possession=result.home_possession,
                    away_possession=result.away_possession,
                    updated_at=datetime.utcnow(),
                )
            ).rowcount
            if not flipped:
                self.session.rollback()
                self.session.refresh(match)
                logger.info(f"Match {match_id} already completed; result ignored")
                return ResultOutcome(match=match, applied=False)

            sides = (
                (match.participant_home_id, result.home_pass_accuracy, result.home_possession,
                 result.home_goals < result.away_goals),
                (match.participant_away_id, result.away_pass_accuracy, result.away_possession,
                 result.away_goals < result.home_goals),
            )
            for participant_id, accuracy, possession, lost in sides:
                if participant_id is None:
                    continue
                participant = self.session.get(Participant, participant_id)
                if participant is None:
                    continue
                if accuracy is not None:
                    participant.avg_pass_accuracy = accuracy
                if possession is not None:
                    participant.avg_possession = possession
                if lost:
                    participant.eliminated = True
                self.session.add(participant)

            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception(f"Applying result to match {match_id} failed, transaction rolled back")
            raise

        self.session.refresh(match)
        logger.info(
            f"Completed match {match_id}: {result.home_goals}-{result.away_goals} (round {match.round_id})"
        )
        return ResultOutcome(match=match, applied=True)

    def _commit(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception("Commit failed, transaction rolled back")
            raise
