"""
Suggested pairings for a round (admin preview; never persisted).

Round 1 pairs a seeded shuffle of the eligible pool so that reloading the
preview returns the same list. Later rounds pair by performance stats.
Participants already placed in one of the round's matches are left out, so
the preview stays consistent while admins create real matches one by one.
"""

import logging
import secrets
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Set, TypeVar

from sqlalchemy import update
from sqlmodel import Session, select

from knockout.errors import RoundNotFound
from knockout.models.match import Match
from knockout.models.participant import Participant
from knockout.models.round import Round
from knockout.services.ranking_service import stats_sort_key

logger = logging.getLogger(__name__)

SEED_MAX = 0x7FFFFFFF  # Seeds are positive 31-bit integers
_MASK32 = 0xFFFFFFFF

T = TypeVar("T")


def _imul(a: int, b: int) -> int:
    return (a * b) & _MASK32


def mulberry32(seed: int) -> Callable[[], float]:
    """Counter-based multiply-xor-shift generator returning floats in [0, 1)."""
    state = seed & _MASK32

    def next_float() -> float:
        nonlocal state
        state = (state + 0x6D2B79F5) & _MASK32
        t = state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & _MASK32
        return ((t ^ (t >> 14)) & _MASK32) / 4294967296

    return next_float


def seeded_shuffle(items: Sequence[T], seed: int) -> List[T]:
    """Fisher-Yates shuffle driven by mulberry32(seed). Same seed + same input order -> same output."""
    rng = mulberry32(seed)
    out = list(items)
    for i in range(len(out) - 1, 0, -1):
        j = int(rng() * (i + 1))
        out[i], out[j] = out[j], out[i]
    return out


def pair_sequentially(items: Sequence[T]) -> List[tuple]:
    """(0, 1), (2, 3), ...; a trailing odd element is dropped."""
    return [(items[i], items[i + 1]) for i in range(0, len(items) - 1, 2)]


@dataclass
class PairingSuggestion:
    home_participant_id: int
    away_participant_id: int
    home_name: str
    away_name: str
    home_handle: Optional[str] = None
    away_handle: Optional[str] = None


@dataclass
class SuggestionResult:
    round_id: int
    round_number: int
    suggestions: List[PairingSuggestion] = field(default_factory=list)


class SuggestionGenerator:
    def __init__(self, session: Session):
        self.session = session

    def _get_round(self, round_id: int) -> Round:
        round_ = self.session.get(Round, round_id)
        if round_ is None:
            raise RoundNotFound(round_id)
        return round_

    def ensure_seed(self, round_: Round) -> int:
        """Return the round's frozen seed, writing one first if absent.

        The write is a conditional UPDATE (only where the seed is still NULL),
        so concurrent first readers may each propose a value but exactly one
        lands; everybody then reads back the stored one.
        """
        if round_.suggestion_seed is not None:
            return round_.suggestion_seed

        candidate = secrets.randbelow(SEED_MAX - 1) + 1
        self.session.execute(
            update(Round)
            .where(Round.id == round_.id, Round.suggestion_seed.is_(None))
            .values(suggestion_seed=candidate)
        )
        self.session.commit()
        self.session.refresh(round_)
        if round_.suggestion_seed == candidate:
            logger.info(f"Generated suggestion seed for round {round_.id}")
        return round_.suggestion_seed

    def _assigned_participant_ids(self, round_id: int) -> Set[int]:
        rows = self.session.exec(
            select(Match.participant_home_id, Match.participant_away_id).where(Match.round_id == round_id)
        ).all()
        assigned: Set[int] = set()
        for home_id, away_id in rows:
            if home_id is not None:
                assigned.add(home_id)
            if away_id is not None:
                assigned.add(away_id)
        return assigned

    def eligible_pool(self, round_id: int) -> List[Participant]:
        """Non-eliminated participants not yet placed in this round, in id order."""
        assigned = self._assigned_participant_ids(round_id)
        participants = self.session.exec(
            select(Participant)
            .where(Participant.eliminated == False)  # noqa: E712
            .order_by(Participant.id)
        ).all()
        return [p for p in participants if p.id not in assigned]

    def suggest(self, round_id: int) -> SuggestionResult:
        round_ = self._get_round(round_id)
        seed = self.ensure_seed(round_)
        round_number = round_.round_number if round_.round_number is not None else 1

        result = SuggestionResult(round_id=round_.id, round_number=round_number)
        eligible = self.eligible_pool(round_.id)
        if len(eligible) < 2:
            return result

        if round_number == 1:
            ordered = seeded_shuffle(eligible, seed)
        else:
            ordered = sorted(eligible, key=stats_sort_key)

        for home, away in pair_sequentially(ordered):
            result.suggestions.append(
                PairingSuggestion(
                    home_participant_id=home.id,
                    away_participant_id=away.id,
                    home_name=home.display_name,
                    away_name=away.display_name,
                    home_handle=home.handle,
                    away_handle=away.handle,
                )
            )
        return result
