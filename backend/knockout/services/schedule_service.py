"""
Slot scheduling for bracket matches.

Two modes:
- Fresh seeding (round 1): stateless partitioning of matches into days,
  N games per day, SLOT_MINUTES apart from the daily start time.
- Continuation (advancement): anchor on the latest scheduled match at or after
  a given instant and space the new batch SLOT_MINUTES apart from there.
  Wall-clock arithmetic only; no clipping to the daily window.

The slot arithmetic is pure; ScheduleAssigner only adds the config and
"latest scheduled match" reads.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, List, Optional, Sequence, Union

from sqlmodel import Session, select

from knockout.models.match import Match
from knockout.models.tournament_config import TournamentConfig

logger = logging.getLogger(__name__)

SLOT_MINUTES = 12
DEFAULT_START_TIME = "17:00"
DEFAULT_END_TIME = "19:00"
DEFAULT_GAMES_PER_DAY_ROUND1 = 10
LATER_ROUND_GAMES_PER_DAY_CAP = 10

CONFIG_DAILY_START_TIME = "daily_start_time"
CONFIG_DAILY_END_TIME = "daily_end_time"
CONFIG_GAMES_PER_DAY_ROUND1 = "games_per_day_round1"

_HHMM_RE = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")


@dataclass(frozen=True)
class ScheduleConfig:
    daily_start_time: str = DEFAULT_START_TIME
    daily_end_time: str = DEFAULT_END_TIME  # Informational; slots are never clipped to it
    games_per_day_round1: int = DEFAULT_GAMES_PER_DAY_ROUND1

    @property
    def start_time(self) -> time:
        return parse_hhmm(self.daily_start_time)


def is_valid_hhmm(value: Any) -> bool:
    return isinstance(value, str) and bool(_HHMM_RE.match(value.strip()))


def parse_hhmm(value: str) -> time:
    """Parse "HH:MM" into a time. Raises ValueError on malformed input."""
    match = _HHMM_RE.match((value or "").strip())
    if not match:
        raise ValueError(f"Invalid time of day: {value!r} (expected HH:MM)")
    return time(int(match.group(1)), int(match.group(2)))


def _as_date(value: Union[date, datetime]) -> date:
    # datetime is a date subclass; drop the time component explicitly
    if isinstance(value, datetime):
        return value.date()
    return value


def get_schedule_config(session: Session) -> ScheduleConfig:
    """Read the scheduling window from tournament config, falling back to defaults."""
    rows = session.exec(
        select(TournamentConfig).where(
            TournamentConfig.key.in_(
                [CONFIG_DAILY_START_TIME, CONFIG_DAILY_END_TIME, CONFIG_GAMES_PER_DAY_ROUND1]
            )
        )
    ).all()
    values: Dict[str, Any] = {row.key: row.value_json for row in rows}

    start = values.get(CONFIG_DAILY_START_TIME)
    if start is not None and not is_valid_hhmm(start):
        logger.warning(f"Ignoring malformed {CONFIG_DAILY_START_TIME}={start!r}; using {DEFAULT_START_TIME}")
        start = None

    end = values.get(CONFIG_DAILY_END_TIME)
    if end is not None and not is_valid_hhmm(end):
        logger.warning(f"Ignoring malformed {CONFIG_DAILY_END_TIME}={end!r}; using {DEFAULT_END_TIME}")
        end = None

    games = values.get(CONFIG_GAMES_PER_DAY_ROUND1)
    if games is not None and (isinstance(games, bool) or not isinstance(games, int) or games < 1):
        logger.warning(
            f"Ignoring malformed {CONFIG_GAMES_PER_DAY_ROUND1}={games!r}; using {DEFAULT_GAMES_PER_DAY_ROUND1}"
        )
        games = None

    return ScheduleConfig(
        daily_start_time=(start or DEFAULT_START_TIME).strip(),
        daily_end_time=(end or DEFAULT_END_TIME).strip(),
        games_per_day_round1=games if games is not None else DEFAULT_GAMES_PER_DAY_ROUND1,
    )


def round1_slots(
    config: ScheduleConfig,
    count: int,
    start_date: Union[date, datetime],
    games_per_day: Optional[int] = None,
) -> List[datetime]:
    """Lay out *count* kickoff times, *games_per_day* per calendar day.

    Slot k of a day is daily_start_time + k * SLOT_MINUTES; when a day's quota
    is used up the next match goes to the following day at daily_start_time.
    Assumes the day range is otherwise free (no lookup of existing bookings).
    """
    per_day = games_per_day if games_per_day is not None else config.games_per_day_round1
    if per_day < 1:
        raise ValueError("games_per_day must be >= 1")

    day_start = datetime.combine(_as_date(start_date), config.start_time)
    slots: List[datetime] = []
    day_offset = 0
    slot_in_day = 0
    for _ in range(count):
        if slot_in_day >= per_day:
            day_offset += 1
            slot_in_day = 0
        slots.append(day_start + timedelta(days=day_offset, minutes=slot_in_day * SLOT_MINUTES))
        slot_in_day += 1
    return slots


def continuation_slots(anchor: datetime, count: int) -> List[datetime]:
    """anchor, anchor + SLOT_MINUTES, ... (no day-window awareness)."""
    return [anchor + timedelta(minutes=i * SLOT_MINUTES) for i in range(count)]


class ScheduleAssigner:
    """Assigns scheduled_at to unsaved match stubs."""

    def __init__(self, session: Session):
        self.session = session

    def config(self) -> ScheduleConfig:
        return get_schedule_config(self.session)

    def assign_fresh(
        self,
        matches: Sequence[Match],
        round_number: int,
        tournament_start_date: Union[date, datetime],
    ) -> None:
        """Fresh-seeding mode. Round 1 uses the configured games per day; later
        rounds fit the whole batch into one day, capped at 10."""
        if not matches:
            return
        config = self.config()
        if round_number == 1:
            per_day = config.games_per_day_round1
        else:
            per_day = min(len(matches), LATER_ROUND_GAMES_PER_DAY_CAP)
        for match, slot in zip(matches, round1_slots(config, len(matches), tournament_start_date, per_day)):
            match.scheduled_at = slot

    def next_slot(self, after: datetime) -> datetime:
        """Slot following the latest match scheduled at or after *after*.

        With nothing booked from *after* onwards, the first slot is the daily
        start time on *after*'s calendar day.
        """
        latest = self.session.exec(
            select(Match.scheduled_at)
            .where(Match.scheduled_at.is_not(None), Match.scheduled_at >= after)
            .order_by(Match.scheduled_at.desc())
            .limit(1)
        ).first()
        if latest is None:
            return datetime.combine(after.date(), self.config().start_time)
        return latest + timedelta(minutes=SLOT_MINUTES)

    def assign_continuation(self, matches: Sequence[Match], after: datetime) -> None:
        if not matches:
            return
        anchor = self.next_slot(after)
        for match, slot in zip(matches, continuation_slots(anchor, len(matches))):
            match.scheduled_at = slot
