"""Ranking of participants still in the tournament."""

from typing import List

from sqlalchemy import func
from sqlmodel import Session, select

from knockout.models.participant import Participant

DEFAULT_RANKING_LIMIT = 128


def stats_sort_key(participant: Participant):
    """Sort key for "best first": pass accuracy desc, possession desc. Missing stats count as 0."""
    return (-(participant.avg_pass_accuracy or 0.0), -(participant.avg_possession or 0.0))


class RankingService:
    def __init__(self, session: Session):
        self.session = session

    def ranked_eligible(self, limit: int = DEFAULT_RANKING_LIMIT) -> List[Participant]:
        """Non-eliminated participants, best stats first, truncated to *limit*.

        Invalid limits (non-positive, non-integer) fall back to the default.
        Ties on both stats keep registration order (id).
        """
        if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
            limit = DEFAULT_RANKING_LIMIT

        return list(
            self.session.exec(
                select(Participant)
                .where(Participant.eliminated == False)  # noqa: E712
                .order_by(
                    func.coalesce(Participant.avg_pass_accuracy, 0).desc(),
                    func.coalesce(Participant.avg_possession, 0).desc(),
                    Participant.id,
                )
                .limit(limit)
            ).all()
        )
