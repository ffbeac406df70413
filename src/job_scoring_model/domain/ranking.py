"""Rank assignment from a final score."""

from __future__ import annotations

from collections.abc import Iterable

from ..exceptions import RankNotFoundError, ScoreOutOfDomainError
from .scoring_config import SCORE_DOMAIN_MAX, SCORE_DOMAIN_MIN, Rank


def assign_rank(final_score: float, ranks: Iterable[Rank]) -> Rank:
    """Return the highest rank whose ``min_score`` the score reaches.

    With the default scheme this is: >= 4.0 -> A, >= 2.5 -> B, else C.

    Raises:
        ScoreOutOfDomainError: If the score is outside [1.0, 5.0].
        RankNotFoundError: If no rank matches (a gap in the configured ranks).
    """
    if not SCORE_DOMAIN_MIN <= final_score <= SCORE_DOMAIN_MAX:
        raise ScoreOutOfDomainError("final score", final_score)
    descending = sorted(ranks, key=lambda r: r.min_score, reverse=True)
    for rank in descending:
        if rank.min_score <= final_score:
            return rank
    raise RankNotFoundError(final_score, tuple(r.name for r in descending))
