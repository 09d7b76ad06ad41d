from dataclasses import dataclass
from typing import List, Optional

from .models import SensitivityMode

UNAVAILABLE_SCORE_TEXT = "n/a"


@dataclass(frozen=True)
class RankedEntry:
    """One row of the sorted candidate list"""
    candidate_id: str
    name: str
    mismatch_percent: Optional[float]
    score_text: str
    degraded: bool


def format_score(mismatch_percent):
    if mismatch_percent is None:
        return UNAVAILABLE_SCORE_TEXT
    return f"{mismatch_percent:.2f}%"


def _sort_key(result):
    # unavailable scores sort after every real score
    if result.available:
        return (0, result.mismatch_percent)
    return (1, 0.0)


def rank_candidates(candidates, mode: SensitivityMode) -> List[RankedEntry]:
    """
    Sort candidates ascending by mismatch under ``mode``.

    ``candidates`` must be in insertion order; the sort is stable, so equal
    scores keep that order.
    """
    ordered = sorted(candidates, key=lambda c: _sort_key(c.result(mode)))
    entries = []
    for c in ordered:
        result = c.result(mode)
        entries.append(RankedEntry(
            candidate_id=c.id,
            name=c.name,
            mismatch_percent=result.mismatch_percent,
            score_text=format_score(result.mismatch_percent),
            degraded=c.degraded,
        ))
    return entries
