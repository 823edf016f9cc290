from __future__ import annotations

import math
from typing import Any, Dict, List, Sequence

from shortlister.models import CandidateAnalysis

# (band, lower bound) from best to worst
SCORE_BANDS = [("strong", 85), ("good", 70), ("fair", 50), ("weak", 0)]


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def _mean(values: Sequence[float]) -> int:
    if not values:
        return 0
    return _round_half_up(sum(values) / len(values))


def score_band(score: float) -> str:
    for band, floor in SCORE_BANDS:
        if score >= floor:
            return band
    return SCORE_BANDS[-1][0]


def rank(results: Sequence[CandidateAnalysis]) -> List[CandidateAnalysis]:
    """Best match first. sorted() is stable, so ties keep submission order."""
    return sorted(results, key=lambda r: r.match_score, reverse=True)


def average_score(results: Sequence[CandidateAnalysis]) -> int:
    # error records count with their zero score
    return _mean([r.match_score for r in results])


def average_experience(results: Sequence[CandidateAnalysis]) -> int:
    return _mean([r.experience_years for r in results])


def score_distribution(results: Sequence[CandidateAnalysis]) -> Dict[str, int]:
    counts = {band: 0 for band, _ in SCORE_BANDS}
    for r in results:
        counts[score_band(r.match_score)] += 1
    return counts


def summarize(results: Sequence[CandidateAnalysis]) -> Dict[str, Any]:
    """
    Headline numbers for the dashboard:
    {
      "average_score": int, "average_experience": int,
      "top_candidate": CandidateAnalysis | None,
      "distribution": {"strong": n, "good": n, "fair": n, "weak": n},
      "chart": [{"name": ..., "matchScore": ...}, ...]   # ranked order
      "total": n, "success": n, "failed": n
    }
    """
    ranked = rank(results)
    success = sum(1 for r in results if r.ok)

    return {
        "average_score": average_score(results),
        "average_experience": average_experience(results),
        "top_candidate": ranked[0] if ranked else None,
        "distribution": score_distribution(results),
        "chart": [{"name": r.name, "matchScore": r.match_score} for r in ranked],
        "total": len(results),
        "success": success,
        "failed": len(results) - success,
    }
