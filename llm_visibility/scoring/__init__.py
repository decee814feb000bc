"""
Scoring module: rank-to-score mapping, aggregation and temporal comparison.

Public API:
    - score_for_rank: Map a brand's rank in one response to a score
    - aggregate: Average score of a brand over query results, as a percentage
    - topic_score / overall_score / brand_scores: Roll-ups over a stored run
    - brand_totals: Mention counts per brand over a stored run
    - compare / build_history: Day-over-day and week-over-week deltas
"""

from llm_visibility.scoring.aggregator import (
    aggregate,
    brand_scores,
    brand_totals,
    overall_score,
    topic_score,
    topic_scores,
)
from llm_visibility.scoring.comparator import (
    HistoryPoint,
    TemporalDelta,
    build_history,
    compare,
)
from llm_visibility.scoring.position import round_half_up, score_for_rank

__all__ = [
    "HistoryPoint",
    "TemporalDelta",
    "aggregate",
    "brand_scores",
    "brand_totals",
    "build_history",
    "compare",
    "overall_score",
    "round_half_up",
    "score_for_rank",
    "topic_score",
    "topic_scores",
]
