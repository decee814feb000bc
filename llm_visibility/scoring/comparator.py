"""
Temporal comparison of visibility scores.

Given the score history of a brand (one point per analysis run), computes
how the current score moved against yesterday and against last week, using
the nearest snapshot inside each reference window:

- yesterday: the most recent point aged between 1 and 2 days (2 excluded)
- last week: the most recent point aged between 7 and 8 days (8 excluded)

Deltas are plain differences in percentage points: a move from 60.0 to 80.0
is +20.0. A missing current or reference point yields None ("no data yet").
Non-finite scores and deltas are reported as 0.0.
"""

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from llm_visibility.scoring.aggregator import overall_score, topic_score
from llm_visibility.scoring.position import round_half_up

if TYPE_CHECKING:
    from llm_visibility.storage.store import AnalysisRecord

DAILY_WINDOW = (timedelta(days=1), timedelta(days=2))
WEEKLY_WINDOW = (timedelta(days=7), timedelta(days=8))


@dataclass(frozen=True)
class HistoryPoint:
    """One aggregate score at one point in time."""

    timestamp: datetime
    score: float

    def __post_init__(self):
        if self.timestamp.tzinfo is None:
            raise ValueError("HistoryPoint timestamp must be timezone-aware")


@dataclass(frozen=True)
class TemporalDelta:
    """
    Result of comparing the current score with its reference points.

    Attributes:
        current_score: Latest score at or before ``now``, None if no history
        yesterday_score: Score of the daily reference point, if any
        week_ago_score: Score of the weekly reference point, if any
        daily_delta: current - yesterday in percentage points, or None
        weekly_delta: current - week ago in percentage points, or None
    """

    current_score: float | None
    yesterday_score: float | None
    week_ago_score: float | None
    daily_delta: float | None
    weekly_delta: float | None

    def to_dict(self) -> dict[str, float | None]:
        return {
            "current": self.current_score,
            "yesterday": self.yesterday_score,
            "weekAgo": self.week_ago_score,
            "daily": self.daily_delta,
            "weekly": self.weekly_delta,
        }


def _reference_point(
    points: Sequence[HistoryPoint],
    now: datetime,
    window: tuple[timedelta, timedelta],
) -> HistoryPoint | None:
    lower, upper = window
    candidates = [p for p in points if lower <= now - p.timestamp < upper]
    if not candidates:
        return None
    return max(candidates, key=lambda p: p.timestamp)


def _finite(score: float | None) -> float | None:
    if score is None or math.isfinite(score):
        return score
    return 0.0


def _delta(current: float | None, reference: float | None) -> float | None:
    if current is None or reference is None:
        return None

    difference = current - reference
    if not math.isfinite(difference):
        return 0.0
    return round_half_up(difference, 1)


def compare(history: Iterable[HistoryPoint], now: datetime) -> TemporalDelta:
    """
    Compare the current score with yesterday's and last week's.

    The history does not need to be sorted. Points later than ``now`` are
    ignored.

    Args:
        history: Score history of one brand (overall or one topic)
        now: Reference time, timezone-aware

    Returns:
        TemporalDelta with None for any comparison that lacks data

    Example:
        >>> from datetime import UTC, datetime, timedelta
        >>> now = datetime(2025, 11, 2, 9, 0, tzinfo=UTC)
        >>> delta = compare(
        ...     [HistoryPoint(now, 80.0), HistoryPoint(now - timedelta(days=1), 60.0)],
        ...     now,
        ... )
        >>> delta.daily_delta
        20.0
    """
    if now.tzinfo is None:
        raise ValueError("now must be timezone-aware")

    points = sorted(
        (p for p in history if p.timestamp <= now), key=lambda p: p.timestamp
    )
    if not points:
        return TemporalDelta(None, None, None, None, None)

    current = points[-1].score
    yesterday = _reference_point(points, now, DAILY_WINDOW)
    week_ago = _reference_point(points, now, WEEKLY_WINDOW)

    yesterday_score = yesterday.score if yesterday else None
    week_ago_score = week_ago.score if week_ago else None

    return TemporalDelta(
        current_score=_finite(current),
        yesterday_score=_finite(yesterday_score),
        week_ago_score=_finite(week_ago_score),
        daily_delta=_delta(current, yesterday_score),
        weekly_delta=_delta(current, week_ago_score),
    )


def build_history(
    records: Iterable["AnalysisRecord"], brand: str, topic_id: str | None = None
) -> list[HistoryPoint]:
    """
    Turn stored analysis runs into a chronological score history.

    Args:
        records: Analysis records in any order
        brand: Brand to score
        topic_id: Topic slug to score; None for the project-level score

    Returns:
        HistoryPoints sorted oldest first
    """
    points = []
    for record in records:
        if topic_id is None:
            score = overall_score(record.results, brand)
        else:
            score = topic_score(record.results, topic_id, brand)
        points.append(HistoryPoint(timestamp=record.timestamp, score=score))

    points.sort(key=lambda p: p.timestamp)
    return points
