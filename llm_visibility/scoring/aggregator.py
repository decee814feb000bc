"""
Query and topic aggregation of visibility scores.

Operates directly on the stored shape of an analysis run::

    {
        "running-shoes": {
            "queries": [
                {
                    "query": "best running shoes",
                    "response": "...",
                    "brandMentions": [
                        {"name": "Nike", "mentioned": True, "count": 2,
                         "positions": [0, 120], "brandPosition": 1},
                        ...
                    ],
                },
            ]
        },
    }

Every function here is pure: the same input always yields the same output and
nothing is cached between calls. Missing data counts as "not mentioned" and
never raises.

Scores are percentages in [0.0, 100.0] rounded half-up to one decimal.
"""

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from llm_visibility.scoring.position import (
    MENTION_FLOOR_SCORE,
    round_half_up,
    score_for_rank,
)


def _find_mention(
    brand_mentions: Iterable[Mapping[str, Any]] | None, brand: str
) -> Mapping[str, Any] | None:
    if not brand_mentions:
        return None

    wanted = brand.casefold()
    for mention in brand_mentions:
        if str(mention.get("name", "")).casefold() == wanted:
            return mention
    return None


def query_score(query_result: Mapping[str, Any], brand: str) -> float:
    """
    Score one stored query entry for one brand, in [0.0, 1.0].

    A mention flagged as mentioned but without a usable brandPosition still
    gets the floor score. The extractor always ranks what it finds, so only
    results assembled elsewhere (hand-edited or imported JSON) hit this.
    """
    mention = _find_mention(query_result.get("brandMentions"), brand)
    if mention is None or not mention.get("mentioned"):
        return 0.0

    rank = mention.get("brandPosition")
    if isinstance(rank, int) and rank >= 1:
        return score_for_rank(rank)
    return MENTION_FLOOR_SCORE


def aggregate(query_results: Sequence[Mapping[str, Any]], target_brand: str) -> float:
    """
    Average visibility of a brand over a list of query results, as a percentage.

    Every query counts toward the denominator, including queries where the
    brand was never mentioned.

    Args:
        query_results: Stored query entries with "brandMentions"
        target_brand: Brand to score (matched case-insensitively)

    Returns:
        Percentage rounded to one decimal; 0.0 for an empty list

    Example:
        >>> aggregate(
        ...     [{"brandMentions": [{"name": "Adidas", "mentioned": True,
        ...                          "brandPosition": 2}]}],
        ...     "Adidas",
        ... )
        75.0
    """
    if not query_results:
        return 0.0

    total = sum(query_score(entry, target_brand) for entry in query_results)
    return round_half_up(total / len(query_results) * 100, 1)


def topic_score(
    results: Mapping[str, Mapping[str, Any]], topic_id: str, brand: str
) -> float:
    """Aggregate score of one topic; 0.0 if the topic is absent."""
    topic = results.get(topic_id) or {}
    return aggregate(topic.get("queries") or [], brand)


def topic_scores(
    results: Mapping[str, Mapping[str, Any]], brand: str
) -> dict[str, float]:
    """Score of every topic in a run, in stored topic order."""
    return {
        topic_id: aggregate((topic or {}).get("queries") or [], brand)
        for topic_id, topic in results.items()
    }


def overall_score(results: Mapping[str, Mapping[str, Any]], brand: str) -> float:
    """
    Project-level score: the mean of the topic scores.

    Topics whose query list is empty (no query succeeded, or the topic has no
    queries yet) carry no data and are left out. Topics where the brand
    scored 0.0 are included.

    Returns:
        Percentage rounded to one decimal; 0.0 when no topic has data
    """
    scores = [
        aggregate(queries, brand)
        for topic in results.values()
        if (queries := (topic or {}).get("queries"))
    ]
    if not scores:
        return 0.0

    return round_half_up(sum(scores) / len(scores), 1)


def brand_scores(
    results: Mapping[str, Mapping[str, Any]], brands: Sequence[str]
) -> dict[str, float]:
    """Overall score for each brand, keyed in the given brand order."""
    return {brand: overall_score(results, brand) for brand in brands}


def brand_totals(results: Mapping[str, Mapping[str, Any]]) -> dict[str, int]:
    """
    Total mention count per brand across every query of a run.

    Only mentions flagged as mentioned contribute; a mentioned entry without
    a count contributes 1.

    Example:
        >>> brand_totals({"t": {"queries": [
        ...     {"brandMentions": [{"name": "Nike", "mentioned": True, "count": 2}]},
        ...     {"brandMentions": [{"name": "Nike", "mentioned": True, "count": 1}]},
        ... ]}})
        {'Nike': 3}
    """
    totals: dict[str, int] = {}
    for topic in results.values():
        for entry in (topic or {}).get("queries") or []:
            for mention in entry.get("brandMentions") or []:
                if not mention.get("mentioned"):
                    continue
                name = mention.get("name")
                if not name:
                    continue
                totals[name] = totals.get(name, 0) + (mention.get("count") or 1)
    return totals
