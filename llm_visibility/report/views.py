"""
View models for dashboards, monitoring charts and detail tables.

Each builder turns stored records into plain dicts ready for the terminal
tables, the JSON output mode and the HTML report. All score arithmetic is
delegated to llm_visibility.scoring; nothing here computes scores itself.

Comparisons are anchored on the newest stored run unless an explicit ``now``
is given, so a project analyzed three days ago still compares that run with
the runs one and seven days before it.
"""

from collections.abc import Sequence
from datetime import datetime
from typing import Any

from llm_visibility.scoring.aggregator import (
    brand_scores,
    overall_score,
    query_score,
    topic_score,
)
from llm_visibility.scoring.comparator import build_history, compare
from llm_visibility.storage.store import AnalysisRecord, Project, Topic
from llm_visibility.utils.time import format_timestamp


def _chronological(records: Sequence[AnalysisRecord]) -> list[AnalysisRecord]:
    # store order is newest first; reversing keeps same-second runs in insert order
    return sorted(reversed(records), key=lambda r: r.timestamp)


def _anchor(records: Sequence[AnalysisRecord], now: datetime | None) -> datetime | None:
    if now is not None:
        return now
    if not records:
        return None
    return max(r.timestamp for r in records)


def build_dashboard(
    project: Project,
    records: Sequence[AnalysisRecord],
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    Overall scores of every brand in the latest run, plus the primary brand's
    daily and weekly deltas.

    Args:
        project: Project being displayed
        records: Its analysis history, any order
        now: Comparison anchor; defaults to the newest record's timestamp
    """
    ordered = _chronological(records)
    latest = ordered[-1] if ordered else None
    anchor = _anchor(ordered, now)

    scores = brand_scores(latest.results, project.brands) if latest else {}
    brand_rows = [
        {
            "brand": brand,
            "is_primary": brand == project.brand,
            "score": scores.get(brand, 0.0),
            "mentions": (latest.brand_totals.get(brand, 0) if latest else 0),
        }
        for brand in project.brands
    ]

    comparison = None
    if anchor is not None:
        comparison = compare(build_history(ordered, project.brand), anchor).to_dict()

    return {
        "project": project.to_dict(),
        "latest": (
            {
                "analysis_id": latest.id,
                "timestamp": format_timestamp(latest.timestamp),
                "status": latest.status,
            }
            if latest
            else None
        ),
        "runs": len(ordered),
        "brands": brand_rows,
        "comparison": comparison,
    }


def build_topic_cards(
    project: Project,
    topics: Sequence[Topic],
    records: Sequence[AnalysisRecord],
    now: datetime | None = None,
) -> list[dict[str, Any]]:
    """Per-topic score of the primary brand with its daily and weekly deltas."""
    ordered = _chronological(records)
    latest = ordered[-1] if ordered else None
    anchor = _anchor(ordered, now)

    cards = []
    for topic in topics:
        card: dict[str, Any] = {
            "topic": topic.name,
            "slug": topic.slug,
            "query_count": len(topic.queries),
            "score": (
                topic_score(latest.results, topic.slug, project.brand)
                if latest
                else 0.0
            ),
            "comparison": None,
        }
        if anchor is not None:
            history = build_history(ordered, project.brand, topic_id=topic.slug)
            card["comparison"] = compare(history, anchor).to_dict()
        cards.append(card)
    return cards


def build_monitoring_series(
    project: Project, records: Sequence[AnalysisRecord]
) -> dict[str, Any]:
    """
    Full time series for charts: per brand, overall and per topic.

    Returns:
        {
            "timestamps": ["2025-11-01T08:00:00Z", ...],   # oldest first
            "brands": {
                "Acme": {
                    "overall": [50.0, 62.5, ...],
                    "topics": {"running-shoes": [75.0, ...], ...},
                },
            },
        }
    """
    ordered = _chronological(records)
    topic_ids: list[str] = []
    for record in ordered:
        for topic_id in record.results:
            if topic_id not in topic_ids:
                topic_ids.append(topic_id)

    series: dict[str, Any] = {}
    for brand in project.brands:
        series[brand] = {
            "overall": [overall_score(r.results, brand) for r in ordered],
            "topics": {
                topic_id: [topic_score(r.results, topic_id, brand) for r in ordered]
                for topic_id in topic_ids
            },
        }

    return {
        "timestamps": [format_timestamp(r.timestamp) for r in ordered],
        "brands": series,
    }


def build_detail_rows(
    record: AnalysisRecord, brands: Sequence[str]
) -> list[dict[str, Any]]:
    """
    One row per (topic, query, brand) of a run, for the detail table.

    Scores are per-query values in [0.0, 1.0].
    """
    rows = []
    for topic_id, topic in record.results.items():
        for entry in (topic or {}).get("queries") or []:
            mentions = {
                str(m.get("name", "")).casefold(): m
                for m in entry.get("brandMentions") or []
            }
            for brand in brands:
                mention = mentions.get(brand.casefold(), {})
                rows.append(
                    {
                        "topic": topic_id,
                        "query": entry.get("query", ""),
                        "brand": brand,
                        "mentioned": bool(mention.get("mentioned")),
                        "count": mention.get("count", 0) or 0,
                        "rank": mention.get("brandPosition"),
                        "score": query_score(entry, brand),
                    }
                )
    return rows
