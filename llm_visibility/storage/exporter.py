"""
Data export utilities for LLM Visibility Tracker.

Exports a project's score timeline from the record store to CSV or JSON for
external analysis. One row is written per (run, topic, brand), plus one
"overall" row per (run, brand).

Both writers accept an optional day window and write UTF-8.

Example:
    >>> with RecordStore("./data/visibility.db") as store:
    ...     export_scores_csv("./output/scores.csv", store, "acme-shoes", days=30)
"""

import csv
import json
import logging
from datetime import timedelta
from pathlib import Path
from typing import Any

from llm_visibility.scoring.aggregator import overall_score, topic_score
from llm_visibility.storage.store import RecordStore
from llm_visibility.utils.time import format_timestamp, utc_now

logger = logging.getLogger(__name__)

OVERALL_TOPIC = "overall"

FIELDNAMES = [
    "analysis_id",
    "timestamp_utc",
    "status",
    "topic",
    "brand",
    "is_primary",
    "score",
]


def build_score_rows(
    store: RecordStore, project_id: str, days: int | None = None
) -> list[dict[str, Any]]:
    """
    Build the score timeline rows of a project, oldest run first.

    Args:
        store: Open record store
        project_id: Project to export
        days: Optional number of days to include (e.g., 30 for last 30 days)

    Raises:
        ProjectNotFoundError: If the project does not exist
    """
    project = store.get_project(project_id)
    records = store.get_analysis_history(project_id, limit=None)

    if days:
        cutoff = utc_now() - timedelta(days=days)
        records = [r for r in records if r.timestamp >= cutoff]

    rows = []
    for record in reversed(records):
        base = {
            "analysis_id": record.id,
            "timestamp_utc": format_timestamp(record.timestamp),
            "status": record.status,
        }
        for brand in project.brands:
            rows.append(
                {
                    **base,
                    "topic": OVERALL_TOPIC,
                    "brand": brand,
                    "is_primary": brand == project.brand,
                    "score": overall_score(record.results, brand),
                }
            )
            for topic_id in record.results:
                rows.append(
                    {
                        **base,
                        "topic": topic_id,
                        "brand": brand,
                        "is_primary": brand == project.brand,
                        "score": topic_score(record.results, topic_id, brand),
                    }
                )
    return rows


def export_scores_csv(
    output_path: str | Path,
    store: RecordStore,
    project_id: str,
    days: int | None = None,
) -> int:
    """
    Export a project's score timeline to a CSV file.

    An empty history still produces a file with the header row.

    Returns:
        Number of rows exported

    Raises:
        ProjectNotFoundError: If the project does not exist
        OSError: If file cannot be written
    """
    rows = build_score_rows(store, project_id, days=days)
    if not rows:
        logger.warning(f"No analysis results found for project {project_id}")

    logger.info(f"Exporting scores to CSV: {output_path}")

    try:
        with open(output_path, "w", encoding="utf-8", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=FIELDNAMES)
            writer.writeheader()
            for row in rows:
                writer.writerow(row)
    except OSError as e:
        logger.error(f"Could not write export: {e}", exc_info=True)
        raise

    logger.info(f"Exported {len(rows)} score rows to {output_path}")
    return len(rows)


def export_scores_json(
    output_path: str | Path,
    store: RecordStore,
    project_id: str,
    days: int | None = None,
) -> int:
    """
    Export a project's score timeline to a JSON array.

    Returns:
        Number of records exported
    """
    rows = build_score_rows(store, project_id, days=days)

    logger.info(f"Exporting scores to JSON: {output_path}")

    try:
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(rows, f, indent=2, ensure_ascii=False)
            f.write("\n")
    except OSError as e:
        logger.error(f"Could not write export: {e}", exc_info=True)
        raise

    logger.info(f"Exported {len(rows)} score rows to {output_path}")
    return len(rows)
