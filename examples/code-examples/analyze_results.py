#!/usr/bin/env python3
"""
Analyze LLM Visibility Tracker results programmatically.

This script demonstrates how to:
- Open the record store
- Compute per-topic scores of every brand for the latest run
- Compare the primary brand with yesterday and a week ago

Usage:
    python examples/code-examples/analyze_results.py acme-shoes [./data/visibility.db]
"""

import sys

from llm_visibility.exceptions import ProjectNotFoundError
from llm_visibility.scoring import build_history, compare, topic_scores
from llm_visibility.storage import RecordStore


def main() -> int:
    if len(sys.argv) < 2:
        print(__doc__)
        return 1

    project_id = sys.argv[1]
    db_path = sys.argv[2] if len(sys.argv) > 2 else "./data/visibility.db"

    with RecordStore(db_path) as store:
        try:
            project = store.get_project(project_id)
        except ProjectNotFoundError as e:
            print(f"Error: {e}")
            return 1

        records = store.get_comparison_history(project_id)
        if not records:
            print(f"No analysis results for {project_id} yet")
            return 0

        latest = records[0]
        print(f"Latest run: {latest.timestamp.isoformat()} ({latest.status})")
        for brand in project.brands:
            scores = topic_scores(latest.results, brand)
            line = ", ".join(f"{topic}={score:.1f}" for topic, score in scores.items())
            print(f"  {brand}: {line}")

        delta = compare(build_history(records, project.brand), latest.timestamp)
        print(
            f"{project.brand}: current {delta.current_score}, "
            f"daily {delta.daily_delta}, weekly {delta.weekly_delta}"
        )

    return 0


if __name__ == "__main__":
    sys.exit(main())
