"""
Core orchestration engine for LLM Visibility Tracker.

This module implements ``run_analysis``, which executes one full analysis
run for a project: every query of every topic is sent to the LLM, each
answer is scanned for the project's brands, and the ranked mentions are
committed as a single AnalysisResult record.

Key responsibilities:
- Fan out one task per (topic, query), bounded by a semaphore
- Apply a per-query timeout
- Log and skip failed queries without stopping the batch
- Honour cooperative cancellation (no new queries once cancelled)
- Assemble results in topic and query order, whatever the completion order
- Write the run in one transaction with one timestamp

Example:
    >>> with RecordStore(config.run_settings.sqlite_db_path) as store:
    ...     summary = await run_analysis(store, "acme-shoes", client)
    >>> summary["success_count"], summary["total_queries"]
    (9, 10)
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from llm_visibility.config.constants import (
    DEFAULT_MAX_CONCURRENT_REQUESTS,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
)
from llm_visibility.extractor.mention_detector import detect_brand_mentions
from llm_visibility.llm_runner.models import LLMClient
from llm_visibility.storage.store import RecordStore
from llm_visibility.utils.logging import log_with_context
from llm_visibility.utils.time import format_timestamp, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueryJob:
    """One query of one topic, with its position in the topic's list."""

    topic_slug: str
    query_index: int
    query: str


def build_query_entry(
    query: str, response_text: str, brands: list[str]
) -> dict[str, Any]:
    """
    Build the stored entry for one answered query.

    Example:
        >>> entry = build_query_entry("best shoes", "Nike beats Adidas.", ["Adidas", "Nike"])
        >>> [m["brandPosition"] for m in entry["brandMentions"]]
        [2, 1]
    """
    mentions = detect_brand_mentions(response_text, brands)
    return {
        "query": query,
        "response": response_text,
        "brandMentions": [mention.to_dict() for mention in mentions],
    }


async def run_analysis(
    store: RecordStore,
    project_id: str,
    client: LLMClient,
    max_concurrent_requests: int = DEFAULT_MAX_CONCURRENT_REQUESTS,
    request_timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
    cancel_event: asyncio.Event | None = None,
    progress_callback: Callable[[], None] | None = None,
) -> dict[str, Any]:
    """
    Run every query of a project through the LLM and store the results.

    Args:
        store: Open record store
        project_id: Project to analyze
        client: LLM client used for every query
        max_concurrent_requests: Upper bound on in-flight LLM calls
        request_timeout_seconds: Timeout applied to each LLM call
        cancel_event: When set, queries not yet started are skipped and the
            results obtained so far are stored with status "cancelled"
        progress_callback: Called once per query when it finishes, fails or
            is skipped. Used by the CLI to update its progress bar.

    Returns:
        Summary dictionary:
        {
            "analysis_id": "4f1c..." (None if nothing was stored),
            "project_id": "acme-shoes",
            "timestamp": "2025-11-02T08:00:00Z",
            "status": "complete" | "cancelled",
            "total_queries": 10,
            "success_count": 9,
            "error_count": 1,
            "skipped_count": 0,
            "errors": [{"topic": "...", "query": "...", "error": "..."}],
        }

    Raises:
        ProjectNotFoundError: If the project does not exist
        PersistenceError: If the final write fails

    Note:
        A run in which no query succeeded is not stored, since it carries no
        visibility data and would read as a 0% score in the history.
    """
    project = store.get_project(project_id)
    topics = store.list_topics(project_id)
    brands = project.brands

    jobs = [
        QueryJob(topic.slug, index, query)
        for topic in topics
        for index, query in enumerate(topic.queries)
    ]

    logger.info(
        f"Starting analysis for project {project_id}: "
        f"{len(topics)} topics, {len(jobs)} queries, {len(brands)} brands"
    )

    semaphore = asyncio.Semaphore(max_concurrent_requests)
    entries: dict[tuple[str, int], dict[str, Any]] = {}
    errors: list[dict[str, str]] = []
    skipped_count = 0

    async def _execute_query_with_semaphore(job: QueryJob) -> None:
        nonlocal skipped_count

        async with semaphore:
            if cancel_event is not None and cancel_event.is_set():
                skipped_count += 1
                if progress_callback:
                    progress_callback()
                return

            try:
                response = await asyncio.wait_for(
                    client.generate_answer(job.query), timeout=request_timeout_seconds
                )
            except TimeoutError:
                message = f"Timed out after {request_timeout_seconds:g}s"
                logger.warning(
                    f"Query skipped: {message}",
                    extra={"context": {"topic": job.topic_slug, "query": job.query}},
                )
                errors.append(
                    {"topic": job.topic_slug, "query": job.query, "error": message}
                )
            except Exception as e:
                logger.error(
                    f"Query failed: {e}",
                    exc_info=True,
                    extra={"context": {"topic": job.topic_slug, "query": job.query}},
                )
                errors.append(
                    {"topic": job.topic_slug, "query": job.query, "error": str(e)}
                )
            else:
                entry = build_query_entry(job.query, response.answer_text, brands)
                entries[(job.topic_slug, job.query_index)] = entry
                log_with_context(
                    logger,
                    logging.DEBUG,
                    "Query analyzed",
                    context={
                        "topic": job.topic_slug,
                        "mentioned": [
                            m["name"] for m in entry["brandMentions"] if m["mentioned"]
                        ],
                    },
                )

            if progress_callback:
                progress_callback()

    await asyncio.gather(*(_execute_query_with_semaphore(job) for job in jobs))

    # Every topic is present, even when none of its queries succeeded
    results: dict[str, dict[str, list]] = {}
    for topic in topics:
        results[topic.slug] = {
            "queries": [
                entries[(topic.slug, index)]
                for index in range(len(topic.queries))
                if (topic.slug, index) in entries
            ]
        }

    status = "cancelled" if skipped_count else "complete"
    success_count = len(entries)
    finished_at = utc_now()

    analysis_id = None
    if success_count or not jobs:
        record = store.append_analysis_result(
            project_id, results, timestamp=finished_at, status=status
        )
        analysis_id = record.id
    else:
        logger.warning(
            f"No query succeeded for project {project_id}; nothing stored"
        )

    log_with_context(
        logger,
        logging.INFO,
        f"Analysis for project {project_id} finished: "
        f"{success_count}/{len(jobs)} successful",
        context={
            "status": status,
            "errors": len(errors),
            "skipped": skipped_count,
        },
        analysis_id=analysis_id,
    )

    return {
        "analysis_id": analysis_id,
        "project_id": project_id,
        "timestamp": format_timestamp(finished_at),
        "status": status,
        "total_queries": len(jobs),
        "success_count": success_count,
        "error_count": len(errors),
        "skipped_count": skipped_count,
        "errors": errors,
    }
