"""
Seeding of projects and topics from the configuration file.

``sync_projects`` is idempotent: projects that already exist are kept as they
are, missing topics are created and new queries are appended to existing
topics. Nothing is ever deleted by a sync.
"""

import logging
from collections.abc import Iterable
from typing import Any

from llm_visibility.config.schema import ProjectSeed
from llm_visibility.exceptions import DuplicateRecordError, TopicNotFoundError
from llm_visibility.storage.store import RecordStore, slugify

logger = logging.getLogger(__name__)


def sync_projects(store: RecordStore, seeds: Iterable[ProjectSeed]) -> list[dict[str, Any]]:
    """
    Create the configured projects and topics that are not in the store yet.

    Returns:
        One summary per seed:
        {"project_id": "acme-shoes", "created": True,
         "topics_created": 2, "queries_added": 10}
    """
    summaries = []

    for seed in seeds:
        project_id = seed.id or slugify(seed.name)
        try:
            store.create_project(
                seed.name,
                seed.brand,
                seed.competitors,
                language=seed.language,
                project_id=project_id,
            )
            created = True
        except DuplicateRecordError:
            store.get_project(project_id)
            created = False

        topics_created = 0
        queries_added = 0
        for topic_seed in seed.topics:
            try:
                topic = store.get_topic(project_id, topic_seed.name)
            except TopicNotFoundError:
                topic = store.add_topic(project_id, topic_seed.name, topic_seed.queries)
                topics_created += 1
                queries_added += len(topic.queries)
                continue

            before = len(topic.queries)
            topic = store.add_queries(project_id, topic.name, topic_seed.queries)
            queries_added += len(topic.queries) - before

        logger.info(
            f"Synced project {project_id}",
            extra={
                "context": {
                    "created": created,
                    "topics_created": topics_created,
                    "queries_added": queries_added,
                }
            },
        )
        summaries.append(
            {
                "project_id": project_id,
                "created": created,
                "topics_created": topics_created,
                "queries_added": queries_added,
            }
        )

    return summaries
