"""
Record store for projects, topics and analysis results.

RecordStore is an explicitly opened handle on one SQLite database. Callers
open it for the duration of a command (or a test) and close it afterwards;
there is no module-level connection.

Example:
    >>> with RecordStore("./data/visibility.db") as store:
    ...     project = store.create_project("Acme Shoes", "Acme", ["Nike", "Adidas"])
    ...     store.add_topic(project.id, "Running shoes", ["best running shoes"])

Every write runs in a single transaction: it is either fully committed or
rolled back and reported as a typed StorageError.
"""

import json
import logging
import re
import sqlite3
import uuid
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from rapidfuzz import process, utils

from llm_visibility.exceptions import (
    DuplicateRecordError,
    PersistenceError,
    ProjectNotFoundError,
    TopicNotFoundError,
)
from llm_visibility.scoring.aggregator import brand_totals
from llm_visibility.scoring.comparator import WEEKLY_WINDOW
from llm_visibility.storage.db import connect, ensure_schema
from llm_visibility.utils.time import format_timestamp, parse_timestamp, utc_timestamp

logger = logging.getLogger(__name__)

ANALYSIS_STATUSES = ("complete", "cancelled")
DEFAULT_HISTORY_LIMIT = 30

# Oldest run the weekly comparison can use, measured from the newest run
COMPARISON_SPAN = WEEKLY_WINDOW[1]

# Minimum rapidfuzz WRatio score for a "did you mean" suggestion
SUGGESTION_CUTOFF = 70


def slugify(name: str) -> str:
    """
    Topic identifier derived from its name.

    Lower-cases the name and replaces runs of whitespace with a hyphen.

    Example:
        >>> slugify("Running  Shoes")
        'running-shoes'
    """
    return re.sub(r"\s+", "-", name.strip().lower())


def clean_brand_list(primary: str, competitors: Iterable[str]) -> list[str]:
    """
    Normalize a competitor list against the primary brand.

    Strips whitespace, drops empty names, and drops case-insensitive
    duplicates (including the primary brand itself). The first spelling wins.
    """
    seen = {primary.strip().casefold()}
    cleaned = []
    for competitor in competitors:
        name = competitor.strip()
        if not name or name.casefold() in seen:
            continue
        seen.add(name.casefold())
        cleaned.append(name)
    return cleaned


@dataclass(frozen=True)
class Project:
    """A monitored brand and its competitors."""

    id: str
    name: str
    brand: str
    competitors: tuple[str, ...] = ()
    language: str = "en"
    created_at: str = ""
    updated_at: str = ""

    @property
    def brands(self) -> list[str]:
        """All tracked brands, primary brand first."""
        return [self.brand, *self.competitors]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "brand": self.brand,
            "competitors": list(self.competitors),
            "brands": self.brands,
            "language": self.language,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass(frozen=True)
class Topic:
    """A named, ordered list of queries within a project."""

    id: int
    project_id: str
    name: str
    slug: str
    queries: tuple[str, ...] = ()
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "name": self.name,
            "slug": self.slug,
            "queries": list(self.queries),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass(frozen=True)
class AnalysisRecord:
    """
    One committed analysis run.

    ``results`` maps topic slug to ``{"queries": [...]}`` exactly as stored.
    """

    id: str
    project_id: str
    timestamp: datetime
    results: dict[str, Any] = field(default_factory=dict)
    brand_totals: dict[str, int] = field(default_factory=dict)
    status: str = "complete"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "timestamp": format_timestamp(self.timestamp),
            "status": self.status,
            "results": self.results,
            "brand_totals": self.brand_totals,
        }


def _dedupe_queries(existing: Iterable[str], new: Iterable[str]) -> list[str]:
    queries = list(existing)
    seen = set(queries)
    for query in new:
        text = query.strip()
        if text and text not in seen:
            seen.add(text)
            queries.append(text)
    return queries


class RecordStore:
    """
    CRUD access to projects, topics and analysis results.

    Args:
        db_path: Path to the SQLite file, or ":memory:"
    """

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._conn: sqlite3.Connection | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(self) -> "RecordStore":
        """Open the connection and apply pending migrations. Idempotent."""
        if self._conn is None:
            conn = connect(self.db_path)
            try:
                ensure_schema(conn)
            except Exception:
                conn.close()
                raise
            self._conn = conn
            logger.debug(f"Opened record store at {self.db_path}")
        return self

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.debug(f"Closed record store at {self.db_path}")

    def __enter__(self) -> "RecordStore":
        return self.open()

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise PersistenceError("Record store is not open; call open() first")
        return self._conn

    def _write(self, action: str, sql: str, params: tuple) -> sqlite3.Cursor:
        try:
            with self.conn:
                return self.conn.execute(sql, params)
        except sqlite3.Error as e:
            logger.error(f"Failed to {action}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to {action}: {e}") from e

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    @staticmethod
    def _row_to_project(row: sqlite3.Row) -> Project:
        return Project(
            id=row["id"],
            name=row["name"],
            brand=row["brand"],
            competitors=tuple(json.loads(row["competitors_json"])),
            language=row["language"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def create_project(
        self,
        name: str,
        brand: str,
        competitors: Iterable[str] = (),
        language: str = "en",
        project_id: str | None = None,
    ) -> Project:
        """
        Create a project.

        Args:
            name: Display name
            brand: Primary brand
            competitors: Competitor brands (normalized, see clean_brand_list)
            language: Prompt language tag
            project_id: Explicit id; defaults to the slug of ``name``

        Raises:
            ValueError: If name or brand is empty
            DuplicateRecordError: If a project with this id already exists
        """
        name = name.strip()
        brand = brand.strip()
        if not name:
            raise ValueError("Project name cannot be empty")
        if not brand:
            raise ValueError("Project brand cannot be empty")

        project_id = (project_id or slugify(name)).strip()
        cleaned = clean_brand_list(brand, competitors)
        now = utc_timestamp()

        try:
            with self.conn:
                self.conn.execute(
                    """
                    INSERT INTO projects (
                        id, name, brand, competitors_json, language,
                        created_at, updated_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        project_id,
                        name,
                        brand,
                        json.dumps(cleaned),
                        language,
                        now,
                        now,
                    ),
                )
        except sqlite3.IntegrityError as e:
            raise DuplicateRecordError(
                f"Project '{project_id}' already exists"
            ) from e
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to create project '{project_id}': {e}") from e

        logger.info(
            "Project created",
            extra={
                "context": {
                    "project_id": project_id,
                    "brand": brand,
                    "competitors": len(cleaned),
                }
            },
        )
        return Project(project_id, name, brand, tuple(cleaned), language, now, now)

    def get_project(self, project_id: str) -> Project:
        """
        Raises:
            ProjectNotFoundError: If no project has this id
        """
        row = self.conn.execute(
            "SELECT * FROM projects WHERE id = ?", (project_id,)
        ).fetchone()
        if row is None:
            raise ProjectNotFoundError(
                f"Project '{project_id}' not found", project_id=project_id
            )
        return self._row_to_project(row)

    def list_projects(self) -> list[Project]:
        """All projects, oldest first."""
        rows = self.conn.execute(
            "SELECT * FROM projects ORDER BY created_at, rowid"
        ).fetchall()
        return [self._row_to_project(row) for row in rows]

    def update_competitors(
        self, project_id: str, competitors: Iterable[str]
    ) -> Project:
        """
        Replace a project's competitor list.

        The project's name and primary brand cannot be changed.
        """
        project = self.get_project(project_id)
        cleaned = clean_brand_list(project.brand, competitors)
        now = utc_timestamp()

        self._write(
            f"update competitors of project '{project_id}'",
            "UPDATE projects SET competitors_json = ?, updated_at = ? WHERE id = ?",
            (json.dumps(cleaned), now, project_id),
        )
        logger.info(
            "Project competitors updated",
            extra={"context": {"project_id": project_id, "competitors": cleaned}},
        )
        return self.get_project(project_id)

    def set_language(self, project_id: str, language: str) -> Project:
        """Change the language tag used when generating queries."""
        language = language.strip().lower()
        if not language:
            raise ValueError("language cannot be empty")
        self.get_project(project_id)
        self._write(
            f"update language of project '{project_id}'",
            "UPDATE projects SET language = ?, updated_at = ? WHERE id = ?",
            (language, utc_timestamp(), project_id),
        )
        return self.get_project(project_id)

    def delete_project(self, project_id: str) -> None:
        """Delete a project together with its topics and analysis results."""
        self.get_project(project_id)
        self._write(
            f"delete project '{project_id}'",
            "DELETE FROM projects WHERE id = ?",
            (project_id,),
        )
        logger.info(
            "Project deleted", extra={"context": {"project_id": project_id}}
        )

    # ------------------------------------------------------------------
    # Topics
    # ------------------------------------------------------------------

    @staticmethod
    def _row_to_topic(row: sqlite3.Row) -> Topic:
        return Topic(
            id=row["id"],
            project_id=row["project_id"],
            name=row["name"],
            slug=row["slug"],
            queries=tuple(json.loads(row["queries_json"])),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def add_topic(
        self, project_id: str, name: str, queries: Iterable[str] = ()
    ) -> Topic:
        """
        Add a topic to a project.

        Raises:
            ValueError: If name is empty
            ProjectNotFoundError: If the project does not exist
            DuplicateRecordError: If the project already has a topic with
                this name (or one that slugifies the same way)
        """
        name = name.strip()
        if not name:
            raise ValueError("Topic name cannot be empty")

        self.get_project(project_id)
        slug = slugify(name)
        query_list = _dedupe_queries([], queries)
        now = utc_timestamp()

        try:
            with self.conn:
                cursor = self.conn.execute(
                    """
                    INSERT INTO topics (
                        project_id, name, slug, queries_json, created_at, updated_at
                    ) VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (project_id, name, slug, json.dumps(query_list), now, now),
                )
        except sqlite3.IntegrityError as e:
            raise DuplicateRecordError(
                f"Topic '{name}' already exists in project '{project_id}'"
            ) from e
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to add topic '{name}': {e}") from e

        logger.info(
            "Topic added",
            extra={
                "context": {
                    "project_id": project_id,
                    "topic": slug,
                    "queries": len(query_list),
                }
            },
        )
        return Topic(
            cursor.lastrowid, project_id, name, slug, tuple(query_list), now, now
        )

    def list_topics(self, project_id: str) -> list[Topic]:
        """Topics of a project in creation order."""
        self.get_project(project_id)
        rows = self.conn.execute(
            "SELECT * FROM topics WHERE project_id = ? ORDER BY id",
            (project_id,),
        ).fetchall()
        return [self._row_to_topic(row) for row in rows]

    def get_topic(self, project_id: str, name: str) -> Topic:
        """
        Look a topic up by name or slug.

        Raises:
            ProjectNotFoundError: If the project does not exist
            TopicNotFoundError: If no topic matches; carries the closest
                existing topic name as a suggestion when one is similar
        """
        topics = self.list_topics(project_id)
        wanted = name.strip()
        for topic in topics:
            if topic.name == wanted or topic.slug == slugify(wanted):
                return topic

        suggestion = None
        match = process.extractOne(
            wanted,
            [topic.name for topic in topics],
            processor=utils.default_process,
            score_cutoff=SUGGESTION_CUTOFF,
        )
        if match is not None:
            suggestion = match[0]

        raise TopicNotFoundError(
            f"Topic '{wanted}' not found in project '{project_id}'",
            topic_name=wanted,
            suggestion=suggestion,
        )

    def _set_queries(self, topic: Topic, queries: list[str]) -> Topic:
        now = utc_timestamp()
        self._write(
            f"update queries of topic '{topic.name}'",
            "UPDATE topics SET queries_json = ?, updated_at = ? WHERE id = ?",
            (json.dumps(queries), now, topic.id),
        )
        return Topic(
            topic.id,
            topic.project_id,
            topic.name,
            topic.slug,
            tuple(queries),
            topic.created_at,
            now,
        )

    def add_queries(
        self, project_id: str, topic_name: str, queries: Iterable[str]
    ) -> Topic:
        """Append queries to a topic, skipping blanks and duplicates."""
        topic = self.get_topic(project_id, topic_name)
        updated = self._set_queries(topic, _dedupe_queries(topic.queries, queries))
        logger.info(
            "Queries added to topic",
            extra={
                "context": {
                    "project_id": project_id,
                    "topic": topic.slug,
                    "added": len(updated.queries) - len(topic.queries),
                }
            },
        )
        return updated

    def replace_queries(
        self, project_id: str, topic_name: str, queries: Iterable[str]
    ) -> Topic:
        """Replace a topic's whole query list."""
        topic = self.get_topic(project_id, topic_name)
        return self._set_queries(topic, _dedupe_queries([], queries))

    def delete_topic(self, project_id: str, topic_name: str) -> None:
        """
        Delete a topic and its data in stored analysis results.

        The topic's entry is removed from every analysis record of the
        project, and each record's brand totals are recomputed, in the same
        transaction as the topic row deletion.
        """
        topic = self.get_topic(project_id, topic_name)

        try:
            with self.conn:
                self.conn.execute("DELETE FROM topics WHERE id = ?", (topic.id,))
                rows = self.conn.execute(
                    "SELECT id, results_json FROM analysis_results "
                    "WHERE project_id = ?",
                    (project_id,),
                ).fetchall()
                stripped = 0
                for row in rows:
                    results = json.loads(row["results_json"])
                    if topic.slug not in results:
                        continue
                    del results[topic.slug]
                    self.conn.execute(
                        "UPDATE analysis_results "
                        "SET results_json = ?, brand_totals_json = ? WHERE id = ?",
                        (
                            json.dumps(results),
                            json.dumps(brand_totals(results)),
                            row["id"],
                        ),
                    )
                    stripped += 1
        except sqlite3.Error as e:
            logger.error(f"Failed to delete topic '{topic.name}': {e}", exc_info=True)
            raise PersistenceError(f"Failed to delete topic '{topic.name}': {e}") from e

        logger.info(
            "Topic deleted",
            extra={
                "context": {
                    "project_id": project_id,
                    "topic": topic.slug,
                    "analysis_records_updated": stripped,
                }
            },
        )

    # ------------------------------------------------------------------
    # Analysis results
    # ------------------------------------------------------------------

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> AnalysisRecord:
        return AnalysisRecord(
            id=row["id"],
            project_id=row["project_id"],
            timestamp=parse_timestamp(row["timestamp_utc"]),
            results=json.loads(row["results_json"]),
            brand_totals=json.loads(row["brand_totals_json"]),
            status=row["status"],
        )

    def append_analysis_result(
        self,
        project_id: str,
        results: Mapping[str, Any],
        timestamp: datetime,
        status: str = "complete",
    ) -> AnalysisRecord:
        """
        Commit one analysis run as a new record.

        Runs are never merged or overwritten: two runs on the same day are
        two records in the history.

        Args:
            project_id: Owning project
            results: Topic slug -> {"queries": [...]}
            timestamp: Run timestamp (timezone-aware)
            status: "complete" or "cancelled"

        Raises:
            ValueError: If status is unknown
            ProjectNotFoundError: If the project does not exist
            PersistenceError: If the insert fails (nothing is written)
        """
        if status not in ANALYSIS_STATUSES:
            raise ValueError(
                f"status must be one of {ANALYSIS_STATUSES}, got: {status}"
            )

        self.get_project(project_id)
        analysis_id = uuid.uuid4().hex
        results = dict(results)
        totals = brand_totals(results)

        self._write(
            f"store analysis result for project '{project_id}'",
            """
            INSERT INTO analysis_results (
                id, project_id, timestamp_utc, results_json,
                brand_totals_json, status
            ) VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                analysis_id,
                project_id,
                format_timestamp(timestamp),
                json.dumps(results),
                json.dumps(totals),
                status,
            ),
        )

        logger.info(
            "Analysis result stored",
            extra={
                "context": {
                    "project_id": project_id,
                    "topics": len(results),
                    "status": status,
                },
                "analysis_id": analysis_id,
            },
        )
        return AnalysisRecord(
            id=analysis_id,
            project_id=project_id,
            timestamp=parse_timestamp(format_timestamp(timestamp)),
            results=results,
            brand_totals=totals,
            status=status,
        )

    def get_analysis_history(
        self,
        project_id: str,
        limit: int | None = DEFAULT_HISTORY_LIMIT,
        since: datetime | None = None,
    ) -> list[AnalysisRecord]:
        """
        Most recent analysis records of a project, newest first.

        Args:
            project_id: Project to read
            limit: Maximum number of records; None for all
            since: Only records at or after this time
        """
        self.get_project(project_id)
        sql = "SELECT * FROM analysis_results WHERE project_id = ?"
        params: list[Any] = [project_id]
        if since is not None:
            sql += " AND timestamp_utc >= ?"
            params.append(format_timestamp(since))
        sql += " ORDER BY timestamp_utc DESC, rowid DESC"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)

        rows = self.conn.execute(sql, params).fetchall()
        return [self._row_to_record(row) for row in rows]

    def get_latest_analysis(self, project_id: str) -> AnalysisRecord | None:
        history = self.get_analysis_history(project_id, limit=1)
        return history[0] if history else None

    def get_comparison_history(self, project_id: str) -> list[AnalysisRecord]:
        """
        Runs reachable by the day and week comparison, newest first.

        Reads by age rather than by count: the newest record plus every
        record up to eight days older, however many runs that is.
        """
        latest = self.get_latest_analysis(project_id)
        if latest is None:
            return []
        return self.get_analysis_history(
            project_id, limit=None, since=latest.timestamp - COMPARISON_SPAN
        )
