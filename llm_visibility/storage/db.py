"""
SQLite schema for the visibility record store.

Three tables hold everything the tracker persists:
- projects: primary brand, competitor list and prompt language
- topics: named query lists, unique per project by name and by slug
- analysis_results: one row per analysis run; per-topic results as JSON

A schema_version table records every migration applied, so older database
files are upgraded in place the first time a newer release opens them.
Timestamps are UTC ISO 8601 strings ending in 'Z'.

    >>> from llm_visibility.storage.db import init_db_if_needed
    >>> init_db_if_needed("./data/visibility.db")

All statements take their values as bound parameters.
"""

import logging
import sqlite3
from pathlib import Path

from llm_visibility.exceptions import DatabaseInitError, DatabaseMigrationError
from llm_visibility.utils.time import utc_timestamp

logger = logging.getLogger(__name__)

# Bumped together with a new _migrate_to_vN function
CURRENT_SCHEMA_VERSION = 1


def connect(db_path: str) -> sqlite3.Connection:
    """
    Open a connection with row access by column name and foreign keys enforced.

    The parent directory is created when missing. ``":memory:"`` is accepted
    for throwaway databases.

    Raises:
        DatabaseInitError: If the file cannot be created or opened
    """
    try:
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(db_path)
    except (OSError, sqlite3.Error) as e:
        raise DatabaseInitError(f"Failed to open database {db_path}: {e}") from e

    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_db_if_needed(db_path: str) -> None:
    """
    Create the database file or upgrade it to the current schema.

    Running it against an up-to-date database changes nothing.

    Raises:
        DatabaseInitError: If the database cannot be created or opened
        DatabaseMigrationError: If a migration fails
    """
    conn = connect(db_path)
    try:
        ensure_schema(conn)
    finally:
        conn.close()


def ensure_schema(conn: sqlite3.Connection) -> None:
    """
    Bring an open connection's database up to CURRENT_SCHEMA_VERSION.

    Raises:
        DatabaseMigrationError: If a migration fails or the database was
            written by a newer version of the software
    """
    conn.execute("""
        CREATE TABLE IF NOT EXISTS schema_version (
            version INTEGER PRIMARY KEY,
            applied_at TEXT NOT NULL
        )
    """)
    conn.commit()

    current_version = get_schema_version(conn)

    if current_version < CURRENT_SCHEMA_VERSION:
        logger.info(
            f"Upgrading database schema from v{current_version} "
            f"to v{CURRENT_SCHEMA_VERSION}"
        )
        apply_migrations(conn, current_version, CURRENT_SCHEMA_VERSION)
    elif current_version == CURRENT_SCHEMA_VERSION:
        logger.debug(f"Database already at schema v{current_version}")
    else:
        raise DatabaseMigrationError(
            f"Database schema v{current_version} is newer than expected "
            f"(v{CURRENT_SCHEMA_VERSION}); it was written by a newer release "
            f"of llm-visibility"
        )


def get_schema_version(conn: sqlite3.Connection) -> int:
    """Highest applied migration, or 0 for a database without any."""
    (version,) = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
    return version or 0


def apply_migrations(
    conn: sqlite3.Connection, from_version: int, to_version: int
) -> None:
    """
    Run migrations from_version+1 .. to_version in order.

    One transaction per step: a failing step is rolled back and the database
    stays at the last version that succeeded.

    Raises:
        DatabaseMigrationError: If any migration SQL fails (transaction rolled
            back) or a downgrade is requested
    """
    if from_version > to_version:
        raise DatabaseMigrationError(
            f"Cannot downgrade schema from v{from_version} to v{to_version}"
        )

    for target_version in range(from_version + 1, to_version + 1):
        try:
            conn.execute("BEGIN")

            if target_version == 1:
                _migrate_to_v1(conn)
            else:
                raise ValueError(f"No migration defined for version {target_version}")

            conn.execute(
                "INSERT INTO schema_version (version, applied_at) VALUES (?, ?)",
                (target_version, utc_timestamp()),
            )
            conn.commit()
            logger.info(f"Applied schema migration v{target_version}")

        except (sqlite3.Error, ValueError) as e:
            conn.rollback()
            logger.error(f"Schema migration v{target_version} failed: {e}", exc_info=True)
            raise DatabaseMigrationError(
                f"Could not migrate database to version {target_version}: {e}"
            ) from e


def _migrate_to_v1(conn: sqlite3.Connection) -> None:
    """
    v1: projects, topics and analysis_results.

    Topics and results reference their project with ON DELETE CASCADE.
    brand_totals_json caches the per-brand mention counts of a run.
    """
    conn.execute("""
        CREATE TABLE IF NOT EXISTS projects (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            brand TEXT NOT NULL,
            competitors_json TEXT NOT NULL DEFAULT '[]',
            language TEXT NOT NULL DEFAULT 'en',
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
    """)

    conn.execute("""
        CREATE TABLE IF NOT EXISTS topics (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            project_id TEXT NOT NULL
                REFERENCES projects(id) ON DELETE CASCADE,
            name TEXT NOT NULL,
            slug TEXT NOT NULL,
            queries_json TEXT NOT NULL DEFAULT '[]',
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            UNIQUE(project_id, name),
            UNIQUE(project_id, slug)
        )
    """)

    conn.execute("""
        CREATE TABLE IF NOT EXISTS analysis_results (
            id TEXT PRIMARY KEY,
            project_id TEXT NOT NULL
                REFERENCES projects(id) ON DELETE CASCADE,
            timestamp_utc TEXT NOT NULL,
            results_json TEXT NOT NULL,
            brand_totals_json TEXT NOT NULL DEFAULT '{}',
            status TEXT NOT NULL DEFAULT 'complete'
        )
    """)

    conn.execute("""
        CREATE INDEX IF NOT EXISTS idx_analysis_results_project_time
        ON analysis_results(project_id, timestamp_utc DESC)
    """)

