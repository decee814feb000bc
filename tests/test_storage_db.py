"""
Tests for storage/db.py module.

Tests cover:
- Database initialization and idempotency
- Schema version management
- Migration logic (v0 -> v1)
- FOREIGN KEY cascades
- Error paths (downgrades, newer databases, unopenable paths)

All tests use temporary databases to avoid filesystem pollution.
"""

import sqlite3

import pytest
from freezegun import freeze_time

from llm_visibility.exceptions import DatabaseInitError, DatabaseMigrationError
from llm_visibility.storage.db import (
    CURRENT_SCHEMA_VERSION,
    apply_migrations,
    connect,
    ensure_schema,
    get_schema_version,
    init_db_if_needed,
)


def _columns(conn, table):
    return {row["name"] for row in conn.execute(f"PRAGMA table_info({table})")}


# ============================================================================
# Database Initialization Tests
# ============================================================================


def test_init_db_creates_database_file(tmp_path):
    """Test that init_db_if_needed() creates database file."""
    db_path = tmp_path / "visibility.db"
    assert not db_path.exists()

    init_db_if_needed(str(db_path))

    assert db_path.is_file()


def test_init_db_creates_parent_directory(tmp_path):
    """Test that init_db_if_needed() creates parent directories."""
    db_path = tmp_path / "data" / "nested" / "visibility.db"

    init_db_if_needed(str(db_path))

    assert db_path.exists()


def test_init_db_is_idempotent(tmp_path):
    """Test that a second call records no extra schema versions."""
    db_path = str(tmp_path / "visibility.db")

    init_db_if_needed(db_path)
    init_db_if_needed(db_path)

    conn = connect(db_path)
    try:
        count = conn.execute("SELECT COUNT(*) FROM schema_version").fetchone()[0]
    finally:
        conn.close()

    assert count == CURRENT_SCHEMA_VERSION


def test_init_db_creates_all_tables(tmp_path):
    db_path = str(tmp_path / "visibility.db")
    init_db_if_needed(db_path)

    conn = connect(db_path)
    try:
        tables = {
            row["name"]
            for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
        }
    finally:
        conn.close()

    assert {"schema_version", "projects", "topics", "analysis_results"} <= tables


def test_connect_enables_foreign_keys():
    conn = connect(":memory:")
    try:
        assert conn.execute("PRAGMA foreign_keys").fetchone()[0] == 1
    finally:
        conn.close()


def test_connect_failure_raises_database_init_error(tmp_path):
    """Test that a path that cannot be opened is reported as DatabaseInitError."""
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")

    with pytest.raises(DatabaseInitError, match="Failed to open database"):
        connect(str(blocker / "visibility.db"))


# ============================================================================
# Schema Version Tests
# ============================================================================


def test_fresh_database_is_version_zero():
    conn = connect(":memory:")
    try:
        conn.execute(
            "CREATE TABLE schema_version (version INTEGER PRIMARY KEY, applied_at TEXT)"
        )
        assert get_schema_version(conn) == 0
    finally:
        conn.close()


def test_ensure_schema_reaches_current_version():
    conn = connect(":memory:")
    try:
        ensure_schema(conn)
        assert get_schema_version(conn) == CURRENT_SCHEMA_VERSION == 1
    finally:
        conn.close()


@freeze_time("2025-11-02 08:30:00")
def test_migration_records_applied_at():
    conn = connect(":memory:")
    try:
        ensure_schema(conn)
        applied = [
            row["applied_at"]
            for row in conn.execute("SELECT applied_at FROM schema_version")
        ]
    finally:
        conn.close()

    assert applied == ["2025-11-02T08:30:00Z"] * CURRENT_SCHEMA_VERSION


def test_newer_database_rejected():
    """Test that a database written by newer software is not touched."""
    conn = connect(":memory:")
    try:
        ensure_schema(conn)
        conn.execute(
            "INSERT INTO schema_version (version, applied_at) VALUES (99, 'x')"
        )
        conn.commit()

        with pytest.raises(DatabaseMigrationError, match="newer than expected"):
            ensure_schema(conn)
    finally:
        conn.close()


# ============================================================================
# Migration Tests
# ============================================================================


def test_v1_creates_every_column_with_defaults():
    """Test that rows inserted with only the required columns get defaults."""
    conn = connect(":memory:")
    try:
        ensure_schema(conn)
        conn.execute(
            "INSERT INTO projects (id, name, brand, created_at, updated_at) "
            "VALUES ('p', 'P', 'Nike', 't', 't')"
        )
        conn.execute(
            "INSERT INTO analysis_results (id, project_id, timestamp_utc, results_json) "
            "VALUES ('a1', 'p', '2025-11-01T00:00:00Z', '{}')"
        )
        conn.commit()

        assert {"competitors_json", "language"} <= _columns(conn, "projects")
        project = conn.execute("SELECT competitors_json, language FROM projects").fetchone()
        record = conn.execute(
            "SELECT brand_totals_json, status FROM analysis_results"
        ).fetchone()
        assert (project["competitors_json"], project["language"]) == ("[]", "en")
        assert (record["brand_totals_json"], record["status"]) == ("{}", "complete")
    finally:
        conn.close()


def test_downgrade_rejected():
    conn = connect(":memory:")
    try:
        with pytest.raises(DatabaseMigrationError, match="Cannot downgrade"):
            apply_migrations(conn, 1, 0)
    finally:
        conn.close()


def test_unknown_migration_rolls_back():
    """Test that a missing migration leaves the database at the previous version."""
    conn = connect(":memory:")
    try:
        ensure_schema(conn)

        next_version = CURRENT_SCHEMA_VERSION + 1
        with pytest.raises(DatabaseMigrationError, match=f"version {next_version}"):
            apply_migrations(conn, CURRENT_SCHEMA_VERSION, next_version)

        assert get_schema_version(conn) == CURRENT_SCHEMA_VERSION
    finally:
        conn.close()


# ============================================================================
# Constraint Tests
# ============================================================================


def test_deleting_project_cascades():
    conn = connect(":memory:")
    try:
        ensure_schema(conn)
        conn.execute(
            "INSERT INTO projects (id, name, brand, created_at, updated_at) "
            "VALUES ('p', 'P', 'Nike', 't', 't')"
        )
        conn.execute(
            "INSERT INTO topics (project_id, name, slug, created_at, updated_at) "
            "VALUES ('p', 'Trail', 'trail', 't', 't')"
        )
        conn.execute(
            "INSERT INTO analysis_results (id, project_id, timestamp_utc, results_json) "
            "VALUES ('a', 'p', 't', '{}')"
        )
        conn.commit()

        conn.execute("DELETE FROM projects WHERE id = 'p'")
        conn.commit()

        assert conn.execute("SELECT COUNT(*) FROM topics").fetchone()[0] == 0
        assert conn.execute("SELECT COUNT(*) FROM analysis_results").fetchone()[0] == 0
    finally:
        conn.close()


def test_topic_slug_unique_per_project():
    conn = connect(":memory:")
    try:
        ensure_schema(conn)
        conn.execute(
            "INSERT INTO projects (id, name, brand, created_at, updated_at) "
            "VALUES ('p', 'P', 'Nike', 't', 't')"
        )
        conn.execute(
            "INSERT INTO topics (project_id, name, slug, created_at, updated_at) "
            "VALUES ('p', 'Trail', 'trail', 't', 't')"
        )

        with pytest.raises(sqlite3.IntegrityError):
            conn.execute(
                "INSERT INTO topics (project_id, name, slug, created_at, updated_at) "
                "VALUES ('p', 'trail', 'trail', 't', 't')"
            )
    finally:
        conn.close()
