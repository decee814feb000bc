"""
Tests for report.views module.

Tests cover:
- Dashboard rows and primary brand comparison
- Topic cards with per-topic deltas
- Monitoring series ordering and topics added over time
- Detail rows of one run
"""

from datetime import UTC, datetime, timedelta

import pytest
from conftest import query_entry

from llm_visibility.report.views import (
    build_dashboard,
    build_detail_rows,
    build_monitoring_series,
    build_topic_cards,
)
from llm_visibility.storage.store import Project, Topic

NOW = datetime(2025, 11, 2, 9, 0, tzinfo=UTC)


@pytest.fixture
def shoe_project():
    return Project("shoe-watch", "Shoe Watch", "Nike", ("Adidas",))


@pytest.fixture
def records(store, project):
    """Three runs: a week ago, yesterday and today, stored out of order."""
    store.append_analysis_result(
        project.id,
        {"trail": {"queries": [query_entry(Nike=3, Adidas=1)]}},
        NOW - timedelta(days=1),
    )
    store.append_analysis_result(
        project.id,
        {"trail": {"queries": [query_entry(Nike=None, Adidas=1)]}},
        NOW - timedelta(days=7),
    )
    store.append_analysis_result(
        project.id,
        {
            "trail": {"queries": [query_entry(Nike=1, Adidas=2)]},
            "road": {"queries": [query_entry(Nike=None, Adidas=None)]},
        },
        NOW,
    )
    return store.get_analysis_history(project.id)


class TestBuildDashboard:
    """Test suite for build_dashboard()."""

    def test_latest_run_scores(self, project, records):
        dashboard = build_dashboard(project, records)

        assert dashboard["runs"] == 3
        assert dashboard["latest"]["timestamp"] == "2025-11-02T09:00:00Z"
        rows = {row["brand"]: row for row in dashboard["brands"]}
        # trail 100.0, road 0.0
        assert rows["Nike"]["score"] == 50.0
        assert rows["Nike"]["is_primary"] is True
        assert rows["Nike"]["mentions"] == 1
        assert rows["Adidas"]["score"] == 37.5
        assert rows["Salomon"]["score"] == 0.0

    def test_primary_brand_comparison(self, project, records):
        comparison = build_dashboard(project, records)["comparison"]

        assert comparison["current"] == 50.0
        assert comparison["yesterday"] == 50.0
        assert comparison["weekAgo"] == 0.0
        assert comparison["daily"] == 0.0
        assert comparison["weekly"] == 50.0

    def test_explicit_now_shifts_windows(self, project, records):
        comparison = build_dashboard(project, records, now=NOW + timedelta(days=1))[
            "comparison"
        ]

        assert comparison["yesterday"] == 50.0
        assert comparison["weekAgo"] is None

    def test_weekly_delta_with_many_runs_in_the_week(self, store, project):
        """Test a week-old run behind more than thirty newer runs."""
        store.append_analysis_result(
            project.id,
            {"trail": {"queries": [query_entry(Nike=2)]}},
            NOW - timedelta(days=7, hours=1),
        )
        for hours in range(0, 124, 4):
            store.append_analysis_result(
                project.id,
                {"trail": {"queries": [query_entry(Nike=1)]}},
                NOW - timedelta(hours=hours),
            )

        comparison = build_dashboard(project, store.get_comparison_history(project.id))[
            "comparison"
        ]

        assert comparison["weekAgo"] == 75.0
        assert comparison["weekly"] == 25.0

    def test_no_records(self, shoe_project):
        dashboard = build_dashboard(shoe_project, [])

        assert dashboard["latest"] is None
        assert dashboard["comparison"] is None
        assert [row["score"] for row in dashboard["brands"]] == [0.0, 0.0]


class TestBuildTopicCards:
    """Test suite for build_topic_cards()."""

    def test_cards(self, store, project, records):
        store.add_topic(project.id, "Trail", ["best trail shoes"])
        store.add_topic(project.id, "Road", ["best road shoes", "road shoes 2025"])

        cards = build_topic_cards(project, store.list_topics(project.id), records)

        trail, road = cards
        assert trail["score"] == 100.0
        assert trail["comparison"]["daily"] == 50.0
        assert trail["comparison"]["weekly"] == 100.0
        assert road["query_count"] == 2
        assert road["score"] == 0.0

    def test_cards_without_records(self, shoe_project):
        topic = Topic(1, "shoe-watch", "Trail", "trail", ("q",))

        cards = build_topic_cards(shoe_project, [topic], [])

        assert cards[0]["score"] == 0.0
        assert cards[0]["comparison"] is None


class TestBuildMonitoringSeries:
    """Test suite for build_monitoring_series()."""

    def test_series_oldest_first(self, project, records):
        series = build_monitoring_series(project, records)

        assert series["timestamps"] == [
            "2025-10-26T09:00:00Z",
            "2025-11-01T09:00:00Z",
            "2025-11-02T09:00:00Z",
        ]
        assert series["brands"]["Nike"]["overall"] == [0.0, 50.0, 50.0]
        assert series["brands"]["Adidas"]["overall"] == [100.0, 100.0, 37.5]

    def test_topic_added_later_scores_zero_before(self, project, records):
        series = build_monitoring_series(project, records)

        assert series["brands"]["Nike"]["topics"]["road"] == [0.0, 0.0, 0.0]
        assert list(series["brands"]["Nike"]["topics"]) == ["trail", "road"]

    def test_same_second_runs_keep_insert_order(self, store, project):
        store.append_analysis_result(
            project.id, {"t": {"queries": [query_entry(Nike=1)]}}, NOW
        )
        store.append_analysis_result(
            project.id, {"t": {"queries": [query_entry(Nike=2)]}}, NOW
        )

        history = store.get_analysis_history(project.id)

        assert build_monitoring_series(project, history)["brands"]["Nike"][
            "overall"
        ] == [100.0, 75.0]
        assert build_dashboard(project, history)["brands"][0]["score"] == 75.0


class TestBuildDetailRows:
    """Test suite for build_detail_rows()."""

    def test_rows(self, project, records):
        rows = build_detail_rows(records[0], project.brands)

        # 2 queries x 3 brands
        assert len(rows) == 6
        first = rows[0]
        assert first == {
            "topic": "trail",
            "query": "q",
            "brand": "Nike",
            "mentioned": True,
            "count": 1,
            "rank": 1,
            "score": 1.0,
        }
        salomon = rows[2]
        assert salomon["mentioned"] is False
        assert salomon["rank"] is None

    def test_legacy_mention_without_rank(self, records):
        record = records[0]
        record.results["trail"]["queries"] = [
            {"query": "q", "brandMentions": [{"name": "nike", "mentioned": True}]}
        ]

        row = build_detail_rows(record, ["Nike"])[0]

        assert row["mentioned"] is True
        assert row["rank"] is None
        assert row["score"] == 0.1
