"""
Tests for llm_runner.runner module.

All tests use MockLLMClient, so no network access is needed.

Tests cover:
- Results assembled in topic and query order
- Failed and timed out queries skipped, run still stored
- Runs with no successful query not stored
- Cooperative cancellation
- Progress callback
"""

import asyncio

import pytest

from llm_visibility.exceptions import LLMRateLimitError, ProjectNotFoundError
from llm_visibility.llm_runner.mock_client import MockLLMClient
from llm_visibility.llm_runner.runner import build_query_entry, run_analysis


@pytest.fixture
def topics(store, project):
    store.add_topic(project.id, "Trail", ["best trail shoes", "trail shoes for mud"])
    store.add_topic(project.id, "Road", ["best road shoes"])
    return project


class TestBuildQueryEntry:
    """Test suite for build_query_entry()."""

    def test_entry_shape(self):
        entry = build_query_entry(
            "best shoes",
            "Nike is great but Adidas outlasts Salomon.",
            ["Nike", "Adidas", "Salomon"],
        )

        assert entry["query"] == "best shoes"
        assert entry["response"] == "Nike is great but Adidas outlasts Salomon."
        assert [m["brandPosition"] for m in entry["brandMentions"]] == [1, 2, 3]


class TestRunAnalysis:
    """Test suite for run_analysis()."""

    @pytest.mark.asyncio
    async def test_stores_results_in_query_order(self, store, topics):
        """Test that completion order does not change the stored order."""
        client = MockLLMClient(
            responses={
                "best trail shoes": "Salomon, then Nike.",
                "trail shoes for mud": "Adidas only.",
                "best road shoes": "Nike.",
            }
        )

        summary = await run_analysis(store, topics.id, client, max_concurrent_requests=3)

        assert summary["status"] == "complete"
        assert (summary["total_queries"], summary["success_count"]) == (3, 3)
        record = store.get_latest_analysis(topics.id)
        assert record.id == summary["analysis_id"]
        assert list(record.results) == ["trail", "road"]
        assert [q["query"] for q in record.results["trail"]["queries"]] == [
            "best trail shoes",
            "trail shoes for mud",
        ]
        salomon_first = record.results["trail"]["queries"][0]["brandMentions"]
        assert {m["name"]: m["brandPosition"] for m in salomon_first} == {
            "Nike": 2,
            "Adidas": None,
            "Salomon": 1,
        }
        assert record.brand_totals == {"Salomon": 1, "Nike": 2, "Adidas": 1}

    @pytest.mark.asyncio
    async def test_failed_query_skipped(self, store, topics):
        client = MockLLMClient(
            errors={"trail shoes for mud": LLMRateLimitError("rate limited")}
        )

        summary = await run_analysis(store, topics.id, client)

        assert summary["success_count"] == 2
        assert summary["error_count"] == 1
        assert summary["errors"] == [
            {"topic": "trail", "query": "trail shoes for mud", "error": "rate limited"}
        ]
        assert summary["status"] == "complete"
        record = store.get_latest_analysis(topics.id)
        assert len(record.results["trail"]["queries"]) == 1

    @pytest.mark.asyncio
    async def test_topic_without_successes_still_present(self, store, topics):
        client = MockLLMClient(errors={"best road shoes": RuntimeError("boom")})

        await run_analysis(store, topics.id, client)

        record = store.get_latest_analysis(topics.id)
        assert record.results["road"] == {"queries": []}

    @pytest.mark.asyncio
    async def test_timeout_counts_as_error(self, store, topics):
        client = MockLLMClient(delay_seconds=0.5)

        summary = await run_analysis(
            store, topics.id, client, request_timeout_seconds=0.01
        )

        assert summary["error_count"] == 3
        assert summary["errors"][0]["error"] == "Timed out after 0.01s"

    @pytest.mark.asyncio
    async def test_run_without_successes_not_stored(self, store, topics):
        client = MockLLMClient(
            errors={
                "best trail shoes": RuntimeError("down"),
                "trail shoes for mud": RuntimeError("down"),
                "best road shoes": RuntimeError("down"),
            }
        )

        summary = await run_analysis(store, topics.id, client)

        assert summary["analysis_id"] is None
        assert summary["success_count"] == 0
        assert store.get_analysis_history(topics.id) == []

    @pytest.mark.asyncio
    async def test_project_without_queries_stores_empty_run(self, store, project):
        store.add_topic(project.id, "Empty")

        summary = await run_analysis(store, project.id, MockLLMClient())

        assert summary["total_queries"] == 0
        record = store.get_latest_analysis(project.id)
        assert record.results == {"empty": {"queries": []}}

    @pytest.mark.asyncio
    async def test_cancel_before_start(self, store, topics):
        cancel_event = asyncio.Event()
        cancel_event.set()
        client = MockLLMClient()

        summary = await run_analysis(store, topics.id, client, cancel_event=cancel_event)

        assert summary["status"] == "cancelled"
        assert summary["skipped_count"] == 3
        assert client.calls == []
        assert summary["analysis_id"] is None

    @pytest.mark.asyncio
    async def test_cancel_mid_run_stores_partial_results(self, store, topics):
        """Test that queries started before cancellation are kept."""
        cancel_event = asyncio.Event()

        summary = await run_analysis(
            store,
            topics.id,
            MockLLMClient(default_response="Nike."),
            max_concurrent_requests=1,
            cancel_event=cancel_event,
            progress_callback=cancel_event.set,
        )

        assert summary["success_count"] == 1
        assert summary["skipped_count"] == 2
        record = store.get_latest_analysis(topics.id)
        assert record.status == "cancelled"
        assert len(record.results["trail"]["queries"]) == 1
        assert record.results["road"] == {"queries": []}

    @pytest.mark.asyncio
    async def test_progress_callback_called_per_query(self, store, topics):
        calls = []
        client = MockLLMClient(errors={"best road shoes": RuntimeError("boom")})

        await run_analysis(
            store, topics.id, client, progress_callback=lambda: calls.append(1)
        )

        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_concurrency_bounded(self, store, topics):
        in_flight = 0
        peak = 0

        class CountingClient(MockLLMClient):
            async def generate_answer(self, prompt):
                nonlocal in_flight, peak
                in_flight += 1
                peak = max(peak, in_flight)
                try:
                    return await super().generate_answer(prompt)
                finally:
                    in_flight -= 1

        await run_analysis(
            store,
            topics.id,
            CountingClient(delay_seconds=0.01),
            max_concurrent_requests=2,
        )

        assert peak == 2

    @pytest.mark.asyncio
    async def test_missing_project(self, store):
        with pytest.raises(ProjectNotFoundError):
            await run_analysis(store, "nope", MockLLMClient())
