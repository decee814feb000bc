"""
Tests for utils.console module - dual-mode CLI output utilities.

This module tests:
- OutputMode format/quiet state and JSON buffering
- success/error/warning/info in human, agent and quiet modes
- Progress bar and spinner fallbacks outside human mode
- Table and summary printers in agent and quiet modes
"""

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from rich.progress import Progress

from llm_visibility.utils.console import (
    NoOpProgress,
    OutputMode,
    _format_delta,
    create_progress_bar,
    error,
    info,
    output_mode,
    print_batch_summary,
    print_dashboard,
    print_final_summary,
    print_history_table,
    print_projects_table,
    print_topics_table,
    spinner,
    success,
    warning,
)

# ========================================================================
# Fixtures
# ========================================================================


@pytest.fixture(autouse=True)
def reset_output_mode():
    """Reset global output_mode to default state after each test."""
    original_format = output_mode.format
    original_quiet = output_mode.quiet
    output_mode._json_buffer.clear()

    yield

    output_mode.format = original_format
    output_mode.quiet = original_quiet
    output_mode._json_buffer.clear()


@pytest.fixture
def summary():
    return {
        "analysis_id": "4f1c",
        "project_id": "shoe-watch",
        "timestamp": "2025-11-02T09:00:00Z",
        "status": "complete",
        "total_queries": 3,
        "success_count": 2,
        "error_count": 1,
        "skipped_count": 0,
        "errors": [{"topic": "trail", "query": "q", "error": "boom"}],
    }


# ========================================================================
# OutputMode
# ========================================================================


class TestOutputMode:
    """Test suite for OutputMode."""

    def test_defaults(self):
        mode = OutputMode()

        assert mode.is_human()
        assert not mode.is_agent()
        assert mode.quiet is False

    def test_invalid_format(self):
        with pytest.raises(ValueError, match="Invalid format"):
            OutputMode("xml")

    def test_flush_json_outputs_and_clears_buffer(self, capsys):
        mode = OutputMode("json")
        mode.add_json("status", "success")
        mode.add_json("count", 2)

        mode.flush_json()

        assert json.loads(capsys.readouterr().out) == {"status": "success", "count": 2}
        assert mode._json_buffer == {}

    def test_flush_json_no_op_in_human_mode(self, capsys):
        mode = OutputMode("text")
        mode.add_json("status", "success")

        mode.flush_json()

        assert capsys.readouterr().out == ""

    def test_flush_json_serializes_unknown_types_as_strings(self, capsys):
        mode = OutputMode("json")
        mode.add_json("path", Path("output") / "report.html")

        mode.flush_json()

        assert json.loads(capsys.readouterr().out) == {"path": str(Path("output") / "report.html")}


# ========================================================================
# Message functions
# ========================================================================


class TestMessages:
    """Test suite for success(), error(), warning() and info()."""

    @patch("llm_visibility.utils.console.console")
    def test_success_human_mode(self, mock_console):
        output_mode.format = "text"
        output_mode.quiet = False

        success("Project created")

        printed = mock_console.print.call_args[0][0]
        assert "✓" in printed
        assert "Project created" in printed

    def test_success_agent_mode_buffers(self):
        output_mode.format = "json"

        success("Project created")

        assert output_mode._json_buffer == {
            "status": "success",
            "message": "Project created",
        }

    @patch("llm_visibility.utils.console.console_err")
    def test_error_printed_even_when_quiet(self, mock_console_err):
        output_mode.format = "text"
        output_mode.quiet = True

        error("Database locked")

        mock_console_err.print.assert_called_once()

    def test_error_agent_mode_buffers(self):
        output_mode.format = "json"

        error("Database locked")

        assert output_mode._json_buffer["status"] == "error"
        assert output_mode._json_buffer["error"] == "Database locked"

    def test_warning_agent_mode_buffers(self):
        output_mode.format = "json"

        warning("No results yet")

        assert output_mode._json_buffer == {"warning": "No results yet"}

    @patch("llm_visibility.utils.console.console")
    def test_quiet_mode_silences_info_and_success(self, mock_console):
        output_mode.format = "text"
        output_mode.quiet = True

        info("hello")
        success("done")
        warning("careful")

        mock_console.print.assert_not_called()


# ========================================================================
# Progress and spinner
# ========================================================================


class TestProgress:
    """Test suite for create_progress_bar() and spinner()."""

    def test_human_mode_returns_rich_progress(self):
        output_mode.format = "text"
        output_mode.quiet = False

        assert isinstance(create_progress_bar(), Progress)

    @pytest.mark.parametrize("fmt,quiet", [("json", False), ("text", True)])
    def test_noop_progress_outside_human_mode(self, fmt, quiet):
        output_mode.format = fmt
        output_mode.quiet = quiet

        progress = create_progress_bar()

        assert isinstance(progress, NoOpProgress)
        with progress:
            task = progress.add_task("Analyzing", total=3)
            progress.advance(task)

    def test_spinner_silent_in_agent_mode(self, capsys):
        output_mode.format = "json"

        with spinner("Loading") as status:
            assert status is None

        assert capsys.readouterr().out == ""


# ========================================================================
# Tables and summaries
# ========================================================================


class TestPrinters:
    """Test suite for the table and summary printers."""

    def test_format_delta(self):
        assert _format_delta(None) == "[dim]–[/dim]"
        assert _format_delta(20.0) == "[green]+20.0[/green]"
        assert _format_delta(-3.25) == "[red]-3.2[/red]"
        assert _format_delta(0.0) == "0.0"

    def test_projects_agent_mode(self):
        output_mode.format = "json"
        projects = [{"id": "p", "name": "P", "brand": "Nike"}]

        print_projects_table(projects)

        assert output_mode._json_buffer["projects"] == projects

    def test_projects_quiet_mode(self, capsys):
        output_mode.format = "text"
        output_mode.quiet = True

        print_projects_table([{"id": "p", "name": "P", "brand": "Nike"}])

        assert capsys.readouterr().out == "p\tP\tNike\n"

    def test_topics_quiet_mode(self, capsys):
        output_mode.format = "text"
        output_mode.quiet = True

        print_topics_table([{"name": "Trail", "slug": "trail", "queries": ["a", "b"]}])

        assert capsys.readouterr().out == "trail\tTrail\t2\n"

    def test_history_quiet_mode(self, capsys):
        output_mode.format = "text"
        output_mode.quiet = True

        print_history_table(
            "Nike",
            [{"analysis_id": "a1", "timestamp": "2025-11-02T09:00:00Z", "score": 62.5}],
        )

        assert capsys.readouterr().out == "a1\t2025-11-02T09:00:00Z\t62.5\n"

    def test_dashboard_agent_mode(self):
        output_mode.format = "json"
        dashboard = {"project": {"id": "p"}, "latest": None, "brands": []}

        print_dashboard(dashboard, [])

        assert output_mode._json_buffer == {"dashboard": dashboard, "topics": []}

    @patch("llm_visibility.utils.console.console")
    def test_dashboard_without_results_warns(self, mock_console):
        output_mode.format = "text"
        output_mode.quiet = False

        print_dashboard(
            {"project": {"id": "p", "name": "P", "brand": "Nike"}, "latest": None, "brands": []},
            [],
        )

        assert "No analysis results" in mock_console.print.call_args[0][0]

    def test_final_summary_agent_mode(self, capsys, summary):
        output_mode.format = "json"
        output_mode.add_json("errors", summary["errors"])

        print_final_summary(summary)

        data = json.loads(capsys.readouterr().out)
        assert data["analysis_id"] == "4f1c"
        assert data["success_count"] == 2
        assert output_mode._json_buffer == {}

    def test_final_summary_quiet_mode(self, capsys, summary):
        output_mode.format = "text"
        output_mode.quiet = True

        print_final_summary(summary)

        assert capsys.readouterr().out == "4f1c\tcomplete\t2\t3\n"

    def test_final_summary_quiet_mode_not_stored(self, capsys, summary):
        output_mode.format = "text"
        output_mode.quiet = True
        summary["analysis_id"] = None

        print_final_summary(summary)

        assert capsys.readouterr().out.startswith("-\t")


class TestBatchSummary:
    """Test suite for print_batch_summary()."""

    @pytest.fixture
    def rows(self):
        return [
            {
                "project_id": "shoe-watch",
                "status": "complete",
                "analysis_id": "4f1c",
                "success_count": 2,
                "total_queries": 2,
                "error": None,
            },
            {
                "project_id": "road-watch",
                "status": "failed",
                "analysis_id": None,
                "success_count": 0,
                "total_queries": 0,
                "error": "disk full",
            },
        ]

    def test_agent_mode(self, capsys, rows):
        output_mode.format = "json"

        print_batch_summary(rows)

        data = json.loads(capsys.readouterr().out)
        assert [row["project_id"] for row in data["projects"]] == ["shoe-watch", "road-watch"]
        assert data["failed_count"] == 1

    def test_quiet_mode(self, capsys, rows):
        output_mode.format = "text"
        output_mode.quiet = True

        print_batch_summary(rows)

        assert capsys.readouterr().out == (
            "shoe-watch\tcomplete\t2\t2\nroad-watch\tfailed\t0\t0\n"
        )

    @patch("llm_visibility.utils.console.console")
    def test_human_mode_reports_failures(self, mock_console, rows):
        output_mode.format = "text"
        output_mode.quiet = False

        print_batch_summary(rows)

        assert "1 of 2 projects" in mock_console.print.call_args[0][0]
