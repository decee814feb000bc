"""
The llm-visibility command line.

Every command takes --format text|json; listing commands also take --quiet
for tab-separated rows. See utils/console.py for what each mode prints.

Commands:
    init: Create (or migrate) the SQLite database
    validate: Validate configuration without running queries
    sync: Create the projects and topics listed in the configuration
    project: create, list, show, update-competitors, set-language, delete
    topic: add, list, add-queries, set-queries, delete
    analyze: Run every query of a project (or of all projects) through the LLM
    dashboard: Show current scores with daily and weekly changes
    history: Show the stored analysis runs of a project
    report: Write the HTML monitoring report
    export: Export the score timeline to CSV or JSON
    generate-queries: Let the LLM write brand-neutral queries for keywords

Exit codes:
    0: Success
    1: Configuration error (invalid YAML, missing API keys, invalid input)
    2: Database error (SQLite file, migration or write)
    3: Partial failure (some queries or, with --all, some projects failed)
    4: Complete failure (no query succeeded, LLM unusable)
    5: Project or topic not found

Examples:
    # Seed projects from the config, then analyze one
    llm-visibility sync --config visibility.config.yaml
    llm-visibility analyze acme-shoes --config visibility.config.yaml

    # Daily scheduled run over every project
    llm-visibility analyze --all --quiet

    # One JSON document on stdout, for scripts
    llm-visibility dashboard acme-shoes --format json
"""

import asyncio
import logging
import traceback
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import typer
from rich.traceback import install as install_rich_traceback

from llm_visibility.config.constants import SUPPORTED_LANGUAGES
from llm_visibility.config.loader import load_config, load_tracker_config
from llm_visibility.config.schema import RunSettings
from llm_visibility.exceptions import (
    APIKeyMissingError,
    ConfigFileNotFoundError,
    ConfigurationError,
    DuplicateRecordError,
    LLMProviderError,
    QueryGenerationError,
    RecordNotFoundError,
    StorageError,
    VisibilityTrackerError,
)
from llm_visibility.llm_runner.models import build_client
from llm_visibility.llm_runner.runner import run_analysis
from llm_visibility.query_generator import (
    GENERATION_MAX_TOKENS,
    GENERATION_TEMPERATURE,
    apply_generated_queries,
    generate_queries,
    generation_system_prompt,
)
from llm_visibility.report.generator import write_report
from llm_visibility.report.views import build_dashboard, build_topic_cards
from llm_visibility.scoring.aggregator import overall_score
from llm_visibility.storage.db import get_schema_version, init_db_if_needed
from llm_visibility.storage.exporter import export_scores_csv, export_scores_json
from llm_visibility.storage.seeding import sync_projects
from llm_visibility.storage.store import DEFAULT_HISTORY_LIMIT, RecordStore
from llm_visibility.utils.console import (
    create_progress_bar,
    error,
    info,
    output_mode,
    print_banner,
    print_batch_summary,
    print_dashboard,
    print_error_table,
    print_final_summary,
    print_history_table,
    print_projects_table,
    print_topics_table,
    spinner,
    success,
    warning,
)
from llm_visibility.utils.logging import setup_logging
from llm_visibility.utils.time import format_timestamp

install_rich_traceback(show_locals=False)

logger = logging.getLogger(__name__)

# Exit codes
EXIT_SUCCESS = 0
EXIT_CONFIG_ERROR = 1  # Config validation failed or invalid input
EXIT_DB_ERROR = 2  # Database initialization or write failed
EXIT_PARTIAL_FAILURE = 3  # Some queries failed or were skipped
EXIT_COMPLETE_FAILURE = 4  # No query succeeded or the LLM is unusable
EXIT_NOT_FOUND = 5  # Unknown project or topic

DEFAULT_CONFIG_PATH = "visibility.config.yaml"

# Create Typer app
app = typer.Typer(
    name="llm-visibility",
    help="Track where your brand shows up in LLM answers, against competitors",
    add_completion=False,
)
project_app = typer.Typer(help="Create, list, show, update and delete projects")
topic_app = typer.Typer(help="Manage the topics and queries of a project")
app.add_typer(project_app, name="project")
app.add_typer(topic_app, name="topic")

# Shared options
ConfigOption = typer.Option(
    DEFAULT_CONFIG_PATH, "--config", "-c", help="Path to YAML configuration file"
)
DbOption = typer.Option(
    None, "--db", help="SQLite database path (overrides run_settings.sqlite_db_path)"
)
FormatOption = typer.Option(
    "text",
    "--format",
    "-f",
    help="Output format: text or json",
)
QuietOption = typer.Option(
    False, "--quiet", "-q", help="Minimal output (tab-separated values)"
)
VerboseOption = typer.Option(False, "--verbose", "-v", help="Enable debug logging")


def _setup(format: str, quiet: bool = False, verbose: bool = False) -> None:
    """Set the global output mode and logging for a command."""
    if format not in ("text", "json"):
        error(f"Invalid format: {format}. Must be 'text' or 'json'")
        raise typer.Exit(EXIT_CONFIG_ERROR)
    output_mode.format = format
    output_mode.quiet = quiet
    # Human mode logs warnings only unless --verbose
    setup_logging(verbose=verbose, quiet_logs=output_mode.is_human())


def _load_settings(config: Path, db: Path | None) -> RunSettings:
    """
    Run settings from the config file, with the --db override applied.

    Database-only commands work without a config file when --db is given.
    """
    if db is not None and not config.exists():
        return RunSettings(sqlite_db_path=str(db))

    settings = load_tracker_config(config).run_settings
    if db is not None:
        settings = settings.model_copy(update={"sqlite_db_path": str(db)})
    return settings


def _exit(code: int) -> None:
    output_mode.flush_json()
    raise typer.Exit(code)


@contextmanager
def _command_errors(verbose: bool = False) -> Iterator[None]:
    """Report typed errors and map them to exit codes."""
    try:
        yield
    except typer.Exit:
        raise
    except ConfigFileNotFoundError as e:
        error(f"Configuration file not found: {e}")
        _exit(EXIT_CONFIG_ERROR)
    except APIKeyMissingError as e:
        error(f"API key missing: {e}")
        _exit(EXIT_CONFIG_ERROR)
    except ConfigurationError as e:
        error(f"Configuration validation failed: {e}")
        _exit(EXIT_CONFIG_ERROR)
    except RecordNotFoundError as e:
        error(str(e))
        _exit(EXIT_NOT_FOUND)
    except DuplicateRecordError as e:
        error(str(e))
        _exit(EXIT_CONFIG_ERROR)
    except StorageError as e:
        error(f"Database error: {e}")
        if verbose:
            traceback.print_exc()
        _exit(EXIT_DB_ERROR)
    except (LLMProviderError, QueryGenerationError) as e:
        error(f"LLM request failed: {e}")
        if verbose:
            traceback.print_exc()
        _exit(EXIT_COMPLETE_FAILURE)
    except ValueError as e:
        error(f"Invalid input: {e}")
        _exit(EXIT_CONFIG_ERROR)


@contextmanager
def _open_store(config: Path, db: Path | None) -> Iterator[RecordStore]:
    settings = _load_settings(config, db)
    with RecordStore(settings.sqlite_db_path) as store:
        yield store


# ----------------------------------------------------------------------
# Setup commands
# ----------------------------------------------------------------------


@app.command()
def init(
    config: Path = ConfigOption,
    db: Path = DbOption,
    format: str = FormatOption,
    verbose: bool = VerboseOption,
):
    """
    Create the SQLite database, or migrate it to the current schema.

    Safe to run repeatedly.
    """
    _setup(format, verbose=verbose)

    with _command_errors(verbose):
        settings = _load_settings(config, db)
        with spinner("Initializing database..."):
            init_db_if_needed(settings.sqlite_db_path)
        with RecordStore(settings.sqlite_db_path) as store:
            version = get_schema_version(store.conn)

        success(f"Database ready: {settings.sqlite_db_path} (schema v{version})")
        if output_mode.is_agent():
            output_mode.add_json("db_path", settings.sqlite_db_path)
            output_mode.add_json("schema_version", version)

    _exit(EXIT_SUCCESS)


@app.command()
def validate(
    config: Path = ConfigOption,
    format: str = FormatOption,
):
    """
    Check the configuration file and the API key variables it names.

    No query is sent.

    Exit codes:
      0: Configuration is valid
      1: Configuration is invalid
    """
    _setup(format)

    with _command_errors():
        with spinner("Validating configuration..."):
            runtime_config = load_config(config)

        success("Configuration is valid")
        info(f"Model: {runtime_config.model.provider}/{runtime_config.model.model_name}")
        info(f"Database: {runtime_config.run_settings.sqlite_db_path}")
        info(f"Seeded projects: {len(runtime_config.projects)}")

        if output_mode.is_agent():
            output_mode.add_json("valid", True)
            output_mode.add_json(
                "model",
                f"{runtime_config.model.provider}/{runtime_config.model.model_name}",
            )
            output_mode.add_json("projects_count", len(runtime_config.projects))

    _exit(EXIT_SUCCESS)


@app.command()
def sync(
    config: Path = ConfigOption,
    db: Path = DbOption,
    format: str = FormatOption,
    quiet: bool = QuietOption,
    verbose: bool = VerboseOption,
):
    """
    Create the projects and topics listed in the configuration file.

    Existing projects are kept; missing topics are created and new queries
    are appended. Nothing is deleted.
    """
    _setup(format, quiet, verbose)

    with _command_errors(verbose):
        tracker_config = load_tracker_config(config)
        db_path = str(db) if db is not None else tracker_config.run_settings.sqlite_db_path

        if not tracker_config.projects:
            warning("No projects defined in the configuration")

        with RecordStore(db_path) as store:
            summaries = sync_projects(store, tracker_config.projects)

        for summary in summaries:
            state = "created" if summary["created"] else "existing"
            success(
                f"{summary['project_id']} ({state}): "
                f"{summary['topics_created']} topics created, "
                f"{summary['queries_added']} queries added"
            )
        if output_mode.is_agent():
            output_mode.add_json("projects", summaries)

    _exit(EXIT_SUCCESS)


# ----------------------------------------------------------------------
# Projects
# ----------------------------------------------------------------------


@project_app.command("create")
def project_create(
    name: str = typer.Argument(..., help="Project display name"),
    brand: str = typer.Option(..., "--brand", "-b", help="Primary brand to track"),
    competitor: list[str] = typer.Option(
        None, "--competitor", help="Competitor brand (repeatable)"
    ),
    language: str = typer.Option("en", "--language", "-l", help="Query language tag"),
    project_id: str = typer.Option(
        None, "--id", help="Explicit project id (default: slug of the name)"
    ),
    config: Path = ConfigOption,
    db: Path = DbOption,
    format: str = FormatOption,
    verbose: bool = VerboseOption,
):
    """Create a project with its primary brand and competitors."""
    _setup(format, verbose=verbose)

    with _command_errors(verbose), _open_store(config, db) as store:
        project = store.create_project(
            name,
            brand,
            competitor or [],
            language=language.strip().lower(),
            project_id=project_id,
        )
        success(f"Project created: {project.id}")
        if output_mode.is_agent():
            output_mode.add_json("project", project.to_dict())

    _exit(EXIT_SUCCESS)


@project_app.command("list")
def project_list(
    config: Path = ConfigOption,
    db: Path = DbOption,
    format: str = FormatOption,
    quiet: bool = QuietOption,
):
    """List all projects."""
    _setup(format, quiet)

    with _command_errors(), _open_store(config, db) as store:
        print_projects_table([p.to_dict() for p in store.list_projects()])

    _exit(EXIT_SUCCESS)


@project_app.command("show")
def project_show(
    project_id: str = typer.Argument(..., help="Project id"),
    config: Path = ConfigOption,
    db: Path = DbOption,
    format: str = FormatOption,
    quiet: bool = QuietOption,
):
    """Show a project with its topics and queries."""
    _setup(format, quiet)

    with _command_errors(), _open_store(config, db) as store:
        project = store.get_project(project_id)
        topics = store.list_topics(project_id)
        if output_mode.is_agent():
            output_mode.add_json("project", project.to_dict())
        print_projects_table([project.to_dict()])
        print_topics_table([t.to_dict() for t in topics], show_queries=True)

    _exit(EXIT_SUCCESS)


@project_app.command("update-competitors")
def project_update_competitors(
    project_id: str = typer.Argument(..., help="Project id"),
    competitor: list[str] = typer.Option(
        None, "--competitor", help="Competitor brand (repeatable); none clears the list"
    ),
    config: Path = ConfigOption,
    db: Path = DbOption,
    format: str = FormatOption,
    verbose: bool = VerboseOption,
):
    """Replace a project's competitor list."""
    _setup(format, verbose=verbose)

    with _command_errors(verbose), _open_store(config, db) as store:
        project = store.update_competitors(project_id, competitor or [])
        success(
            f"Competitors of {project.id}: "
            f"{', '.join(project.competitors) if project.competitors else '(none)'}"
        )
        if output_mode.is_agent():
            output_mode.add_json("project", project.to_dict())

    _exit(EXIT_SUCCESS)


@project_app.command("set-language")
def project_set_language(
    project_id: str = typer.Argument(..., help="Project id"),
    language: str = typer.Argument(..., help="Language tag, e.g. en or sv"),
    config: Path = ConfigOption,
    db: Path = DbOption,
    format: str = FormatOption,
    verbose: bool = VerboseOption,
):
    """Change the language that generate-queries writes in."""
    _setup(format, verbose=verbose)

    with _command_errors(verbose), _open_store(config, db) as store:
        project = store.set_language(project_id, language)
        if project.language not in SUPPORTED_LANGUAGES:
            warning(
                f"No prompt language for '{project.language}'; "
                "generated queries will be in English"
            )
        success(f"Language of {project.id}: {project.language}")
        if output_mode.is_agent():
            output_mode.add_json("project", project.to_dict())

    _exit(EXIT_SUCCESS)


@project_app.command("delete")
def project_delete(
    project_id: str = typer.Argument(..., help="Project id"),
    yes: bool = typer.Option(
        False, "--yes", "-y", help="Skip the confirmation prompt (for automation)"
    ),
    config: Path = ConfigOption,
    db: Path = DbOption,
    format: str = FormatOption,
    verbose: bool = VerboseOption,
):
    """Delete a project with all its topics and analysis history."""
    _setup(format, verbose=verbose)

    with _command_errors(verbose), _open_store(config, db) as store:
        store.get_project(project_id)
        if output_mode.is_human() and not yes and not typer.confirm(
            f"Delete project '{project_id}' and all its history?"
        ):
            info("Cancelled by user")
            raise typer.Exit(EXIT_SUCCESS)

        store.delete_project(project_id)
        success(f"Project deleted: {project_id}")

    _exit(EXIT_SUCCESS)


# ----------------------------------------------------------------------
# Topics
# ----------------------------------------------------------------------


@topic_app.command("add")
def topic_add(
    project_id: str = typer.Argument(..., help="Project id"),
    name: str = typer.Argument(..., help="Topic name"),
    query: list[str] = typer.Option(None, "--query", help="Query (repeatable)"),
    config: Path = ConfigOption,
    db: Path = DbOption,
    format: str = FormatOption,
    verbose: bool = VerboseOption,
):
    """Add a topic to a project."""
    _setup(format, verbose=verbose)

    with _command_errors(verbose), _open_store(config, db) as store:
        topic = store.add_topic(project_id, name, query or [])
        success(f"Topic added: {topic.name} ({len(topic.queries)} queries)")
        if output_mode.is_agent():
            output_mode.add_json("topic", topic.to_dict())

    _exit(EXIT_SUCCESS)


@topic_app.command("list")
def topic_list(
    project_id: str = typer.Argument(..., help="Project id"),
    queries: bool = typer.Option(False, "--queries", help="Show the query lists"),
    config: Path = ConfigOption,
    db: Path = DbOption,
    format: str = FormatOption,
    quiet: bool = QuietOption,
):
    """List the topics of a project."""
    _setup(format, quiet)

    with _command_errors(), _open_store(config, db) as store:
        topics = store.list_topics(project_id)
        print_topics_table([t.to_dict() for t in topics], show_queries=queries)

    _exit(EXIT_SUCCESS)


@topic_app.command("add-queries")
def topic_add_queries(
    project_id: str = typer.Argument(..., help="Project id"),
    name: str = typer.Argument(..., help="Topic name or slug"),
    query: list[str] = typer.Option(..., "--query", help="Query (repeatable)"),
    config: Path = ConfigOption,
    db: Path = DbOption,
    format: str = FormatOption,
    verbose: bool = VerboseOption,
):
    """Append queries to a topic. Duplicates are skipped."""
    _setup(format, verbose=verbose)

    with _command_errors(verbose), _open_store(config, db) as store:
        topic = store.add_queries(project_id, name, query)
        success(f"Topic {topic.name} now has {len(topic.queries)} queries")
        if output_mode.is_agent():
            output_mode.add_json("topic", topic.to_dict())

    _exit(EXIT_SUCCESS)


@topic_app.command("set-queries")
def topic_set_queries(
    project_id: str = typer.Argument(..., help="Project id"),
    name: str = typer.Argument(..., help="Topic name or slug"),
    query: list[str] = typer.Option(
        None, "--query", help="Query (repeatable); none empties the topic"
    ),
    config: Path = ConfigOption,
    db: Path = DbOption,
    format: str = FormatOption,
    verbose: bool = VerboseOption,
):
    """Replace the whole query list of a topic. Past results are kept."""
    _setup(format, verbose=verbose)

    with _command_errors(verbose), _open_store(config, db) as store:
        topic = store.replace_queries(project_id, name, query or [])
        success(f"Topic {topic.name} now has {len(topic.queries)} queries")
        if output_mode.is_agent():
            output_mode.add_json("topic", topic.to_dict())

    _exit(EXIT_SUCCESS)


@topic_app.command("delete")
def topic_delete(
    project_id: str = typer.Argument(..., help="Project id"),
    name: str = typer.Argument(..., help="Topic name or slug"),
    yes: bool = typer.Option(
        False, "--yes", "-y", help="Skip the confirmation prompt (for automation)"
    ),
    config: Path = ConfigOption,
    db: Path = DbOption,
    format: str = FormatOption,
    verbose: bool = VerboseOption,
):
    """Delete a topic and remove its data from the stored analysis results."""
    _setup(format, verbose=verbose)

    with _command_errors(verbose), _open_store(config, db) as store:
        topic = store.get_topic(project_id, name)
        if output_mode.is_human() and not yes and not typer.confirm(
            f"Delete topic '{topic.name}' and its data in past results?"
        ):
            info("Cancelled by user")
            raise typer.Exit(EXIT_SUCCESS)

        store.delete_topic(project_id, topic.name)
        success(f"Topic deleted: {topic.name}")

    _exit(EXIT_SUCCESS)


# ----------------------------------------------------------------------
# Analysis and presentation
# ----------------------------------------------------------------------


def _run_outcome(summary: dict) -> str:
    """complete, partial or failed, from a run_analysis summary."""
    if summary["total_queries"] and summary["success_count"] == 0:
        return "failed"
    if summary["error_count"] or summary["skipped_count"]:
        return "partial"
    return "complete"


def _analyze_project(
    store: RecordStore,
    project_id: str,
    client,
    settings: RunSettings,
    report: bool,
) -> dict:
    """Run one project's queries, store the run and optionally write its report."""
    topics = store.list_topics(project_id)
    total_queries = sum(len(t.queries) for t in topics)
    if total_queries == 0:
        warning(f"Project {project_id} has no queries; storing an empty run")
    else:
        info(f"Will execute {total_queries} queries across {len(topics)} topics")

    progress = create_progress_bar()
    with progress:
        task = progress.add_task(f"Analyzing {project_id}", total=total_queries)

        summary = asyncio.run(
            run_analysis(
                store,
                project_id,
                client,
                max_concurrent_requests=settings.max_concurrent_requests,
                request_timeout_seconds=settings.request_timeout_seconds,
                progress_callback=lambda: progress.advance(task),
            )
        )

    if report and summary["analysis_id"] is not None:
        with spinner("Generating report..."):
            report_path = write_report(store, project_id, settings.output_dir)
        info(f"View report: file://{report_path.absolute()}")

    return summary


def _analyze_all(store: RecordStore, client, settings: RunSettings, report: bool) -> int:
    """Analyze every project in turn; a failing project does not stop the rest."""
    projects = store.list_projects()
    if not projects:
        warning("No projects to analyze")

    rows = []
    for project in projects:
        info(f"Project {project.id} ({project.brand})")
        try:
            summary = _analyze_project(store, project.id, client, settings, report)
        except (VisibilityTrackerError, OSError) as e:
            logger.error(f"Analysis of project {project.id} failed: {e}")
            rows.append(
                {
                    "project_id": project.id,
                    "status": "failed",
                    "analysis_id": None,
                    "success_count": 0,
                    "total_queries": 0,
                    "error": str(e),
                }
            )
            continue

        if output_mode.is_human() and not output_mode.quiet:
            print_error_table(summary["errors"])
        rows.append(
            {
                "project_id": project.id,
                "status": _run_outcome(summary),
                "analysis_id": summary["analysis_id"],
                "success_count": summary["success_count"],
                "total_queries": summary["total_queries"],
                "error": None,
            }
        )

    print_batch_summary(rows)

    incomplete = [row for row in rows if row["status"] != "complete"]
    if rows and all(row["status"] == "failed" for row in rows):
        return EXIT_COMPLETE_FAILURE
    if incomplete:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS


@app.command()
def analyze(
    project_id: str = typer.Argument(None, help="Project id (omit with --all)"),
    all_projects: bool = typer.Option(
        False, "--all", help="Analyze every project, one after another"
    ),
    config: Path = ConfigOption,
    db: Path = DbOption,
    report: bool = typer.Option(
        False, "--report", help="Write the HTML report after the run"
    ),
    format: str = FormatOption,
    quiet: bool = QuietOption,
    verbose: bool = VerboseOption,
):
    """
    Run every query of a project through the LLM and store the results.

    With --all every project is analyzed in turn, which is what a daily
    scheduled job should call.

    Exit codes:
      0: All queries succeeded
      1: Configuration error
      2: Database error
      3: Partial failure (some queries, or with --all some projects, failed)
      4: Complete failure (no query succeeded)
      5: Project not found
    """
    _setup(format, quiet, verbose)
    if (project_id is None) == (not all_projects):
        error("Give either a project id or --all")
        _exit(EXIT_CONFIG_ERROR)
    print_banner(_read_version())

    with _command_errors(verbose):
        with spinner("Loading configuration..."):
            runtime_config = load_config(config)
        settings = runtime_config.run_settings
        if db is not None:
            settings = settings.model_copy(update={"sqlite_db_path": str(db)})

        model = runtime_config.model
        client = build_client(
            model.provider,
            model.model_name,
            model.api_key,
            system_prompt=model.system_prompt,
            temperature=model.temperature,
            max_tokens=model.max_tokens,
        )
        success(f"Using {model.provider}/{model.model_name}")

        with RecordStore(settings.sqlite_db_path) as store:
            if all_projects:
                exit_code = _analyze_all(store, client, settings, report)
            else:
                summary = _analyze_project(store, project_id, client, settings, report)

    if all_projects:
        raise typer.Exit(exit_code)

    print_error_table(summary["errors"])
    print_final_summary(summary)

    outcome = _run_outcome(summary)
    if outcome == "failed":
        raise typer.Exit(EXIT_COMPLETE_FAILURE)
    if outcome == "partial":
        raise typer.Exit(EXIT_PARTIAL_FAILURE)
    raise typer.Exit(EXIT_SUCCESS)


@app.command()
def dashboard(
    project_id: str = typer.Argument(..., help="Project id"),
    config: Path = ConfigOption,
    db: Path = DbOption,
    format: str = FormatOption,
    quiet: bool = QuietOption,
):
    """Show current brand scores with daily and weekly changes."""
    _setup(format, quiet)

    with _command_errors(), _open_store(config, db) as store:
        project = store.get_project(project_id)
        topics = store.list_topics(project_id)
        records = store.get_comparison_history(project_id)
        print_dashboard(
            build_dashboard(project, records),
            build_topic_cards(project, topics, records),
        )

    _exit(EXIT_SUCCESS)


@app.command()
def history(
    project_id: str = typer.Argument(..., help="Project id"),
    limit: int = typer.Option(
        DEFAULT_HISTORY_LIMIT, "--limit", "-n", help="Number of runs to show", min=1
    ),
    config: Path = ConfigOption,
    db: Path = DbOption,
    format: str = FormatOption,
    quiet: bool = QuietOption,
):
    """Show the stored analysis runs of a project, newest first."""
    _setup(format, quiet)

    with _command_errors(), _open_store(config, db) as store:
        project = store.get_project(project_id)
        records = store.get_analysis_history(project_id, limit=limit)
        rows = [
            {
                "analysis_id": record.id,
                "timestamp": format_timestamp(record.timestamp),
                "status": record.status,
                "score": overall_score(record.results, project.brand),
                "brand_totals": record.brand_totals,
            }
            for record in records
        ]
        print_history_table(project.brand, rows)

    _exit(EXIT_SUCCESS)


@app.command()
def report(
    project_id: str = typer.Argument(..., help="Project id"),
    output_dir: Path = typer.Option(
        None, "--output-dir", "-o", help="Directory for the report (default: run_settings.output_dir)"
    ),
    config: Path = ConfigOption,
    db: Path = DbOption,
    format: str = FormatOption,
    verbose: bool = VerboseOption,
):
    """Write the HTML monitoring report of a project."""
    _setup(format, verbose=verbose)

    with _command_errors(verbose):
        settings = _load_settings(config, db)
        target = output_dir if output_dir is not None else Path(settings.output_dir)
        with RecordStore(settings.sqlite_db_path) as store:
            with spinner("Generating report..."):
                try:
                    report_path = write_report(store, project_id, target)
                except OSError as e:
                    error(f"Cannot write report: {e}")
                    _exit(EXIT_DB_ERROR)

        success(f"Report written to {report_path}")
        if output_mode.is_agent():
            output_mode.add_json("report_path", str(report_path))

    _exit(EXIT_SUCCESS)


@app.command()
def export(
    project_id: str = typer.Argument(..., help="Project id"),
    output: Path = typer.Option(
        ...,
        "--output",
        "-o",
        help="Output file (.csv or .json)",
    ),
    days: int = typer.Option(None, "--days", help="Include only last N days of data"),
    config: Path = ConfigOption,
    db: Path = DbOption,
    format: str = FormatOption,
):
    """
    Export the score timeline of a project to CSV or JSON.

    One row per run, topic (plus "overall") and brand, oldest run first.
    The file extension picks the format: .csv or .json.
    """
    _setup(format)

    file_ext = output.suffix.lower()
    if file_ext not in [".csv", ".json"]:
        error("Output file must have .csv or .json extension")
        _exit(EXIT_CONFIG_ERROR)

    with _command_errors(), _open_store(config, db) as store:
        with spinner(f"Exporting scores to {output}..."):
            try:
                if file_ext == ".csv":
                    count = export_scores_csv(output, store, project_id, days=days)
                else:
                    count = export_scores_json(output, store, project_id, days=days)
            except OSError as e:
                error(f"Export failed: {e}")
                _exit(EXIT_DB_ERROR)

        success(f"Exported {count} score rows to {output}")
        if output_mode.is_agent():
            output_mode.add_json("rows", count)

    _exit(EXIT_SUCCESS)


@app.command("generate-queries")
def generate_queries_command(
    project_id: str = typer.Argument(..., help="Project id"),
    keyword: list[str] = typer.Option(
        ..., "--keyword", "-k", help="Keyword to write queries for (repeatable)"
    ),
    apply: bool = typer.Option(
        False, "--apply", help="Add the generated queries to topics named after the keywords"
    ),
    config: Path = ConfigOption,
    db: Path = DbOption,
    format: str = FormatOption,
    verbose: bool = VerboseOption,
):
    """Let the LLM write brand-neutral search queries for keywords."""
    _setup(format, verbose=verbose)

    with _command_errors(verbose):
        runtime_config = load_config(config)
        settings = runtime_config.run_settings
        if db is not None:
            settings = settings.model_copy(update={"sqlite_db_path": str(db)})

        with RecordStore(settings.sqlite_db_path) as store:
            project = store.get_project(project_id)
            model = runtime_config.generation_model
            client = build_client(
                model.provider,
                model.model_name,
                model.api_key,
                system_prompt=generation_system_prompt(project.language),
                temperature=GENERATION_TEMPERATURE,
                max_tokens=GENERATION_MAX_TOKENS,
            )

            with spinner(f"Generating queries with {model.model_name}..."):
                generated = asyncio.run(
                    generate_queries(
                        client,
                        project.brand,
                        list(project.competitors),
                        keyword,
                        project.language,
                    )
                )

            for key, queries in generated.items():
                success(f"{key}: {len(queries)} queries")
                for query in queries:
                    info(f"  {query}")

            if output_mode.is_agent():
                output_mode.add_json("queries", generated)

            if apply:
                counts = apply_generated_queries(store, project_id, generated)
                success(f"Added queries to {len(counts)} topics")
                if output_mode.is_agent():
                    output_mode.add_json("topics", counts)

    _exit(EXIT_SUCCESS)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
    ),
):
    """
    LLM Visibility Tracker - See where your brand ranks in LLM answers.

    Track how often and how early language models mention your brand
    compared to competitors, per topic, over time.

    Use 'llm-visibility COMMAND --help' for detailed command documentation.
    """
    if version:
        from rich.console import Console

        console = Console()
        console.print(
            f"[bold cyan]llm-visibility[/bold cyan] version {_read_version()}"
        )
        raise typer.Exit(EXIT_SUCCESS)

    if ctx.invoked_subcommand is None:
        from rich.console import Console

        console = Console()
        console.print("[yellow]No command given; see --help[/yellow]")
        console.print()
        console.print("Quick start:")
        console.print("  llm-visibility init --config visibility.config.yaml")
        console.print("  llm-visibility sync --config visibility.config.yaml")
        console.print("  llm-visibility analyze <project> --config visibility.config.yaml")


def _read_version() -> str:
    """Read version from package metadata (pyproject.toml)."""
    from importlib.metadata import PackageNotFoundError, version

    try:
        return version("llm-visibility-tracker")
    except PackageNotFoundError:
        return "0.1.0"


if __name__ == "__main__":
    app()
