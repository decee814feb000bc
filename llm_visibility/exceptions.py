"""
Exception types raised by llm_visibility.

Library code raises these and never exits the process; the CLI catches them
by family and turns each family into an exit code.

Exception Hierarchy:
    VisibilityTrackerError (base)
    ├── ConfigurationError
    │   ├── ConfigFileNotFoundError
    │   ├── ConfigValidationError
    │   └── APIKeyMissingError
    ├── StorageError
    │   ├── DatabaseInitError
    │   ├── DatabaseMigrationError
    │   ├── RecordNotFoundError
    │   │   ├── ProjectNotFoundError
    │   │   └── TopicNotFoundError
    │   ├── DuplicateRecordError
    │   └── PersistenceError
    ├── LLMProviderError
    │   ├── LLMAuthenticationError
    │   ├── LLMRateLimitError
    │   ├── LLMTimeoutError
    │   └── LLMResponseError
    └── QueryGenerationError

Usage:
    from llm_visibility.exceptions import ProjectNotFoundError

    try:
        project = store.get_project(project_id)
    except ProjectNotFoundError as e:
        logger.error(f"Unknown project: {e}")
        raise typer.Exit(5)
"""


class VisibilityTrackerError(Exception):
    """Root of every error raised by this package."""

    pass


# Configuration Errors


class ConfigurationError(VisibilityTrackerError):
    """The configuration file or a command-line value is unusable (exit code 1)."""

    pass


class ConfigFileNotFoundError(ConfigurationError):
    """No configuration file at the given path."""

    pass


class ConfigValidationError(ConfigurationError):
    """
    YAML syntax error or a field that fails validation.

    The message names every offending field by its dotted location.

    Example:
        raise ConfigValidationError("Field 'run_settings' is required")
    """

    pass


class APIKeyMissingError(ConfigurationError):
    """An environment variable the configuration relies on is unset or blank."""

    pass


# Storage Errors


class StorageError(VisibilityTrackerError):
    """
    The SQLite record store failed or refused an operation.

    Exit code 2, except RecordNotFoundError (5) and DuplicateRecordError (1).
    """

    pass


class DatabaseInitError(StorageError):
    """The SQLite file could not be created or opened."""

    pass


class DatabaseMigrationError(StorageError):
    """A schema migration failed, or the database is newer than this release."""

    pass


class RecordNotFoundError(StorageError):
    """A requested project or topic does not exist."""

    pass


class ProjectNotFoundError(RecordNotFoundError):
    """
    No project exists with the given id.

    Example:
        raise ProjectNotFoundError("Project 'acme-shoes' not found")
    """

    def __init__(self, message: str, project_id: str | None = None):
        super().__init__(message)
        self.project_id = project_id


class TopicNotFoundError(RecordNotFoundError):
    """
    No topic with the given name exists in the project.

    Attributes:
        topic_name: The name that was looked up
        suggestion: Closest existing topic name, if any was similar enough

    Example:
        raise TopicNotFoundError(
            "Topic 'runing shoes' not found", topic_name="runing shoes",
            suggestion="running shoes",
        )
    """

    def __init__(
        self,
        message: str,
        topic_name: str | None = None,
        suggestion: str | None = None,
    ):
        if suggestion:
            message = f"{message} (did you mean '{suggestion}'?)"
        super().__init__(message)
        self.topic_name = topic_name
        self.suggestion = suggestion


class DuplicateRecordError(StorageError):
    """
    A record with the same unique key already exists.

    Raised for duplicate project ids and duplicate topic names within a project.
    """

    pass


class PersistenceError(StorageError):
    """
    A write to the record store failed.

    The transaction is rolled back before this is raised, so no partial
    record is left behind.
    """

    pass


# LLM Provider Errors


class LLMProviderError(VisibilityTrackerError):
    """
    A model call failed for good (retries, if any, are used up).

    During an analysis run these are caught per query: the query is logged
    and skipped, and the batch continues.
    """

    pass


class LLMAuthenticationError(LLMProviderError):
    """HTTP 401 or 403: the API key was rejected. Never retried."""

    pass


class LLMRateLimitError(LLMProviderError):
    """HTTP 429 on every attempt."""

    pass


class LLMTimeoutError(LLMProviderError):
    """No response in time, from the HTTP client or the per-query timeout."""

    pass


class LLMResponseError(LLMProviderError):
    """
    Any other unusable reply: a non-2xx status, a body that is not JSON,
    no choices, or empty answer text.
    """

    pass


# Query Generation Errors


class QueryGenerationError(VisibilityTrackerError):
    """
    Generated search queries could not be parsed.

    Raised when the model output is not a JSON object mapping each keyword
    to a list of query strings.
    """

    pass
