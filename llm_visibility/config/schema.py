"""
Configuration schema models for LLM Visibility Tracker.

Pydantic models for visibility.config.yaml. The file models reject bad
input at load time; the runtime models carry resolved API keys.

Models:
    ModelConfig: LLM model configuration (provider, model_name, env_api_key)
    RunSettings: Runtime settings (database path, output dir, concurrency, timeout)
    TopicSeed: Topic with queries to create for a seeded project
    ProjectSeed: Project definition to create from the config file
    TrackerConfig: Root configuration model (validates entire YAML)
    RuntimeModel: Resolved model configuration with API key
    RuntimeConfig: Loaded settings plus the resolved model
"""

from typing import Literal

from pydantic import BaseModel, field_validator, model_validator

from llm_visibility.config.constants import (
    DEFAULT_MAX_CONCURRENT_REQUESTS,
    DEFAULT_MAX_TOKENS,
    DEFAULT_MODEL_NAME,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_SYSTEM_PROMPT,
    DEFAULT_TEMPERATURE,
    MAX_REQUEST_TIMEOUT_SECONDS,
)


def _require_text(value: str, field_name: str) -> str:
    if not value or value.isspace():
        raise ValueError(f"{field_name} cannot be empty")
    return value.strip()


class ModelConfig(BaseModel):
    """
    LLM model configuration from visibility.config.yaml.

    Which model answers the queries and which env var holds its key.

    Attributes:
        provider: "openai" or "mock" (offline, canned answers)
        model_name: Specific model identifier (e.g., "gpt-3.5-turbo")
        env_api_key: Environment variable name containing the API key
                     (required for openai, ignored for mock)
        system_prompt: Optional system message; defaults to the brand analysis prompt
        temperature: Sampling temperature (0.0 - 2.0)
        max_tokens: Completion token cap per answer
    """

    provider: Literal["openai", "mock"] = "openai"
    model_name: str = DEFAULT_MODEL_NAME
    env_api_key: str | None = None
    system_prompt: str | None = None
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: int = DEFAULT_MAX_TOKENS

    @field_validator("model_name")
    @classmethod
    def validate_model_name(cls, v: str) -> str:
        """Reject blank model names."""
        return _require_text(v, "model_name")

    @field_validator("temperature")
    @classmethod
    def validate_temperature(cls, v: float) -> float:
        if not 0.0 <= v <= 2.0:
            raise ValueError(f"temperature must be between 0.0 and 2.0 (got: {v})")
        return v

    @field_validator("max_tokens")
    @classmethod
    def validate_max_tokens(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"max_tokens must be at least 1 (got: {v})")
        return v

    @model_validator(mode="after")
    def validate_api_key_source(self) -> "ModelConfig":
        """OpenAI models need an environment variable to read the key from."""
        if self.provider == "openai" and (
            not self.env_api_key or self.env_api_key.isspace()
        ):
            raise ValueError("env_api_key is required for provider 'openai'")
        return self


class RunSettings(BaseModel):
    """
    Runtime settings for analysis runs.

    Attributes:
        sqlite_db_path: Path to SQLite database holding projects, topics and history
        output_dir: Directory for HTML reports and exports
        max_concurrent_requests: Maximum number of parallel LLM requests (1-50)
        request_timeout_seconds: Per-query timeout; kept under the 300s
                                 hosting ceiling (max 280)
    """

    sqlite_db_path: str = "./data/visibility.db"
    output_dir: str = "./output"
    max_concurrent_requests: int = DEFAULT_MAX_CONCURRENT_REQUESTS
    request_timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS

    @field_validator("sqlite_db_path")
    @classmethod
    def validate_sqlite_db_path(cls, v: str) -> str:
        """Validate sqlite_db_path is non-empty."""
        return _require_text(v, "sqlite_db_path")

    @field_validator("output_dir")
    @classmethod
    def validate_output_dir(cls, v: str) -> str:
        """Validate output_dir is non-empty."""
        return _require_text(v, "output_dir")

    @field_validator("max_concurrent_requests")
    @classmethod
    def validate_max_concurrent_requests(cls, v: int) -> int:
        """Keep max_concurrent_requests in 1..50."""
        if not 1 <= v <= 50:
            raise ValueError(
                f"max_concurrent_requests must be between 1 and 50 (got: {v})"
            )
        return v

    @field_validator("request_timeout_seconds")
    @classmethod
    def validate_request_timeout_seconds(cls, v: float) -> float:
        if not 0 < v <= MAX_REQUEST_TIMEOUT_SECONDS:
            raise ValueError(
                f"request_timeout_seconds must be between 0 and "
                f"{MAX_REQUEST_TIMEOUT_SECONDS:g} (got: {v})"
            )
        return v


class TopicSeed(BaseModel):
    """Topic to create (or extend) when syncing a project from config."""

    name: str
    queries: list[str] = []

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _require_text(v, "Topic name")

    @field_validator("queries")
    @classmethod
    def validate_queries(cls, v: list[str]) -> list[str]:
        """Remove empty/whitespace-only queries."""
        return [q.strip() for q in v if q and not q.isspace()]


class ProjectSeed(BaseModel):
    """
    Project definition in visibility.config.yaml.

    Attributes:
        id: Optional explicit project id; defaults to the slug of the name
        name: Display name
        brand: Primary brand
        competitors: Competitor brands
        language: Prompt language tag (en, sv, no, da, fi)
        topics: Topics with their queries

    Example:
        projects:
          - name: "Acme Shoes"
            brand: "Acme"
            competitors: ["Nike", "Adidas"]
            topics:
              - name: "Running shoes"
                queries:
                  - "What are the best running shoes?"
    """

    id: str | None = None
    name: str
    brand: str
    competitors: list[str] = []
    language: str = "en"
    topics: list[TopicSeed] = []

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _require_text(v, "Project name")

    @field_validator("brand")
    @classmethod
    def validate_brand(cls, v: str) -> str:
        return _require_text(v, "brand")

    @field_validator("competitors")
    @classmethod
    def validate_competitors(cls, v: list[str]) -> list[str]:
        """Remove empty/whitespace-only entries, keeping configured order."""
        return [b.strip() for b in v if b and not b.isspace()]

    @field_validator("language")
    @classmethod
    def validate_language(cls, v: str) -> str:
        return _require_text(v, "language").lower()

    @model_validator(mode="after")
    def validate_unique_topics(self) -> "ProjectSeed":
        """Topic names must be unique within a project (case-insensitive)."""
        seen: set[str] = set()
        for topic in self.topics:
            key = topic.name.casefold()
            if key in seen:
                raise ValueError(
                    f"Duplicate topic '{topic.name}' in project '{self.name}'"
                )
            seen.add(key)
        return self


class TrackerConfig(BaseModel):
    """
    Root configuration model for visibility.config.yaml.

    Attributes:
        run_settings: Database path, output dir, concurrency and timeout
        model: Model used to answer monitored queries
        query_generation_model: Optional separate model for query generation;
                                defaults to ``model``
        projects: Optional projects to seed with ``llm-visibility sync``
    """

    run_settings: RunSettings = RunSettings()
    model: ModelConfig
    query_generation_model: ModelConfig | None = None
    projects: list[ProjectSeed] = []

    @model_validator(mode="after")
    def validate_unique_projects(self) -> "TrackerConfig":
        """Project names must be unique."""
        seen: set[str] = set()
        for project in self.projects:
            key = (project.id or project.name).casefold()
            if key in seen:
                raise ValueError(f"Duplicate project '{project.id or project.name}'")
            seen.add(key)
        return self


class RuntimeModel(BaseModel):
    """
    Resolved model configuration with API key and system prompt.

    Created at runtime after loading API keys from environment variables.
    This is what the runner uses to build its LLM client.

    Attributes:
        provider: LLM provider name
        model_name: Specific model identifier
        api_key: Resolved API key from environment (NEVER log this); None for mock
        system_prompt: System prompt text
        temperature: Sampling temperature
        max_tokens: Completion token cap
    """

    provider: str
    model_name: str
    api_key: str | None = None
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: int = DEFAULT_MAX_TOKENS

    @model_validator(mode="after")
    def validate_api_key(self) -> "RuntimeModel":
        """Validate API key is non-empty for real providers."""
        if self.provider != "mock" and (not self.api_key or self.api_key.isspace()):
            raise ValueError("API key cannot be empty")
        return self


class RuntimeConfig(BaseModel):
    """
    Settings after loading, with the model API key filled in.

    Created by config.loader after validating YAML and resolving
    environment variables.
    """

    run_settings: RunSettings
    model: RuntimeModel
    query_generation_model: RuntimeModel | None = None
    projects: list[ProjectSeed] = []

    @property
    def generation_model(self) -> RuntimeModel:
        """Model used for query generation."""
        return self.query_generation_model or self.model
