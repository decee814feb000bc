"""
Configuration loader for LLM Visibility Tracker.

Reading visibility.config.yaml happens in two stages. load_tracker_config
parses and validates the file into a TrackerConfig, which holds only the
*names* of the environment variables carrying API keys. load_config then
reads those variables and returns a RuntimeConfig. Keys therefore never live
in the YAML file, and database-only commands run without any credentials.

Functions:
    load_tracker_config: Load and validate the YAML without touching API keys
    load_config: Main entrypoint; validates and resolves API keys
    resolve_model: Resolve one model's API key from the environment
"""

import logging
import os
import re
from pathlib import Path

import yaml
from pydantic import ValidationError

from llm_visibility.config.constants import DEFAULT_SYSTEM_PROMPT
from llm_visibility.config.schema import (
    ModelConfig,
    RuntimeConfig,
    RuntimeModel,
    TrackerConfig,
)
from llm_visibility.exceptions import (
    APIKeyMissingError,
    ConfigFileNotFoundError,
    ConfigValidationError,
)

logger = logging.getLogger(__name__)

# ${NAME} placeholders, upper-case names only
ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)\}")


def load_tracker_config(config_path: str | Path) -> TrackerConfig:
    """
    Load visibility.config.yaml and validate its structure.

    ``${ENV_VAR}`` references anywhere in the file are substituted before
    validation. API keys named by ``env_api_key`` are NOT resolved here, so
    commands that only touch the database work without credentials.

    Raises:
        ConfigFileNotFoundError: No file at config_path
        ConfigValidationError: Unreadable file, bad YAML or failed validation;
            the message lists every offending field
        APIKeyMissingError: A ``${ENV_VAR}`` placeholder names an unset variable
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise ConfigFileNotFoundError(f"Configuration file not found: {config_path}")

    try:
        with config_path.open(encoding="utf-8") as f:
            raw_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigValidationError(f"Invalid YAML syntax in {config_path}: {e}") from e
    except OSError as e:
        raise ConfigValidationError(
            f"Failed to read configuration file {config_path}: {e}"
        ) from e

    if raw_config is None:
        raise ConfigValidationError(f"Configuration file is empty: {config_path}")

    if not isinstance(raw_config, dict):
        raise ConfigValidationError(
            f"Configuration root must be a mapping in {config_path}"
        )

    raw_config = _resolve_env_vars_recursive(raw_config)

    try:
        tracker_config = TrackerConfig.model_validate(raw_config)
    except ValidationError as e:
        problems = []
        for err in e.errors():
            location = ".".join(str(part) for part in err["loc"]) or "<root>"
            problems.append(f"  - {location}: {err['msg']}")
        raise ConfigValidationError(
            f"{config_path} is not a valid configuration:\n" + "\n".join(problems)
        ) from e

    logger.debug(
        "Configuration validated",
        extra={
            "context": {
                "path": str(config_path),
                "projects": len(tracker_config.projects),
            }
        },
    )
    return tracker_config


def load_config(config_path: str | Path) -> RuntimeConfig:
    """
    Load the configuration and read the API keys its models need.

    Commands that call an LLM use this; everything else can make do with
    load_tracker_config. Raises the same errors as load_tracker_config, plus
    APIKeyMissingError when a model's key variable is unset.
    """
    tracker_config = load_tracker_config(config_path)

    model = resolve_model(tracker_config.model)
    generation_model = None
    if tracker_config.query_generation_model is not None:
        generation_model = resolve_model(tracker_config.query_generation_model)

    return RuntimeConfig(
        run_settings=tracker_config.run_settings,
        model=model,
        query_generation_model=generation_model,
        projects=tracker_config.projects,
    )


def resolve_model(model_config: ModelConfig) -> RuntimeModel:
    """
    Resolve a model's API key and system prompt for runtime use.

    The mock provider needs no key.

    Raises:
        APIKeyMissingError: If the environment variable is not set or blank
    """
    api_key = None
    if model_config.provider != "mock":
        env_var_name = model_config.env_api_key
        api_key = os.environ.get(env_var_name or "")

        if not api_key:
            raise APIKeyMissingError(
                f"{model_config.provider}/{model_config.model_name} needs an API key in "
                f"${env_var_name}, which is not set"
            )

        if api_key.isspace():
            raise APIKeyMissingError(
                f"${env_var_name} is empty or whitespace "
                f"(API key for {model_config.provider}/{model_config.model_name})"
            )

    return RuntimeModel(
        provider=model_config.provider,
        model_name=model_config.model_name,
        api_key=api_key,
        system_prompt=model_config.system_prompt or DEFAULT_SYSTEM_PROMPT,
        temperature=model_config.temperature,
        max_tokens=model_config.max_tokens,
    )


def _resolve_env_vars_recursive(obj):
    """
    Substitute ${NAME} placeholders in every string of a parsed YAML tree.

    Raises:
        APIKeyMissingError: If a placeholder names an unset variable
    """
    if isinstance(obj, dict):
        return {key: _resolve_env_vars_recursive(value) for key, value in obj.items()}

    if isinstance(obj, list):
        return [_resolve_env_vars_recursive(item) for item in obj]

    if isinstance(obj, str):

        def substitute(match: re.Match) -> str:
            name = match.group(1)
            if name not in os.environ:
                raise APIKeyMissingError(
                    f"Configuration references ${{{name}}}, which is not set"
                )
            return os.environ[name]

        return ENV_VAR_PATTERN.sub(substitute, obj)

    return obj
