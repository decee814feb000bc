"""
Configuration constants for LLM Visibility Tracker.

This module contains global constants used across the application
to avoid tight coupling between modules.
"""

# Maximum prompt length to prevent excessive API costs
# ~25k tokens at 4 chars/token average
MAX_PROMPT_LENGTH = 100_000

# Default system prompt for answering monitored queries
DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful assistant that analyzes text to identify mentions "
    "of specific brands."
)

DEFAULT_MODEL_NAME = "gpt-3.5-turbo"
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 500

# Per-query timeout; must stay under the 300s hosting ceiling for one batch step
DEFAULT_REQUEST_TIMEOUT_SECONDS = 60.0
MAX_REQUEST_TIMEOUT_SECONDS = 280.0

DEFAULT_MAX_CONCURRENT_REQUESTS = 5

# Language tags accepted for query generation, mapped to prompt language names
SUPPORTED_LANGUAGES: dict[str, str] = {
    "en": "English",
    "sv": "Swedish",
    "no": "Norwegian",
    "da": "Danish",
    "fi": "Finnish",
}
