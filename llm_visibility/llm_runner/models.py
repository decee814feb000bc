"""
What the analysis runner needs from a language model: one async call that
turns a query into answer text. OpenAIClient talks to the real API,
MockLLMClient answers offline; build_client picks one from configuration.

Example:
    >>> from llm_visibility.llm_runner.models import build_client
    >>> client = build_client("openai", "gpt-3.5-turbo", api_key,
    ...     system_prompt="You are a helpful assistant.")
    >>> response = await client.generate_answer("What are the best running shoes?")
    >>> print(response.answer_text)
"""

from dataclasses import dataclass
from typing import Protocol

from llm_visibility.config.constants import DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE


@dataclass
class LLMResponse:
    """
    One answer returned by a model.

    Attributes:
        answer_text: Text searched for brand mentions
        provider: "openai" or "mock"
        model_name: Model that produced the answer
        timestamp_utc: When the answer arrived, ISO 8601 with 'Z'
        tokens_used: prompt_tokens + completion_tokens; 0 when not reported
    """

    answer_text: str
    provider: str
    model_name: str
    timestamp_utc: str
    tokens_used: int = 0
    prompt_tokens: int = 0
    completion_tokens: int = 0


class LLMClient(Protocol):
    """
    Anything with an async generate_answer(prompt) method.

    Clients retry transient failures themselves and report what is left as
    LLMProviderError subclasses; the runner treats any exception as a failed
    query.
    """

    async def generate_answer(self, prompt: str) -> LLMResponse:
        """
        Send one query and return the answer.

        Raises:
            ValueError: If the prompt is empty or too long
            LLMProviderError: On permanent failures or after all retry
                attempts are exhausted
        """
        ...


def build_client(
    provider: str,
    model_name: str,
    api_key: str | None,
    system_prompt: str,
    temperature: float = DEFAULT_TEMPERATURE,
    max_tokens: int = DEFAULT_MAX_TOKENS,
) -> LLMClient:
    """
    Client for a configured provider: "openai" or "mock".

    The mock client ignores api_key, the system prompt and sampling settings.

    Raises:
        ValueError: For any other provider, or openai without an API key
    """
    if provider == "openai":
        from llm_visibility.llm_runner.openai_client import OpenAIClient

        return OpenAIClient(
            model_name=model_name,
            api_key=api_key or "",
            system_prompt=system_prompt,
            temperature=temperature,
            max_tokens=max_tokens,
        )

    if provider == "mock":
        from llm_visibility.llm_runner.mock_client import MockLLMClient

        return MockLLMClient(model_name=model_name)

    raise ValueError(
        f"Unsupported provider '{provider}' (expected openai or mock)"
    )
