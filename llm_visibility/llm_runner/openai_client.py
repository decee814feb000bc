"""
Async client for the OpenAI Chat Completions endpoint.

Each monitored query becomes one request: the configured system prompt plus
the query as the user message. Rate limits, 5xx responses and network errors
are retried by the decorator from retry_config; whatever still fails is
raised as an LLMProviderError subclass the runner can log per query.
The API key goes into the Authorization header and nowhere else.

Example:
    >>> from llm_visibility.llm_runner.openai_client import OpenAIClient
    >>> client = OpenAIClient("gpt-3.5-turbo", api_key="sk-...",
    ...     system_prompt="You are a helpful assistant.")
    >>> response = await client.generate_answer("What are the best running shoes?")
    >>> response.tokens_used
"""

import logging
from typing import Any

import httpx

from llm_visibility.config.constants import (
    DEFAULT_MAX_TOKENS,
    DEFAULT_TEMPERATURE,
    MAX_PROMPT_LENGTH,
)
from llm_visibility.exceptions import (
    LLMAuthenticationError,
    LLMProviderError,
    LLMRateLimitError,
    LLMResponseError,
    LLMTimeoutError,
)
from llm_visibility.llm_runner.models import LLMResponse
from llm_visibility.llm_runner.retry_config import (
    NO_RETRY_STATUS_CODES,
    REQUEST_TIMEOUT,
    create_retry_decorator,
)
from llm_visibility.utils.time import utc_timestamp

OPENAI_API_URL = "https://api.openai.com/v1/chat/completions"

logger = logging.getLogger(__name__)


class OpenAIClient:
    """
    Chat Completions client used for the "openai" provider.

    Attributes:
        model_name: OpenAI model id, e.g. "gpt-3.5-turbo"
        api_key: Bearer token for the API
        system_prompt: System message sent with every request
        temperature: Sampling temperature
        max_tokens: Completion token cap per answer

    Up to three attempts with exponential backoff for 429, 5xx, connect
    errors and timeouts; 400, 401, 403 and 404 fail on the first attempt.
    """

    def __init__(
        self,
        model_name: str,
        api_key: str,
        system_prompt: str,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        timeout: float = REQUEST_TIMEOUT,
    ):
        """
        Raises:
            ValueError: If model_name, api_key, or system_prompt is empty
        """
        if not model_name or model_name.isspace():
            raise ValueError("model_name cannot be empty")

        if not api_key or api_key.isspace():
            raise ValueError("api_key cannot be empty")

        if not system_prompt or system_prompt.isspace():
            raise ValueError("system_prompt cannot be empty")

        self.model_name = model_name
        self.api_key = api_key
        self.system_prompt = system_prompt
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout

        logger.info(f"Initialized OpenAI client for model: {model_name}")

    async def generate_answer(self, prompt: str) -> LLMResponse:
        """
        Send one prompt to the Chat Completions API and return the answer.

        Args:
            prompt: User query to send to the LLM

        Returns:
            LLMResponse: Answer text plus token usage metadata

        Raises:
            ValueError: If prompt is empty or exceeds MAX_PROMPT_LENGTH
            LLMAuthenticationError: API key rejected (401/403)
            LLMRateLimitError: Still rate limited after all retries
            LLMTimeoutError: Request timed out on every attempt
            LLMResponseError: Malformed body or non-retryable HTTP error
            LLMProviderError: Network failure after all retries
        """
        if not prompt or prompt.isspace():
            raise ValueError("Prompt cannot be empty")

        if len(prompt) > MAX_PROMPT_LENGTH:
            raise ValueError(
                f"Prompt exceeds maximum length of {MAX_PROMPT_LENGTH:,} characters "
                f"(received {len(prompt):,} characters)."
            )

        payload = {
            "model": self.model_name,
            "messages": [
                {"role": "system", "content": self.system_prompt},
                {"role": "user", "content": prompt},
            ],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }

        logger.debug(f"POST chat completion: model={self.model_name}")

        try:
            response = await self._send_request(payload)

        except httpx.HTTPStatusError as e:
            error_detail = self._extract_error_detail(e.response)
            logger.error(
                f"OpenAI request failed after retries: "
                f"status={e.response.status_code}, model={self.model_name}, "
                f"detail={error_detail}"
            )
            if e.response.status_code == 429:
                raise LLMRateLimitError(
                    f"OpenAI rate limit exceeded for model={self.model_name}: "
                    f"{error_detail}"
                ) from e
            raise LLMResponseError(
                f"OpenAI API error: status={e.response.status_code}, "
                f"model={self.model_name}, detail={error_detail}"
            ) from e

        except httpx.TimeoutException as e:
            logger.error(f"OpenAI request timed out: model={self.model_name}")
            raise LLMTimeoutError(
                f"OpenAI request timed out after {self.timeout}s "
                f"(model={self.model_name})"
            ) from e

        except httpx.HTTPError as e:
            logger.error(f"OpenAI unreachable: model={self.model_name}, error={e}")
            raise LLMProviderError(
                f"Could not reach OpenAI API (model={self.model_name}): {e}"
            ) from e

        try:
            data = response.json()
        except ValueError as e:
            raise LLMResponseError(f"Failed to parse OpenAI response JSON: {e}") from e

        answer_text = self._extract_answer_text(data)
        tokens_used, prompt_tokens, completion_tokens = self._extract_token_usage(data)

        return LLMResponse(
            answer_text=answer_text,
            provider="openai",
            model_name=self.model_name,
            timestamp_utc=utc_timestamp(),
            tokens_used=tokens_used,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
        )

    @create_retry_decorator()
    async def _send_request(self, payload: dict[str, Any]) -> httpx.Response:
        """
        POST the payload, retrying transient failures.

        Non-retryable status codes raise typed errors straight away; retryable
        ones raise httpx.HTTPStatusError so the retry decorator sees them.
        """
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(OPENAI_API_URL, json=payload, headers=headers)

        if response.status_code in NO_RETRY_STATUS_CODES:
            error_detail = self._extract_error_detail(response)
            logger.error(
                f"OpenAI rejected the request: status={response.status_code}, "
                f"model={self.model_name}, detail={error_detail}"
            )
            if response.status_code in (401, 403):
                raise LLMAuthenticationError(
                    f"OpenAI rejected the API key (status={response.status_code}): "
                    f"{error_detail}"
                )
            raise LLMResponseError(
                f"OpenAI API error: status={response.status_code}, "
                f"model={self.model_name}, detail={error_detail}"
            )

        # 429 and 5xx become HTTPStatusError for the retry decorator
        response.raise_for_status()
        return response

    def _extract_answer_text(self, data: dict[str, Any]) -> str:
        """
        Extract the first choice's message content.

        Raises:
            LLMResponseError: If choices are missing or the content is empty
        """
        if not isinstance(data, dict):
            raise LLMResponseError("OpenAI response is not a JSON object")

        choices = data.get("choices")
        if not choices:
            raise LLMResponseError("OpenAI response missing 'choices' field")

        try:
            content = choices[0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise LLMResponseError(f"Invalid OpenAI response structure: {e}") from e

        if not isinstance(content, str) or not content.strip():
            raise LLMResponseError("OpenAI response contained no answer text")

        return content

    def _extract_token_usage(self, data: dict[str, Any]) -> tuple[int, int, int]:
        """
        Returns:
            (total_tokens, prompt_tokens, completion_tokens), zeros if unavailable
        """
        usage = data.get("usage")
        if not usage or not isinstance(usage, dict):
            logger.debug(f"OpenAI response missing 'usage' data for model={self.model_name}")
            return 0, 0, 0

        return (
            int(usage.get("total_tokens") or 0),
            int(usage.get("prompt_tokens") or 0),
            int(usage.get("completion_tokens") or 0),
        )

    def _extract_error_detail(self, response: httpx.Response) -> str:
        """
        error.message from an API error body, or "HTTP <status>" without one.
        """
        try:
            error = response.json().get("error", {})
            return str(error.get("message", "Unknown error"))
        except (ValueError, AttributeError):
            return f"HTTP {response.status_code}"
