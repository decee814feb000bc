"""
Mock LLM client for offline runs and testing.

MockLLMClient answers prompts from a lookup table instead of the network.
It backs the "mock" provider and keeps pipeline tests deterministic.

Example:
    >>> from llm_visibility.llm_runner.mock_client import MockLLMClient
    >>> client = MockLLMClient(
    ...     responses={"best running shoes": "Nike and Adidas lead the pack."}
    ... )
    >>> response = await client.generate_answer("best running shoes")
    >>> response.answer_text
    'Nike and Adidas lead the pack.'
"""

import asyncio
import logging
from dataclasses import dataclass, field

from llm_visibility.llm_runner.models import LLMResponse
from llm_visibility.utils.time import utc_timestamp

logger = logging.getLogger(__name__)


@dataclass
class MockLLMClient:
    """
    Mock LLM client that implements the LLMClient protocol.

    Attributes:
        responses: Prompt -> answer. Prompts not listed get default_response.
        default_response: Answer for unlisted prompts
        errors: Prompt -> exception to raise instead of answering
        delay_seconds: Simulated latency per call
        model_name: Model identifier reported in responses
        provider: Provider name reported in responses
        tokens_per_response: Token count reported for each response
        calls: Prompts received, in call order

    Example:
        >>> from llm_visibility.exceptions import LLMTimeoutError
        >>> client = MockLLMClient(
        ...     responses={"q1": "Nike first."},
        ...     errors={"q2": LLMTimeoutError("timed out")},
        ... )
    """

    responses: dict[str, str] = field(default_factory=dict)
    default_response: str = "Mock LLM response."
    errors: dict[str, Exception] = field(default_factory=dict)
    delay_seconds: float = 0.0
    model_name: str = "mock-model"
    provider: str = "mock"
    tokens_per_response: int = 100
    calls: list[str] = field(default_factory=list)

    def __post_init__(self):
        logger.info(
            f"Mock client ready ({len(self.responses)} canned answers)"
        )

    async def generate_answer(self, prompt: str) -> LLMResponse:
        """
        Return the configured answer for a prompt, or raise its configured error.

        Raises:
            Exception: Whatever is configured for the prompt in ``errors``
        """
        self.calls.append(prompt)

        if self.delay_seconds > 0:
            await asyncio.sleep(self.delay_seconds)

        if prompt in self.errors:
            raise self.errors[prompt]

        answer_text = self.responses.get(prompt, self.default_response)
        logger.debug(f"Mock answer for: {prompt[:50]}")

        return LLMResponse(
            answer_text=answer_text,
            provider=self.provider,
            model_name=self.model_name,
            timestamp_utc=utc_timestamp(),
            tokens_used=self.tokens_per_response,
            prompt_tokens=self.tokens_per_response // 2,
            completion_tokens=self.tokens_per_response // 2,
        )
