"""
LLM runner module: clients and the analysis orchestration.

Public API:
    - LLMClient: Protocol every client implements
    - LLMResponse: Structured answer with token metadata
    - build_client: Factory for "openai" and "mock" providers
    - run_analysis: Run a project's query battery and store the results
"""

from llm_visibility.llm_runner.models import LLMClient, LLMResponse, build_client
from llm_visibility.llm_runner.runner import run_analysis

__all__ = [
    "LLMClient",
    "LLMResponse",
    "build_client",
    "run_analysis",
]
