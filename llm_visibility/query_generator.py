"""
Brand-neutral search query generation.

Asks an LLM to write realistic search queries for a set of keywords, without
naming the monitored brand or its competitors, so that later analysis runs
measure where brands surface on their own.

The model is expected to answer with a JSON object mapping each keyword to a
list of queries::

    {"trail running shoes": ["Which trail shoes grip best on wet rock?", ...]}

Example:
    >>> client = build_client("openai", "gpt-4", api_key,
    ...     system_prompt=generation_system_prompt("sv"), temperature=0.8)
    >>> queries = await generate_queries(client, "Acme", ["Nike"], ["löparskor"], "sv")
"""

import json
import logging
import re
from collections.abc import Sequence

from llm_visibility.config.constants import SUPPORTED_LANGUAGES
from llm_visibility.exceptions import QueryGenerationError, TopicNotFoundError
from llm_visibility.llm_runner.models import LLMClient
from llm_visibility.storage.store import RecordStore

logger = logging.getLogger(__name__)

GENERATION_TEMPERATURE = 0.8
GENERATION_MAX_TOKENS = 2000

_CODE_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


def language_name(language: str) -> str:
    """Prompt language for a tag; unknown tags fall back to English."""
    return SUPPORTED_LANGUAGES.get(language.lower(), "English")


def generation_system_prompt(language: str) -> str:
    return (
        f"You are a multilingual search behavior expert. Generate brand-neutral "
        f"queries in {language_name(language)} that will help discover where "
        f"brands appear naturally in search results."
    )


def build_generation_prompt(
    brand: str, competitors: Sequence[str], keywords: Sequence[str], language: str
) -> str:
    """Build the user prompt asking for 8-10 brand-neutral queries per keyword."""
    name = language_name(language)
    return f"""Generate search queries that will help monitor market presence for {brand} and its competitors ({", ".join(competitors)}).
The goal is to find where these brands appear naturally in search results, so DO NOT include any brand names in the queries themselves.

Keywords: {", ".join(keywords)}
Language: Generate all queries in {name}

For each keyword, generate 8-10 detailed, brand-neutral queries that:
1. Address specific user problems and pain points
2. Compare features and capabilities
3. Ask about real-world performance and experiences
4. Seek technical specifications and details
5. Focus on specific use cases and scenarios
6. Question durability and reliability
7. Explore value for money

IMPORTANT RULES:
- Generate ALL queries in {name}
- DO NOT include any brand names in the queries
- DO NOT mention competitors in the queries
- Focus on generic, problem-focused searches
- Use industry-standard terminology
- Think about what users would search before knowing specific brands

Format the response as a JSON object where each keyword is a key and its value is an array of brand-neutral queries."""


def parse_generated_queries(
    text: str, keywords: Sequence[str] | None = None
) -> dict[str, list[str]]:
    """
    Parse the model's JSON answer into keyword -> queries.

    Markdown code fences around the JSON are tolerated. Blank and duplicate
    queries are dropped. When ``keywords`` is given, keywords the model left
    out are logged.

    Raises:
        QueryGenerationError: If the text is not a JSON object of string lists
    """
    cleaned = text.strip()
    fence = _CODE_FENCE.match(cleaned)
    if fence:
        cleaned = fence.group(1)

    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise QueryGenerationError(f"Generated queries are not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise QueryGenerationError(
            f"Generated queries must be a JSON object, got {type(data).__name__}"
        )

    generated: dict[str, list[str]] = {}
    for keyword, queries in data.items():
        if not isinstance(queries, list) or not all(
            isinstance(q, str) for q in queries
        ):
            raise QueryGenerationError(
                f"Queries for keyword '{keyword}' must be a list of strings"
            )
        unique: list[str] = []
        for query in queries:
            query = query.strip()
            if query and query not in unique:
                unique.append(query)
        generated[str(keyword)] = unique

    if keywords:
        missing = [k for k in keywords if k not in generated]
        if missing:
            logger.warning(f"Model returned no queries for keywords: {missing}")

    return generated


async def generate_queries(
    client: LLMClient,
    brand: str,
    competitors: Sequence[str],
    keywords: Sequence[str],
    language: str = "en",
) -> dict[str, list[str]]:
    """
    Generate brand-neutral queries for each keyword.

    Raises:
        ValueError: If brand or keywords are missing
        QueryGenerationError: If the model's answer cannot be parsed
        LLMProviderError: If the LLM call fails
    """
    if not brand or brand.isspace():
        raise ValueError("brand cannot be empty")

    keywords = [k.strip() for k in keywords if k and not k.isspace()]
    if not keywords:
        raise ValueError("At least one keyword is required")

    prompt = build_generation_prompt(brand, competitors, keywords, language)
    logger.info(
        f"Generating queries for {len(keywords)} keywords in {language_name(language)}"
    )

    response = await client.generate_answer(prompt)
    return parse_generated_queries(response.answer_text, keywords)


def apply_generated_queries(
    store: RecordStore, project_id: str, generated: dict[str, list[str]]
) -> dict[str, int]:
    """
    Store generated queries as topics named after their keywords.

    Existing topics get the new queries appended; missing topics are created.

    Returns:
        Keyword -> number of queries in the topic afterwards
    """
    counts: dict[str, int] = {}

    for keyword, queries in generated.items():
        try:
            topic = store.add_queries(project_id, keyword, queries)
        except TopicNotFoundError:
            topic = store.add_topic(project_id, keyword, queries)
        counts[keyword] = len(topic.queries)

    return counts
