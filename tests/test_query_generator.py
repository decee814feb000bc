"""
Tests for query_generator module.

Tests cover:
- Prompt construction (language, keywords, brand exclusion rules)
- Parsing of the model's JSON answer, with and without code fences
- Rejection of malformed answers
- Storing generated queries as topics
"""

import json

import pytest

from llm_visibility.exceptions import QueryGenerationError
from llm_visibility.llm_runner.mock_client import MockLLMClient
from llm_visibility.query_generator import (
    apply_generated_queries,
    build_generation_prompt,
    generate_queries,
    generation_system_prompt,
    language_name,
    parse_generated_queries,
)


class TestPrompts:
    """Test suite for prompt construction."""

    def test_language_name(self):
        assert language_name("sv") == "Swedish"
        assert language_name("FI") == "Finnish"
        assert language_name("xx") == "English"

    def test_system_prompt_names_language(self):
        assert "Norwegian" in generation_system_prompt("no")

    def test_generation_prompt(self):
        prompt = build_generation_prompt(
            "Nike", ["Adidas", "Salomon"], ["trail shoes", "road shoes"], "da"
        )

        assert "Nike and its competitors (Adidas, Salomon)" in prompt
        assert "Keywords: trail shoes, road shoes" in prompt
        assert "Generate all queries in Danish" in prompt
        assert "DO NOT include any brand names" in prompt


class TestParseGeneratedQueries:
    """Test suite for parse_generated_queries()."""

    def test_plain_json(self):
        text = json.dumps({"trail shoes": ["Which shoes grip on wet rock?"]})

        assert parse_generated_queries(text) == {
            "trail shoes": ["Which shoes grip on wet rock?"]
        }

    def test_code_fence_stripped(self):
        text = '```json\n{"trail shoes": ["q1", "q2"]}\n```'

        assert parse_generated_queries(text) == {"trail shoes": ["q1", "q2"]}

    def test_blank_and_duplicate_queries_dropped(self):
        text = json.dumps({"k": [" q1 ", "q1", "", "q2"]})

        assert parse_generated_queries(text) == {"k": ["q1", "q2"]}

    def test_missing_keyword_logged(self, caplog):
        parse_generated_queries(json.dumps({"a": ["q"]}), ["a", "b"])

        assert "['b']" in caplog.text

    @pytest.mark.parametrize(
        "text,message",
        [
            ("not json", "not valid JSON"),
            ('["q1", "q2"]', "must be a JSON object"),
            ('{"k": "q1"}', "list of strings"),
            ('{"k": [1, 2]}', "list of strings"),
        ],
    )
    def test_malformed_answers(self, text, message):
        with pytest.raises(QueryGenerationError, match=message):
            parse_generated_queries(text)


class TestGenerateQueries:
    """Test suite for generate_queries()."""

    @pytest.mark.asyncio
    async def test_generates_from_model_answer(self):
        client = MockLLMClient(default_response='{"trail shoes": ["q1", "q2"]}')

        generated = await generate_queries(
            client, "Nike", ["Adidas"], ["trail shoes", " "], "en"
        )

        assert generated == {"trail shoes": ["q1", "q2"]}
        assert len(client.calls) == 1
        assert "Keywords: trail shoes\n" in client.calls[0]

    @pytest.mark.asyncio
    async def test_requires_keywords(self):
        with pytest.raises(ValueError, match="keyword"):
            await generate_queries(MockLLMClient(), "Nike", [], ["  "])

    @pytest.mark.asyncio
    async def test_requires_brand(self):
        with pytest.raises(ValueError, match="brand"):
            await generate_queries(MockLLMClient(), " ", [], ["shoes"])

    @pytest.mark.asyncio
    async def test_unparseable_answer(self):
        client = MockLLMClient(default_response="Sure! Here are some queries.")

        with pytest.raises(QueryGenerationError):
            await generate_queries(client, "Nike", [], ["shoes"])


class TestApplyGeneratedQueries:
    """Test suite for apply_generated_queries()."""

    def test_creates_and_extends_topics(self, store, project):
        store.add_topic(project.id, "trail shoes", ["q1"])

        counts = apply_generated_queries(
            store, project.id, {"trail shoes": ["q1", "q2"], "road shoes": ["r1"]}
        )

        assert counts == {"trail shoes": 2, "road shoes": 1}
        assert store.get_topic(project.id, "road shoes").queries == ("r1",)
