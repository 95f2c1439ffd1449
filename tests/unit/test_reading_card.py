"""
Unit tests for reading cards.
"""

import asyncio
import json

import pytest

from arcana.exceptions import ReadingCardError
from arcana.intelligence.reading_card import (
    ReadingCard,
    ReadingCardWriter,
    parse_reading_card,
)
from arcana.llm.clients import BaseLLMClient, LLMProvider


DUNE_CARD = {
    "summary": "Paul Atreides follows his family to the desert planet Arrakis.",
    "themes": ["Power", "Ecology", "Religion"],
    "discussionQuestions": ["Why do the Fremen trust Paul?"],
    "readingLevel": "Teen",
}


class ScriptedClient(BaseLLMClient):
    """LLM client answering with a fixed text, optionally after a delay."""

    provider = LLMProvider.OPENAI

    def __init__(self, answer="{}", delay=0.0, api_key="test-key"):
        super().__init__(api_key)
        self.answer = answer
        self.delay = delay
        self.prompts = []

    async def generate(self, prompt, image=None, mime_type=None):
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.answer


class TestParseReadingCard:
    """Tests for reading card parsing."""

    def test_camel_case_answer(self):
        card = parse_reading_card(json.dumps(DUNE_CARD))

        assert card.summary.startswith("Paul Atreides")
        assert card.themes == ["Power", "Ecology", "Religion"]
        assert card.discussion_questions == ["Why do the Fremen trust Paul?"]
        assert card.reading_level == "Teen"

    def test_fenced_answer(self):
        card = parse_reading_card(f"```json\n{json.dumps(DUNE_CARD)}\n```")

        assert card.reading_level == "Teen"

    def test_optional_fields_default(self):
        card = parse_reading_card('{"summary": "A short book."}')

        assert card.themes == []
        assert card.discussion_questions == []
        assert card.reading_level is None

    def test_serializes_with_camel_case(self):
        card = ReadingCard.model_validate(DUNE_CARD)

        assert card.model_dump(by_alias=True) == DUNE_CARD

    @pytest.mark.parametrize("text", [
        "Here is your card!",
        "[]",
        '{"themes": ["Power"]}',
        '{"summary": "   "}',
    ])
    def test_unusable_answers_raise(self, text):
        with pytest.raises(ReadingCardError) as exc_info:
            parse_reading_card(text)

        assert exc_info.value.code == "READING_CARD_FAILED"
        assert exc_info.value.status_code == 502


@pytest.mark.asyncio
class TestReadingCardWriter:
    """Tests for ReadingCardWriter."""

    async def test_prompt_names_the_book(self):
        client = ScriptedClient(answer=json.dumps(DUNE_CARD))
        writer = ReadingCardWriter(client)

        card = await writer.write("Dune", "Frank Herbert")

        assert card.themes == ["Power", "Ecology", "Religion"]
        [prompt] = client.prompts
        assert "Title: Dune" in prompt
        assert "Author: Frank Herbert" in prompt

    async def test_missing_api_key(self):
        client = ScriptedClient(api_key=None)
        writer = ReadingCardWriter(client)

        with pytest.raises(ReadingCardError, match="not configured"):
            await writer.write("Dune", "Frank Herbert")

        assert client.prompts == []

    async def test_timeout(self):
        writer = ReadingCardWriter(ScriptedClient(delay=1.0), timeout=0.01)

        with pytest.raises(ReadingCardError, match="timed out"):
            await writer.write("Dune", "Frank Herbert")

    async def test_bad_json(self):
        writer = ReadingCardWriter(ScriptedClient(answer="I don't know this book."))

        with pytest.raises(ReadingCardError):
            await writer.write("Dune", "Frank Herbert")
