"""
Unit tests for shelf recognition.
"""

import asyncio
import json

import pytest

from arcana.exceptions import RecognitionError
from arcana.identification.recognizer import (
    ShelfRecognizer,
    create_recognizer,
    parse_stubs,
)
from arcana.llm.clients import (
    AnthropicClient,
    BaseLLMClient,
    GeminiClient,
    LLMProvider,
    OpenAIClient,
    create_llm_client,
)


class ScriptedClient(BaseLLMClient):
    """LLM client answering with a fixed text, optionally after a delay."""

    provider = LLMProvider.GOOGLE

    def __init__(self, answer="[]", delay=0.0, error=None, api_key="test-key", **kwargs):
        super().__init__(api_key, **kwargs)
        self.answer = answer
        self.delay = delay
        self.error = error
        self.calls = []

    async def generate(self, prompt, image=None, mime_type=None):
        self.calls.append((prompt, image, mime_type))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.answer


class TestParseStubs:
    """Tests for model answer parsing."""

    def test_plain_array(self):
        reading = parse_stubs(json.dumps([
            {"title": "Dune", "author": "Frank Herbert", "confidence": 0.92},
            {"title": "Hyperion", "author": "Dan Simmons", "confidence": 0.7, "isbn": "9780553283686"},
        ]))

        assert [s.title for s in reading.stubs] == ["Dune", "Hyperion"]
        assert reading.stubs[1].isbn == "9780553283686"
        assert reading.rejected == []
        assert reading.detected == 2

    def test_markdown_fences_are_stripped(self):
        text = '```json\n[{"title": "Dune", "author": "Frank Herbert", "confidence": 0.9}]\n```'

        reading = parse_stubs(text)

        assert len(reading.stubs) == 1
        assert reading.stubs[0].author == "Frank Herbert"

    def test_single_object_is_wrapped(self):
        reading = parse_stubs('{"title": "Dune", "author": "Frank Herbert", "confidence": 0.9}')

        assert len(reading.stubs) == 1

    def test_empty_array(self):
        reading = parse_stubs("[]")

        assert reading.stubs == []
        assert reading.detected == 0

    def test_unreadable_hints_become_none(self):
        [stub] = parse_stubs(json.dumps([{
            "title": "Dune",
            "author": "Frank Herbert",
            "confidence": 0.9,
            "publisher": "unknown",
            "collection": "  ",
            "isbn": "N/A",
        }])).stubs

        assert stub.publisher is None
        assert stub.collection is None
        assert stub.isbn is None

    def test_blank_author_keeps_the_rest_of_the_shelf(self):
        reading = parse_stubs(
            '[{"title":"Dune","author":"Frank Herbert","confidence":0.9},'
            '{"title":"Untitled","author":"","confidence":0.3}]'
        )

        assert [s.title for s in reading.stubs] == ["Dune"]
        assert len(reading.rejected) == 1
        assert "author" in reading.rejected[0]
        assert reading.detected == 2

    @pytest.mark.parametrize("item", [
        "Dune",
        {"author": "Frank Herbert", "confidence": 0.9},
        {"title": "  ", "author": "Frank Herbert", "confidence": 0.9},
        {"title": "Dune", "author": "Frank Herbert", "confidence": 1.5},
    ])
    def test_unusable_items_are_rejected(self, item):
        reading = parse_stubs(json.dumps([
            item,
            {"title": "Hyperion", "author": "Dan Simmons", "confidence": 0.8},
        ]))

        assert [s.title for s in reading.stubs] == ["Hyperion"]
        assert reading.rejected[0].startswith("Item 0")
        assert reading.detected == 2

    @pytest.mark.parametrize("text", [
        "I can see three books on this shelf.",
        "",
        "42",
        '"Dune"',
        "null",
    ])
    def test_malformed_answers_raise(self, text):
        with pytest.raises(RecognitionError) as exc_info:
            parse_stubs(text)

        assert exc_info.value.code == "RECOGNITION_FAILED"
        assert exc_info.value.status_code == 502


@pytest.mark.asyncio
class TestIdentify:
    """Tests for the identify flow."""

    async def test_returns_stubs_in_order(self):
        client = ScriptedClient(answer=json.dumps([
            {"title": "B", "author": "Author B", "confidence": 0.8},
            {"title": "A", "author": "Author A", "confidence": 0.9},
        ]))
        recognizer = ShelfRecognizer(client)

        reading = await recognizer.identify(b"jpeg-bytes", "image/jpeg")

        assert [s.title for s in reading.stubs] == ["B", "A"]
        [(prompt, image, mime_type)] = client.calls
        assert "bookshelf" in prompt
        assert (image, mime_type) == (b"jpeg-bytes", "image/jpeg")

    async def test_missing_api_key(self):
        client = ScriptedClient(api_key=None)
        recognizer = ShelfRecognizer(client)

        with pytest.raises(RecognitionError, match="not configured"):
            await recognizer.identify(b"jpeg-bytes", "image/jpeg")

        assert client.calls == []

    async def test_empty_image(self):
        client = ScriptedClient()
        recognizer = ShelfRecognizer(client)

        with pytest.raises(RecognitionError):
            await recognizer.identify(b"", "image/jpeg")

        assert client.calls == []

    async def test_timeout(self):
        recognizer = ShelfRecognizer(ScriptedClient(delay=1.0), timeout=0.01)

        with pytest.raises(RecognitionError, match="timed out"):
            await recognizer.identify(b"jpeg-bytes", "image/jpeg")

    async def test_provider_error_is_wrapped(self):
        recognizer = ShelfRecognizer(ScriptedClient(error=ConnectionError("socket closed")))

        with pytest.raises(RecognitionError) as exc_info:
            await recognizer.identify(b"jpeg-bytes", "image/jpeg")

        assert "ConnectionError" in exc_info.value.detail
        assert isinstance(exc_info.value.__cause__, ConnectionError)

    async def test_malformed_answer(self):
        recognizer = ShelfRecognizer(ScriptedClient(answer="Sorry, I cannot help with that."))

        with pytest.raises(RecognitionError):
            await recognizer.identify(b"jpeg-bytes", "image/jpeg")


class TestCreateRecognizer:
    """Tests for the recognizer and client factories."""

    @pytest.mark.parametrize("provider, expected", [
        (LLMProvider.GOOGLE, GeminiClient),
        ("anthropic", AnthropicClient),
        ("openai", OpenAIClient),
    ])
    def test_provider_selection(self, provider, expected):
        recognizer = create_recognizer(provider=provider, api_key="key")

        assert isinstance(recognizer, ShelfRecognizer)
        assert isinstance(recognizer.llm_client, expected)

    def test_default_model(self):
        recognizer = create_recognizer(api_key="key")

        assert recognizer.llm_client.model == "gemini-2.5-flash"
        assert recognizer.timeout == 60.0

    def test_explicit_model_and_timeout(self):
        recognizer = create_recognizer(
            provider=LLMProvider.OPENAI, api_key="key", model="gpt-4o", timeout=5.0
        )

        assert recognizer.llm_client.model == "gpt-4o"
        assert recognizer.timeout == 5.0

    def test_without_key_still_builds(self):
        recognizer = create_recognizer(provider=LLMProvider.ANTHROPIC)

        assert recognizer.llm_client.api_key is None
        assert recognizer.provider is LLMProvider.ANTHROPIC

    def test_unknown_provider(self):
        with pytest.raises(ValueError):
            create_recognizer(provider="mock")

    def test_llm_client_defaults(self):
        client = create_llm_client("anthropic", api_key="key")

        assert isinstance(client, AnthropicClient)
        assert client.model == "claude-sonnet-4-20250514"

    def test_llm_client_unknown_provider(self):
        with pytest.raises(ValueError):
            create_llm_client("mock", api_key="key")
