"""
Reading Cards for Arcana

A reading card is what a family member sees after finishing a book:
- A several-sentence summary
- Main themes
- Discussion questions simple enough for a child
- Recommended readership

Cards are written by the configured LLM provider and cached on the
catalog entry by the API layer.
"""

import json
import time
from typing import Optional

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from arcana.exceptions import ReadingCardError
from arcana.llm.clients import BaseLLMClient, run_completion, strip_code_fences
from arcana.llm.prompts import PromptTemplates


class ReadingCard(BaseModel):
    """Summary, themes and discussion questions for one book."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    summary: str = Field(..., min_length=1)
    themes: list[str] = Field(default_factory=list)
    discussion_questions: list[str] = Field(default_factory=list)
    reading_level: Optional[str] = None


def parse_reading_card(text: str) -> ReadingCard:
    """
    Parse a model answer into a ReadingCard.

    Raises:
        ReadingCardError: If the answer is not a JSON object with a summary
    """
    cleaned = strip_code_fences(text)

    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ReadingCardError(
            "Reading card returned non-JSON output",
            detail=cleaned[:200],
        ) from e

    if not isinstance(payload, dict):
        raise ReadingCardError(
            "Reading card returned an unexpected shape",
            detail=f"Expected a JSON object, got {type(payload).__name__}",
        )

    try:
        return ReadingCard.model_validate(payload)
    except PydanticValidationError as e:
        raise ReadingCardError("Reading card is incomplete", detail=str(e)) from e


class ReadingCardWriter:
    """
    Writes reading cards with an LLM.

    Usage:
        writer = ReadingCardWriter(create_llm_client("google", api_key))
        card = await writer.write("Dune", "Frank Herbert")
    """

    def __init__(
        self,
        llm_client: BaseLLMClient,
        timeout: float = 90.0,
        prompt: str = PromptTemplates.READING_CARD,
    ):
        self.llm_client = llm_client
        self.timeout = timeout
        self.prompt = prompt

    async def write(self, title: str, author: str) -> ReadingCard:
        """
        Write the reading card of a book.

        Raises:
            ReadingCardError: On missing configuration, provider failure,
                timeout or an unusable answer.
        """
        start_time = time.time()

        text = await run_completion(
            self.llm_client,
            self.prompt.format(title=title, author=author),
            task="Reading card",
            error_class=ReadingCardError,
            timeout=self.timeout,
        )
        card = parse_reading_card(text)

        elapsed_ms = (time.time() - start_time) * 1000
        logger.info(f"Reading card for '{title}' written in {elapsed_ms:.0f}ms")
        return card
