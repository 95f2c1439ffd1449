"""
Shelf Recognizer

Sends a shelf photo to a vision-capable LLM and returns the books it can
read. Provider calls go through arcana.llm; this module owns the prompt
and the validation of the answer.
"""

import json
import time
from typing import Optional

from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from arcana.exceptions import RecognitionError
from arcana.identification.models import DetectedStub, ShelfReading
from arcana.llm.clients import (
    BaseLLMClient,
    LLMProvider,
    create_llm_client,
    run_completion,
    strip_code_fences,
)
from arcana.llm.prompts import PromptTemplates


def parse_stubs(text: str) -> ShelfReading:
    """
    Parse a model answer into validated stubs.

    Items that are not usable books (not an object, empty author, out of
    range confidence...) are rejected one by one and kept in
    ShelfReading.rejected; the rest of the answer is still used.

    Raises:
        RecognitionError: If the answer is not JSON, or is neither an
            array nor a single object.
    """
    cleaned = strip_code_fences(text)

    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise RecognitionError(
            "Recognition returned non-JSON output",
            detail=cleaned[:200],
        ) from e

    # A lone object is a one-book shelf
    if isinstance(payload, dict):
        payload = [payload]

    if not isinstance(payload, list):
        raise RecognitionError(
            "Recognition returned an unexpected shape",
            detail=f"Expected a JSON array, got {type(payload).__name__}",
        )

    reading = ShelfReading()
    for index, item in enumerate(payload):
        if not isinstance(item, dict):
            reading.rejected.append(f"Item {index} is not an object")
            continue
        try:
            reading.stubs.append(DetectedStub.model_validate(item))
        except PydanticValidationError as e:
            error = e.errors()[0]
            field = ".".join(str(part) for part in error.get("loc", ())) or "item"
            reading.rejected.append(f"Item {index}: {field}: {error.get('msg')}")

    for reason in reading.rejected:
        logger.warning(f"Unusable book in recognition answer: {reason}")

    return reading


class ShelfRecognizer:
    """
    Identifies the books on a shelf photo.

    Usage:
        recognizer = ShelfRecognizer(create_llm_client("google", api_key))
        reading = await recognizer.identify(image_bytes, "image/jpeg")
    """

    def __init__(
        self,
        llm_client: BaseLLMClient,
        timeout: float = 60.0,
        prompt: str = PromptTemplates.SHELF_RECOGNITION,
    ):
        """
        Initialize recognizer.

        Args:
            llm_client: Vision-capable provider client
            timeout: Seconds to wait for the provider
            prompt: Extraction instruction sent with the image
        """
        self.llm_client = llm_client
        self.timeout = timeout
        self.prompt = prompt

    @property
    def provider(self) -> LLMProvider:
        return self.llm_client.provider

    async def identify(self, image: bytes, mime_type: str) -> ShelfReading:
        """
        Identify all books visible in a shelf photo.

        Args:
            image: Raw image bytes
            mime_type: Declared image MIME type

        Returns:
            ShelfReading with stubs in the order the model listed them

        Raises:
            RecognitionError: On missing configuration, provider failure,
                timeout or an answer that is not a list of books.
        """
        if not image:
            raise RecognitionError("No image data provided")

        start_time = time.time()

        text = await run_completion(
            self.llm_client,
            self.prompt,
            task="Recognition",
            error_class=RecognitionError,
            timeout=self.timeout,
            image=image,
            mime_type=mime_type,
        )
        reading = parse_stubs(text)

        elapsed_ms = (time.time() - start_time) * 1000
        logger.info(
            f"{self.provider.value} identified {len(reading.stubs)} book(s) on shelf "
            f"({len(reading.rejected)} unusable) in {elapsed_ms:.0f}ms"
        )
        return reading


def create_recognizer(
    provider: LLMProvider = LLMProvider.GOOGLE,
    api_key: Optional[str] = None,
    model: Optional[str] = None,
    timeout: float = 60.0,
) -> ShelfRecognizer:
    """
    Factory function to create a recognizer.

    A recognizer without an API key can be built; it fails with
    RecognitionError when asked to identify a shelf.

    Args:
        provider: LLM provider
        api_key: Provider API key
        model: Model name (uses provider default if not specified)
        timeout: Seconds to wait for an answer

    Returns:
        Configured ShelfRecognizer
    """
    client = create_llm_client(provider, api_key=api_key, model=model)

    if not api_key:
        logger.warning(
            f"No API key for recognition provider '{client.provider.value}'. Scans will fail."
        )

    return ShelfRecognizer(client, timeout=timeout)
