"""
LLM Clients

Async clients for the supported providers (Google Gemini, Anthropic,
OpenAI). A client sends one prompt, optionally with an image, and returns
the raw text answer; parsing the answer is up to the caller.
"""

import asyncio
import base64
import re
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Optional

from loguru import logger

from arcana.exceptions import ArcanaException


class LLMProvider(str, Enum):
    """Supported LLM providers."""
    GOOGLE = "google"
    ANTHROPIC = "anthropic"
    OPENAI = "openai"


DEFAULT_MODELS = {
    LLMProvider.GOOGLE: "gemini-2.5-flash",
    LLMProvider.ANTHROPIC: "claude-sonnet-4-20250514",
    LLMProvider.OPENAI: "gpt-4o-mini",
}

_CODE_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)


def strip_code_fences(text: Optional[str]) -> str:
    """Remove markdown code fences models wrap around JSON answers."""
    return _CODE_FENCE.sub("", text or "").strip()


class BaseLLMClient(ABC):
    """Abstract base class for LLM clients."""

    provider: LLMProvider

    def __init__(
        self,
        api_key: Optional[str],
        model: Optional[str] = None,
        max_tokens: int = 4096,
        temperature: float = 0.2,
    ):
        """
        Initialize client.

        Args:
            api_key: Provider API key
            model: Model identifier (provider default if omitted)
            max_tokens: Maximum output tokens
            temperature: Sampling temperature
        """
        self.api_key = api_key
        self.model = model or DEFAULT_MODELS[self.provider]
        self.max_tokens = max_tokens
        self.temperature = temperature

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        image: Optional[bytes] = None,
        mime_type: Optional[str] = None,
    ) -> str:
        """Send a prompt, and optionally an image, and return the text answer."""
        pass


class GeminiClient(BaseLLMClient):
    """Google Gemini client."""

    provider = LLMProvider.GOOGLE

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._model = None

    def _get_model(self):
        """Lazy initialization of Gemini model."""
        if self._model is None:
            try:
                import google.generativeai as genai
            except ImportError:
                raise ImportError(
                    "google-generativeai package required. Install with: pip install google-generativeai"
                )
            genai.configure(api_key=self.api_key)
            self._model = genai.GenerativeModel(self.model)
        return self._model

    async def generate(self, prompt, image=None, mime_type=None) -> str:
        model = self._get_model()
        contents: list[Any] = [prompt]
        if image is not None:
            contents.append({"mime_type": mime_type, "data": image})

        response = await model.generate_content_async(
            contents,
            generation_config={
                "response_mime_type": "application/json",
                "temperature": self.temperature,
                "max_output_tokens": self.max_tokens,
            },
        )
        return response.text


class AnthropicClient(BaseLLMClient):
    """Anthropic Claude client."""

    provider = LLMProvider.ANTHROPIC

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._client = None

    def _get_client(self):
        """Lazy initialization of Anthropic client."""
        if self._client is None:
            try:
                import anthropic
            except ImportError:
                raise ImportError(
                    "anthropic package required. Install with: pip install anthropic"
                )
            self._client = anthropic.AsyncAnthropic(api_key=self.api_key)
        return self._client

    async def generate(self, prompt, image=None, mime_type=None) -> str:
        client = self._get_client()
        content: list[dict] = []
        if image is not None:
            content.append({
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": mime_type,
                    "data": base64.b64encode(image).decode("ascii"),
                },
            })
        content.append({"type": "text", "text": prompt})

        response = await client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            messages=[{"role": "user", "content": content}],
        )
        return response.content[0].text


class OpenAIClient(BaseLLMClient):
    """OpenAI GPT client."""

    provider = LLMProvider.OPENAI

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._client = None

    def _get_client(self):
        """Lazy initialization of OpenAI client."""
        if self._client is None:
            try:
                import openai
            except ImportError:
                raise ImportError(
                    "openai package required. Install with: pip install openai"
                )
            self._client = openai.AsyncOpenAI(api_key=self.api_key)
        return self._client

    async def generate(self, prompt, image=None, mime_type=None) -> str:
        client = self._get_client()
        content: list[dict] = [{"type": "text", "text": prompt}]
        if image is not None:
            data_url = f"data:{mime_type};base64,{base64.b64encode(image).decode('ascii')}"
            content.append({"type": "image_url", "image_url": {"url": data_url}})

        response = await client.chat.completions.create(
            model=self.model,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            messages=[{"role": "user", "content": content}],
        )
        return response.choices[0].message.content or ""


_CLIENTS: dict[LLMProvider, Any] = {
    LLMProvider.GOOGLE: GeminiClient,
    LLMProvider.ANTHROPIC: AnthropicClient,
    LLMProvider.OPENAI: OpenAIClient,
}


def create_llm_client(
    provider: LLMProvider = LLMProvider.GOOGLE,
    api_key: Optional[str] = None,
    model: Optional[str] = None,
) -> BaseLLMClient:
    """
    Factory function to create an LLM client.

    A client without an API key can be built; callers going through
    run_completion get a "not configured" error instead of a provider call.

    Raises:
        ValueError: Unknown provider
    """
    provider = LLMProvider(provider)
    return _CLIENTS[provider](api_key=api_key, model=model)


async def run_completion(
    client: BaseLLMClient,
    prompt: str,
    *,
    task: str,
    error_class: type[ArcanaException],
    timeout: float,
    image: Optional[bytes] = None,
    mime_type: Optional[str] = None,
) -> str:
    """
    Call a client under a deadline.

    Every failure (missing key, timeout, provider error) is raised as
    error_class, whose constructor takes (message, detail). `task` names
    the operation in error messages, e.g. "Recognition".
    """
    if not client.api_key:
        raise error_class(
            f"{task} service is not configured",
            detail=f"No API key for provider '{client.provider.value}'",
        )

    try:
        return await asyncio.wait_for(
            client.generate(prompt, image=image, mime_type=mime_type),
            timeout=timeout,
        )
    except asyncio.TimeoutError as e:
        logger.error(f"{client.provider.value} {task.lower()} timed out after {timeout}s")
        raise error_class(
            f"{task} timed out",
            detail=f"No answer within {timeout}s",
        ) from e
    except ArcanaException:
        raise
    except Exception as e:
        logger.error(f"{client.provider.value} {task.lower()} failed: {e}")
        raise error_class(
            f"{task} failed",
            detail=f"{type(e).__name__}: {e}",
        ) from e
