"""
LLM Module

Provider clients and prompt templates shared by shelf recognition and
reading cards.
"""

from arcana.llm.clients import (
    LLMProvider,
    DEFAULT_MODELS,
    BaseLLMClient,
    GeminiClient,
    AnthropicClient,
    OpenAIClient,
    create_llm_client,
    run_completion,
    strip_code_fences,
)
from arcana.llm.prompts import PromptTemplates

__all__ = [
    "LLMProvider",
    "DEFAULT_MODELS",
    "BaseLLMClient",
    "GeminiClient",
    "AnthropicClient",
    "OpenAIClient",
    "create_llm_client",
    "run_completion",
    "strip_code_fences",
    "PromptTemplates",
]
