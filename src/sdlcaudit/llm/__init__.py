"""LLM integration module for SDLC Auditor."""

from .groq_client import (
    GroqClient,
    LLMResponse,
    GroqError,
    AuthMissingError,
    RateLimitError,
    TokenLimitError,
    UpstreamConnectionError,
    MalformedResponseError,
)
from .prompts import PromptTemplate, select_template, select_framework, supported_frameworks
from .narrative import NarrativeAdapter, TextGenerationAdapter
from .generation import GenerationService

__all__ = [
    "GroqClient",
    "LLMResponse",
    "GroqError",
    "AuthMissingError",
    "RateLimitError",
    "TokenLimitError",
    "UpstreamConnectionError",
    "MalformedResponseError",
    "PromptTemplate",
    "select_template",
    "select_framework",
    "supported_frameworks",
    "NarrativeAdapter",
    "TextGenerationAdapter",
    "GenerationService",
]
