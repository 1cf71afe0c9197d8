"""Shared LLM utilities used by the planner and executor adapters."""

from researchflow.llm.backends import (
    AnthropicBackend,
    GeminiBackend,
    LLMCallResult,
    ModelBackend,
)
from researchflow.llm.client import parse_llm_json_response, strip_code_fences
from researchflow.llm.factory import get_backend

__all__ = [
    "AnthropicBackend",
    "GeminiBackend",
    "LLMCallResult",
    "ModelBackend",
    "get_backend",
    "parse_llm_json_response",
    "strip_code_fences",
]
