"""LLM backend abstraction for multi-model support.

Provides a unified async interface for calling different LLM providers
(Anthropic Claude, Google Gemini) with a consistent response format.

Each backend handles provider-specific concerns:
- Client creation and timeout configuration
- Response parsing and token counting

Model-agnostic concerns live elsewhere:
- Retry with exponential backoff (executor.retry)
- Prompt construction (planner, executor adapters)
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@dataclass
class LLMCallResult:
    """Normalized response from any LLM backend."""

    content: str
    model_id: str
    input_tokens: int
    output_tokens: int
    duration_ms: int


@runtime_checkable
class ModelBackend(Protocol):
    """Protocol for LLM backend implementations."""

    @property
    def model_id(self) -> str: ...

    async def execute(
        self,
        system_prompt: str,
        user_message: str,
        *,
        max_tokens: int,
        label: str = "",
    ) -> LLMCallResult: ...


class AnthropicBackend:
    """Anthropic Claude backend using the async Messages API."""

    def __init__(
        self,
        model_id: str = "claude-sonnet-4-6",
        *,
        api_key: Optional[str] = None,
        timeout: float = 300.0,
    ):
        self._model_id = model_id
        self._api_key = api_key
        self._timeout = timeout
        self._client = None

    @property
    def model_id(self) -> str:
        return self._model_id

    def _get_client(self):
        if self._client is None:
            import httpx
            from anthropic import AsyncAnthropic

            kwargs: dict[str, Any] = {
                "timeout": httpx.Timeout(
                    connect=60.0,
                    read=self._timeout,
                    write=60.0,
                    pool=60.0,
                ),
                # Retries are handled by executor.retry with our own classification
                "max_retries": 0,
            }
            if self._api_key:
                kwargs["api_key"] = self._api_key
            self._client = AsyncAnthropic(**kwargs)
        return self._client

    async def execute(
        self,
        system_prompt: str,
        user_message: str,
        *,
        max_tokens: int,
        label: str = "",
    ) -> LLMCallResult:
        client = self._get_client()
        start_time = time.time()

        estimated_input_tokens = (len(system_prompt) + len(user_message)) // 4
        logger.info(
            f"[{label}] Anthropic call: model={self._model_id}, "
            f"~{estimated_input_tokens:,} input tokens, max_tokens={max_tokens}"
        )

        response = await client.messages.create(
            model=self._model_id,
            max_tokens=max_tokens,
            system=system_prompt,
            messages=[{"role": "user", "content": user_message}],
        )

        duration_ms = int((time.time() - start_time) * 1000)

        raw_text = ""
        for block in response.content:
            if getattr(block, "type", None) == "text":
                raw_text += block.text

        if not raw_text.strip():
            raise RuntimeError(f"[{label}] Empty response from {self._model_id}")

        logger.info(
            f"[{label}] Completed: {response.usage.input_tokens}+"
            f"{response.usage.output_tokens} tokens, {duration_ms}ms, "
            f"{len(raw_text):,} chars"
        )

        return LLMCallResult(
            content=raw_text.strip(),
            model_id=self._model_id,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            duration_ms=duration_ms,
        )


class GeminiBackend:
    """Google Gemini backend using the google-genai async client."""

    def __init__(
        self,
        model_id: str = "gemini-2.5-pro",
        *,
        api_key: Optional[str] = None,
    ):
        self._model_id = model_id
        self._api_key = api_key
        self._client = None

    @property
    def model_id(self) -> str:
        return self._model_id

    def _get_client(self):
        if self._client is None:
            from google import genai

            if not self._api_key:
                raise RuntimeError(
                    "GEMINI_API_KEY not set. Set the environment variable to use Gemini."
                )
            self._client = genai.Client(api_key=self._api_key)
        return self._client

    async def execute(
        self,
        system_prompt: str,
        user_message: str,
        *,
        max_tokens: int,
        label: str = "",
    ) -> LLMCallResult:
        from google import genai

        client = self._get_client()
        start_time = time.time()

        estimated_input_tokens = (len(system_prompt) + len(user_message)) // 4
        logger.info(
            f"[{label}] Gemini call: model={self._model_id}, "
            f"~{estimated_input_tokens:,} input tokens, max_tokens={max_tokens}"
        )

        config = genai.types.GenerateContentConfig(
            system_instruction=system_prompt,
            max_output_tokens=max_tokens,
        )
        response = await client.aio.models.generate_content(
            model=self._model_id,
            contents=user_message,
            config=config,
        )

        duration_ms = int((time.time() - start_time) * 1000)

        # Skip thought parts, keep only output text
        raw_text = ""
        if response.candidates and response.candidates[0].content:
            for part in response.candidates[0].content.parts or []:
                if getattr(part, "thought", False):
                    continue
                raw_text += getattr(part, "text", "") or ""

        if not raw_text.strip():
            raise RuntimeError(f"[{label}] Empty response from {self._model_id}")

        usage = getattr(response, "usage_metadata", None)
        input_tokens = getattr(usage, "prompt_token_count", None) or estimated_input_tokens
        output_tokens = getattr(usage, "candidates_token_count", None) or len(raw_text) // 4

        logger.info(
            f"[{label}] Completed: {input_tokens}+{output_tokens} tokens, "
            f"{duration_ms}ms, {len(raw_text):,} chars"
        )

        return LLMCallResult(
            content=raw_text.strip(),
            model_id=self._model_id,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            duration_ms=duration_ms,
        )
