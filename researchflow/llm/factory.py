"""Pick a model backend from a model id prefix.

Planner and executor models are configured independently, so each
gets its own backend instance built from the shared LLM settings.
"""

import logging
from typing import Union

from researchflow.config import LLMSettings
from researchflow.llm.backends import AnthropicBackend, GeminiBackend

logger = logging.getLogger(__name__)

_ANTHROPIC_PREFIX = "claude-"
_GEMINI_PREFIX = "gemini-"


def get_backend(model_id: str, settings: LLMSettings) -> Union[AnthropicBackend, GeminiBackend]:
    """Backend for ``model_id``: ``claude-*`` goes to Anthropic, ``gemini-*`` to Gemini.

    Raises ValueError for any other prefix; the CLI and API report it as a
    configuration error.
    """
    if model_id.startswith(_ANTHROPIC_PREFIX):
        backend = AnthropicBackend(
            model_id=model_id,
            api_key=settings.anthropic_api_key,
            timeout=settings.request_timeout,
        )
    elif model_id.startswith(_GEMINI_PREFIX):
        backend = GeminiBackend(model_id=model_id, api_key=settings.gemini_api_key)
    else:
        raise ValueError(
            f"No backend for model {model_id!r}: "
            f"workflow models must be {_ANTHROPIC_PREFIX}* or {_GEMINI_PREFIX}* ids"
        )
    logger.debug(f"Model {model_id} -> {type(backend).__name__}")
    return backend
