"""Helpers for handling raw LLM text output."""

import json


def strip_code_fences(raw_text: str) -> str:
    """Remove a wrapping ```json ... ``` fence if the model added one."""
    content = raw_text.strip()

    if content.startswith("```"):
        content = content.split("\n", 1)[1] if "\n" in content else content[3:]

    if content.endswith("```"):
        content = content.rsplit("```", 1)[0]

    return content.strip()


def parse_llm_json_response(raw_text: str) -> dict:
    """Parse JSON from LLM response, handling markdown code fences.

    LLMs sometimes wrap JSON in ```json ... ``` fences despite being
    told not to. This function strips those fences before parsing.

    Raises:
        json.JSONDecodeError: If the text cannot be parsed as JSON
    """
    return json.loads(strip_code_fences(raw_text))
