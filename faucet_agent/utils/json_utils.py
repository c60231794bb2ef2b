"""JSON parsing utilities for LLM responses."""

import json
import re
from typing import Any, Dict, Optional

FENCE_PATTERN = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)


def parse_llm_json(text: str) -> Dict[str, Any]:
    """
    Parse a JSON object from an LLM response.

    Handles markdown code fences, objects embedded in surrounding prose and
    single-quoted keys.

    Args:
        text: Raw text from the LLM.

    Returns:
        Parsed JSON as a dictionary.

    Raises:
        json.JSONDecodeError: If no JSON object can be recovered.
    """
    if not isinstance(text, str):
        raise json.JSONDecodeError("LLM response is not text", "", 0)

    candidates = [text.strip()]
    fenced = FENCE_PATTERN.search(text)
    if fenced:
        candidates.append(fenced.group(1).strip())
    embedded = _extract_object(text)
    if embedded:
        candidates.append(embedded)

    last_error: Optional[json.JSONDecodeError] = None
    for candidate in candidates:
        for attempt in (candidate, _fix_common_json_errors(candidate)):
            try:
                data = json.loads(attempt)
            except json.JSONDecodeError as exc:
                last_error = exc
                continue
            if isinstance(data, dict):
                return data
            last_error = json.JSONDecodeError("Expected a JSON object", attempt, 0)

    preview = text[:100] + "..." if len(text) > 100 else text
    raise json.JSONDecodeError(
        f"Failed to parse LLM JSON. Preview: {preview}",
        last_error.doc if last_error else text,
        last_error.pos if last_error else 0,
    )


def _extract_object(text: str) -> str:
    """Return the outermost ``{...}`` span of ``text`` or an empty string."""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return ""
    return text[start : end + 1]


def _fix_common_json_errors(text: str) -> str:
    """Attempt to fix common JSON errors from LLM output.

    Handles:
    - Single quotes around keys and string values
    - Trailing commas before a closing bracket
    """
    text = re.sub(r"'(\w+)'(\s*:)", r'"\1"\2', text)
    text = re.sub(r":\s*'([^'\"]*)'", r': "\1"', text)
    text = re.sub(r",\s*([}\]])", r"\1", text)
    return text
