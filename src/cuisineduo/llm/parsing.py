"""
Tolerant parsing of model output.

Models wrap JSON in markdown fences, prepend chatter, or return garbage.
Nothing here raises: callers get a default instead.
"""

import json
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

_FENCE_START = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_END = re.compile(r"\s*```$")


def strip_code_fences(text: str | None) -> str:
    """Remove a leading ```json / ``` fence and the trailing fence."""
    if not text:
        return ""
    cleaned = text.strip()
    cleaned = _FENCE_START.sub("", cleaned)
    cleaned = _FENCE_END.sub("", cleaned)
    return cleaned.strip()


def parse_json(text: str | None, default: Any = None) -> Any:
    """
    Parse model output as JSON.

    Tries the fence-stripped text first, then the outermost {...} or [...]
    span (models sometimes add a sentence before the payload).
    """
    cleaned = strip_code_fences(text)
    if not cleaned:
        return default

    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass

    for open_char, close_char in (("{", "}"), ("[", "]")):
        start = cleaned.find(open_char)
        end = cleaned.rfind(close_char)
        if start != -1 and end > start:
            try:
                return json.loads(cleaned[start : end + 1])
            except json.JSONDecodeError:
                continue

    logger.warning(f"Unparseable model output: {cleaned[:200]!r}")
    return default


def parse_json_object(text: str | None) -> dict | None:
    """Parse output that must be a JSON object; anything else is None."""
    result = parse_json(text)
    return result if isinstance(result, dict) else None
