"""
Lenient JSON extraction from model output.

Models wrap JSON in code fences, prepend chatter or trail explanations.
The text is only ever parsed as data.
"""

from __future__ import annotations

import json
import re
from typing import Any, Optional

_FENCE_OPEN_RE = re.compile(r"^```[a-zA-Z0-9_-]*\s*")
_FENCE_CLOSE_RE = re.compile(r"\s*```$")

_decoder = json.JSONDecoder()


def clean_json_text(text: str) -> str:
    """Strip surrounding whitespace and a Markdown code fence."""
    cleaned = (text or "").strip()
    if cleaned.startswith("```"):
        cleaned = _FENCE_OPEN_RE.sub("", cleaned).strip()
        cleaned = _FENCE_CLOSE_RE.sub("", cleaned).strip()
    return cleaned


def extract_json(text: Optional[str]) -> Optional[Any]:
    """
    Pull the first JSON object or array out of text.

    Tries the whole (fence-stripped) text, then decodes from the first "{"
    or "[" and ignores whatever trails the value.

    Returns:
        The decoded dict or list, or None if there is none
    """
    if not text:
        return None
    cleaned = clean_json_text(text)

    try:
        value = json.loads(cleaned)
    except ValueError:
        value = None
    if isinstance(value, (dict, list)):
        return value

    starts = sorted(i for i in (cleaned.find("{"), cleaned.find("[")) if i != -1)
    for start in starts:
        try:
            value, _ = _decoder.raw_decode(cleaned, start)
        except ValueError:
            continue
        if isinstance(value, (dict, list)):
            return value
    return None
