"""JSON object decoding for model output."""

from __future__ import annotations

import json
import logging
from typing import Any

logger = logging.getLogger(__name__)


class JSONDecodeFailure(ValueError):
    """Model output did not contain a JSON object."""


def strip_code_fence(text: str) -> str:
    """Remove a surrounding ```json ... ``` or ``` ... ``` fence, if any."""
    s = text.strip()
    if s.startswith("```"):
        s = s.split("\n", 1)[-1] if "\n" in s else s[3:]
        if s.endswith("```"):
            s = s[:-3]
        s = s.strip()
    return s


def decode_json_object(text: str) -> dict[str, Any]:
    """Decode the JSON object in *text*.

    Strategy:
    1. ``json.loads`` on the fence-stripped text (the normal case for
       schema-constrained output).
    2. Brace-balanced extraction of the first ``{ ... }`` block, for models
       that wrap the object in prose.

    Raises ``JSONDecodeFailure`` when neither yields a JSON object.
    """
    if not text or not text.strip():
        raise JSONDecodeFailure("empty model output")

    stripped = strip_code_fence(text)

    try:
        parsed = json.loads(stripped)
    except (json.JSONDecodeError, ValueError):
        start = stripped.find("{")
        parsed = _extract_balanced(stripped, start) if start != -1 else None

    if not isinstance(parsed, dict):
        raise JSONDecodeFailure("model output is not a JSON object")
    return parsed


def _extract_balanced(text: str, start: int) -> Any:
    """Extract a brace-balanced object starting at *start* and parse it."""
    depth = 0
    in_string = False
    escape = False

    for i in range(start, len(text)):
        ch = text[i]

        if escape:
            escape = False
            continue

        if ch == "\\":
            if in_string:
                escape = True
            continue

        if ch == '"':
            in_string = not in_string
            continue

        if in_string:
            continue

        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                try:
                    return json.loads(text[start : i + 1])
                except (json.JSONDecodeError, ValueError):
                    return None

    return None
