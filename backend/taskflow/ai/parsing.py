"""Locate and sanitise the JSON object in a model reply."""

import json
import re
from typing import Any, Optional

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


def extract_json_object(text: Optional[str]) -> Optional[dict[str, Any]]:
    """Return the outermost ``{...}`` span of ``text`` parsed as a dict.

    Returns None when there is no brace-delimited span, when it is not
    valid JSON, or when it does not decode to an object.
    """
    if not text:
        return None
    match = _JSON_OBJECT.search(text)
    if match is None:
        return None
    try:
        parsed = json.loads(match.group(0))
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


def clamp(value: Any, low: float, high: float, default: float) -> float:
    """Coerce ``value`` to a float within ``[low, high]``.

    Missing, zero, or non-numeric values take ``default`` first, the way a
    falsy field in the model's reply is treated as absent.
    """
    try:
        number = float(value) if value else default
    except (TypeError, ValueError):
        number = default
    if number != number:  # NaN
        number = default
    return max(low, min(high, number))


def non_negative_int(value: Any) -> int:
    try:
        return max(0, int(float(value)))
    except (TypeError, ValueError, OverflowError):
        return 0
