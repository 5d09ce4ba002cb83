from __future__ import annotations

import re
from typing import Optional

MAX_COOKING_MINUTES = 24 * 60

_NUMBER = r"(\d+(?:\.\d+)?)"
_RANGE_UPPER = r"(?:\s*-\s*(\d+(?:\.\d+)?))?"
_UNIT = r"\s*(hour|hr|minute|min)s?\b"

_TIME_PATTERNS = (
    # "bake for 30 minutes", "simmer about 1 hour"
    re.compile(
        r"(?:bake|cook|roast|grill|simmer|boil|fry|saut[eé]|steam|microwave|heat|warm)"
        r"(?:\s+(?:for|about|approximately))?\s+" + _NUMBER + _RANGE_UPPER + _UNIT,
        re.IGNORECASE,
    ),
    # "30 minutes at 350", "1 hour or until"
    re.compile(_NUMBER + _RANGE_UPPER + _UNIT + r"\s+(?:at|or|until)", re.IGNORECASE),
    # "for 30-45 minutes"
    re.compile(r"for\s+" + _NUMBER + _RANGE_UPPER + _UNIT, re.IGNORECASE),
)


def _to_minutes(value: float, unit: str) -> float:
    unit = unit.lower()
    if unit.startswith("hour") or unit == "hr":
        return value * 60
    return value


def extract_cooking_time_from_instructions(instructions: Optional[str]) -> Optional[int]:
    """Longest duration mentioned in free-text instructions, in minutes.

    Ranges count by their upper bound; anything above 24 hours is ignored.
    """
    if not instructions:
        return None

    found: list[float] = []
    for pattern in _TIME_PATTERNS:
        for match in pattern.finditer(instructions):
            value = float(match.group(2) or match.group(1))
            minutes = _to_minutes(value, match.group(3))
            if 0 < minutes <= MAX_COOKING_MINUTES:
                found.append(minutes)

    if not found:
        return None
    return round(max(found))
