from __future__ import annotations

from typing import Any, Optional

from src.services.types import ParsedIngredient


def ingredient_line_text(item: Any) -> str:
    if isinstance(item, str):
        return item.strip()
    if isinstance(item, dict):
        for key in ("text", "name"):
            value = item.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
        return ""
    if isinstance(item, (int, float)):
        return str(item)
    return ""


def parse_ingredient_line(line: str) -> Optional[ParsedIngredient]:
    """Split ``"2 cups flour"`` into quantity, unit and name.

    Naive by design: the first token is always the quantity and the second the
    unit, so ``"a pinch of salt"`` comes out as quantity ``a``, unit ``pinch``.
    A single token is a bare name. Lines without a name are dropped.
    """
    tokens = line.split()
    if not tokens:
        return None
    if len(tokens) == 1:
        return ParsedIngredient(name=tokens[0])

    quantity, unit, *rest = tokens
    name = " ".join(rest)
    if not name:
        return None
    return ParsedIngredient(name=name, quantity=quantity, unit=unit)


def parse_ingredient_lines(items: Any) -> list[ParsedIngredient]:
    if not isinstance(items, list):
        return []
    parsed = (parse_ingredient_line(ingredient_line_text(item)) for item in items)
    return [ingredient for ingredient in parsed if ingredient is not None]
