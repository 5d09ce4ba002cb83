"""schema.org ``Recipe`` extraction from JSON-LD markup."""
from __future__ import annotations

import json
import logging
import math
import re
from typing import Any, Optional

from src.services.cooking_time import extract_cooking_time_from_instructions
from src.services.ingredients import parse_ingredient_lines
from src.services.markup import find_jsonld_blocks, image_from_meta, largest_image, make_soup, resolve_url
from src.services.types import SOURCE_URL_IMPORT, ParsedRecipe

logger = logging.getLogger(__name__)

ISO_DURATION_PATTERN = re.compile(r"^P(?:(\d+)D)?(?:T(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?)?$", re.IGNORECASE)
MINUTES_TEXT_PATTERN = re.compile(r"(\d+)\s*(?:min|minutes?)", re.IGNORECASE)
FIRST_INTEGER_PATTERN = re.compile(r"\d+")


def _is_recipe_type(value: Any) -> bool:
    types = value if isinstance(value, list) else [value]
    return any(isinstance(t, str) and t.lower() == "recipe" for t in types)


def find_recipe_node(node: Any) -> Optional[dict[str, Any]]:
    """Depth-first search for the first node typed ``Recipe``, through ``@graph`` and arrays."""
    if isinstance(node, list):
        for item in node:
            found = find_recipe_node(item)
            if found is not None:
                return found
        return None

    if not isinstance(node, dict):
        return None

    if _is_recipe_type(node.get("@type")):
        return node

    graph = node.get("@graph")
    if isinstance(graph, list):
        return find_recipe_node(graph)
    return None


def _text(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, list):
        joined = "\n".join(v.strip() for v in value if isinstance(v, str) and v.strip())
        return joined or None
    return None


def _instruction_text(step: Any) -> str:
    if isinstance(step, str):
        return step.strip()
    if isinstance(step, dict):
        # HowToSection carries its steps in itemListElement
        nested = step.get("itemListElement")
        if isinstance(nested, list):
            return "\n".join(filter(None, (_instruction_text(s) for s in nested)))
        for key in ("text", "name"):
            value = step.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
        return json.dumps(step, ensure_ascii=False)
    if step is None:
        return ""
    return str(step).strip()


def normalize_instructions(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, list):
        joined = "\n".join(filter(None, (_instruction_text(step) for step in value)))
        return joined or None
    if isinstance(value, dict):
        return _instruction_text(value) or None
    text = _instruction_text(value)
    return text or None


def normalize_image(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, list):
        for item in value:
            image = normalize_image(item)
            if image:
                return image
        return None
    if isinstance(value, dict):
        url = value.get("url") or value.get("contentUrl")
        return url.strip() if isinstance(url, str) and url.strip() else None
    return None


def duration_to_minutes(value: Any) -> Optional[int]:
    """``PT1H20M`` -> 80, ``PT45M30S`` -> 46; loose ``"25 min"`` text as fallback."""
    if not isinstance(value, str):
        return None
    value = value.strip()

    m = ISO_DURATION_PATTERN.match(value)
    if m:
        days = int(m.group(1) or 0)
        hours = int(m.group(2) or 0)
        minutes = int(m.group(3) or 0)
        seconds = int(m.group(4) or 0)
        # whole minutes inside the seconds field carry over before rounding
        minutes += seconds // 60
        return days * 1440 + hours * 60 + minutes + (1 if seconds % 60 >= 30 else 0)

    m = MINUTES_TEXT_PATTERN.search(value)
    if m:
        return int(m.group(1))
    return None


def normalize_servings(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str):
        m = FIRST_INTEGER_PATTERN.search(value)
        return int(m.group()) if m else None
    if isinstance(value, list) and value:
        return normalize_servings(value[0])
    return None


def _cooking_time(node: dict[str, Any], instructions: Optional[str]) -> Optional[int]:
    for key in ("totalTime", "cookTime", "prepTime"):
        minutes = duration_to_minutes(node.get(key))
        if minutes:
            return minutes
    return extract_cooking_time_from_instructions(instructions)


def recipe_from_node(
    node: dict[str, Any],
    source_url: str,
    base_url: str,
    fallback_image: Optional[str] = None,
) -> Optional[ParsedRecipe]:
    name = _text(node.get("name"))
    if not name:
        return None

    instructions = normalize_instructions(node.get("recipeInstructions"))
    image = normalize_image(node.get("image"))

    return ParsedRecipe(
        name=name,
        description=_text(node.get("description")),
        instructions=instructions,
        image_url=resolve_url(image, base_url) if image else fallback_image,
        cuisine=_text(node.get("recipeCuisine")),
        category=_text(node.get("recipeCategory")),
        cooking_time=_cooking_time(node, instructions),
        servings=normalize_servings(node.get("recipeYield")),
        source_url=source_url,
        ingredients=parse_ingredient_lines(node.get("recipeIngredient")),
        source=SOURCE_URL_IMPORT,
    )


def extract_from_html(html: str, source_url: str, *, base_url: Optional[str] = None) -> Optional[ParsedRecipe]:
    """Return the first named schema.org recipe in the page, or None.

    ``base_url`` is the final URL after redirects and is used to resolve
    relative image links; it defaults to ``source_url``.
    """
    base_url = base_url or source_url
    blocks = find_jsonld_blocks(html)
    logger.debug("Found %d JSON-LD blocks in %s", len(blocks), source_url)

    soup = None
    meta_image = None
    for block in blocks:
        node = find_recipe_node(block)
        if node is None:
            continue
        if soup is None:
            soup = make_soup(html)
            meta_image = image_from_meta(soup, base_url) or largest_image(soup, base_url)

        recipe = recipe_from_node(node, source_url, base_url, fallback_image=meta_image)
        if recipe is None:
            logger.info("Recipe node without a name in %s, skipping", source_url)
            continue

        logger.info(
            "schema.org recipe found: %s (%d ingredients)",
            recipe.name,
            len(recipe.ingredients),
        )
        return recipe

    return None
