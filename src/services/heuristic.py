"""Keyword-anchored extraction for pages without usable structured markup."""
from __future__ import annotations

import logging
import re
from typing import Optional

from bs4 import BeautifulSoup

from src.services.ingredients import parse_ingredient_line
from src.services.markup import html_to_text, image_from_meta, largest_image, make_soup, page_title
from src.services.types import SOURCE_URL_IMPORT, ParsedIngredient, ParsedRecipe

logger = logging.getLogger(__name__)

INGREDIENTS_ANCHOR = re.compile(r"ingredients?", re.IGNORECASE)
STEPS_ANCHOR = re.compile(r"preparation|directions|steps|method|instructions", re.IGNORECASE)
HEADER_LINE = re.compile(
    r"^(?:ingredients?|preparation|directions|steps|method|instructions)\s*:?$",
    re.IGNORECASE,
)
BULLET_SPLIT = re.compile(r"[•·\n]")
LEADING_DASH = re.compile(r"^[-–—*]\s*")
COOKING_TIME_PATTERN = re.compile(r"(\d+)\s*(minutes|min|hours|hrs|hr)", re.IGNORECASE)
SERVINGS_PATTERNS = (
    re.compile(r"serves?\s*(\d+)", re.IGNORECASE),
    re.compile(r"yield[:\s]+(\d+)", re.IGNORECASE),
)
DEFAULT_TITLE = "Untitled Recipe"


def _section(text: str, anchor: Optional[re.Match[str]], stop: re.Pattern[str]) -> str:
    if anchor is None:
        return ""
    start = anchor.end()
    end = stop.search(text, start)
    return text[start : end.start() if end else len(text)]


def section_lines(section: str) -> list[str]:
    lines = []
    for piece in BULLET_SPLIT.split(section):
        line = LEADING_DASH.sub("", piece.strip()).strip(" :")
        if not line or HEADER_LINE.match(line):
            continue
        lines.append(line)
    return lines


def _cooking_time(text: str) -> Optional[int]:
    m = COOKING_TIME_PATTERN.search(text)
    if not m:
        return None
    value = int(m.group(1))
    return value * 60 if m.group(2).lower().startswith(("hour", "hr")) else value


def _servings(text: str) -> Optional[int]:
    for pattern in SERVINGS_PATTERNS:
        m = pattern.search(text)
        if m:
            return int(m.group(1))
    return None


def _title(soup: BeautifulSoup) -> Optional[str]:
    title = page_title(soup)
    if title:
        return title
    h1 = soup.find("h1")
    if h1:
        return h1.get_text(" ", strip=True) or None
    return None


def extract_heuristic(html: str, source_url: str, *, base_url: Optional[str] = None) -> Optional[ParsedRecipe]:
    """Best-effort recipe from flattened page text.

    The ingredients section runs from the first ``ingredient(s)`` match to the
    next steps anchor (or the end of text), and vice versa for the steps. A
    page with only a title still yields a bare recipe (name and image); None
    only when there is no title and neither section.
    """
    base_url = base_url or source_url
    text = html_to_text(html)
    soup = make_soup(html)

    ingredient_lines = section_lines(_section(text, INGREDIENTS_ANCHOR.search(text), STEPS_ANCHOR))
    steps = section_lines(_section(text, STEPS_ANCHOR.search(text), INGREDIENTS_ANCHOR))
    title = _title(soup)

    logger.debug(
        "Heuristic found %d ingredient lines, %d steps in %s",
        len(ingredient_lines),
        len(steps),
        source_url,
    )
    if not title and not ingredient_lines and not steps:
        return None

    ingredients: list[ParsedIngredient] = []
    for line in ingredient_lines:
        parsed = parse_ingredient_line(line)
        if parsed is not None:
            ingredients.append(parsed)

    return ParsedRecipe(
        name=title or DEFAULT_TITLE,
        instructions="\n".join(steps) or None,
        image_url=image_from_meta(soup, base_url) or largest_image(soup, base_url),
        cooking_time=_cooking_time(text),
        servings=_servings(text),
        source_url=source_url,
        ingredients=ingredients,
        source=SOURCE_URL_IMPORT,
    )
