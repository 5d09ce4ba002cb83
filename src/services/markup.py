from __future__ import annotations

import html as _html
import json
import logging
import re
from typing import Any
from urllib.parse import urljoin

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

_SCRIPT_STYLE_PATTERN = re.compile(r"<(script|style)\b[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL)
_BLOCK_CLOSE_PATTERN = re.compile(
    r"</(?:p|div|li|ul|ol|h[1-6]|section|article|header|footer|tr|td|th|table|blockquote)\s*>",
    re.IGNORECASE,
)
_LINE_BREAK_PATTERN = re.compile(r"<(?:br|hr)\b[^>]*/?>", re.IGNORECASE)
_TAG_PATTERN = re.compile(r"<[^>]+>")
_HORIZONTAL_SPACE_PATTERN = re.compile(r"[ \t\r\f\v\xa0]+")
_HERO_CLASS_PATTERN = re.compile(r"hero|feature|main|primary|banner|cover", re.IGNORECASE)
_DIMENSION_PATTERN = re.compile(r"\d+")


def make_soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def html_to_text(html: str) -> str:
    """Flatten HTML to text, keeping block boundaries as newlines."""
    text = _SCRIPT_STYLE_PATTERN.sub(" ", html)
    text = _BLOCK_CLOSE_PATTERN.sub("\n", text)
    text = _LINE_BREAK_PATTERN.sub("\n", text)
    text = _TAG_PATTERN.sub(" ", text)
    text = _html.unescape(text)

    lines = (_HORIZONTAL_SPACE_PATTERN.sub(" ", line).strip() for line in text.split("\n"))
    return "\n".join(line for line in lines if line)


def find_jsonld_blocks(html: str) -> list[Any]:
    """Parse every ``application/ld+json`` script, skipping invalid ones."""
    soup = make_soup(html)
    blocks: list[Any] = []

    for index, script in enumerate(soup.find_all("script", attrs={"type": "application/ld+json"})):
        raw = (script.string or script.get_text() or "").strip()
        if not raw:
            continue
        # some sites wrap the payload in an HTML comment
        if raw.startswith("<!--"):
            raw = raw[4:]
        if raw.endswith("-->"):
            raw = raw[:-3]
        try:
            blocks.append(json.loads(raw.strip()))
        except ValueError as error:
            logger.debug("JSON-LD block %d is not valid JSON: %s", index, error)
    return blocks


def meta_content(soup: BeautifulSoup, *, prop: str | None = None, name: str | None = None) -> str | None:
    attrs = {"property": prop} if prop else {"name": name}
    tag = soup.find("meta", attrs=attrs)
    if tag is None:
        return None
    content = tag.get("content")
    if isinstance(content, str) and content.strip():
        return content.strip()
    return None


def page_title(soup: BeautifulSoup) -> str | None:
    og_title = meta_content(soup, prop="og:title")
    if og_title:
        return og_title

    title_tag = soup.find("title")
    if title_tag:
        text = re.sub(r"\s+", " ", title_tag.get_text()).strip()
        if text:
            return text
    return None


def resolve_url(url: str, base_url: str) -> str:
    try:
        return urljoin(base_url, url)
    except ValueError:
        return url


def image_from_meta(soup: BeautifulSoup, base_url: str) -> str | None:
    image = (
        meta_content(soup, prop="og:image")
        or meta_content(soup, name="twitter:image")
        or meta_content(soup, name="image")
    )
    return resolve_url(image, base_url) if image else None


def _image_size(img: Any) -> int:
    width = _DIMENSION_PATTERN.search(str(img.get("width") or ""))
    height = _DIMENSION_PATTERN.search(str(img.get("height") or ""))
    if width and height:
        return int(width.group()) * int(height.group())

    classes = img.get("class") or []
    if isinstance(classes, str):
        classes = [classes]
    return 1_000_000 if _HERO_CLASS_PATTERN.search(" ".join(classes)) else 1_000


def largest_image(soup: BeautifulSoup, base_url: str) -> str | None:
    """Pick the biggest ``<img>`` by declared size, favouring hero-like classes."""
    best: tuple[int, str] | None = None
    for img in soup.find_all("img"):
        src = img.get("src")
        if not isinstance(src, str) or not src or src.startswith(("data:", "#")):
            continue
        size = _image_size(img)
        if best is None or size > best[0]:
            best = (size, resolve_url(src, base_url))
    return best[1] if best else None
