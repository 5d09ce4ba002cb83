from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urlparse

import httpx

from src.app.config import Settings, get_settings
from src.services.errors import FetchFailedError, InvalidURLError, NetworkTimeoutError, RecipeParseError
from src.services.fetcher import FetchedPage, create_http_client, fetch_page
from src.services.heuristic import extract_heuristic
from src.services.ids import detect_platform
from src.services.llm_client import LLMClient
from src.services.markup import html_to_text
from src.services.schema_org import extract_from_html
from src.services.synthesizer import RecipeSynthesizer
from src.services.types import ParsedRecipe
from src.services.video import parse_recipe_from_video_url

logger = logging.getLogger(__name__)

ALLOWED_SCHEMES = {"http", "https"}


def validate_url(url: str) -> str:
    cleaned = (url or "").strip()
    parsed = urlparse(cleaned)
    if parsed.scheme.lower() not in ALLOWED_SCHEMES or not parsed.netloc:
        raise InvalidURLError(f"URL invalida: {url!r}")
    return cleaned


def build_synthesizer(settings: Settings) -> RecipeSynthesizer:
    return RecipeSynthesizer(
        LLMClient.from_settings(settings),
        web_context_max_chars=settings.WEB_CONTEXT_MAX_CHARS,
    )


async def _fetch_html(client: httpx.AsyncClient, url: str) -> Optional[FetchedPage]:
    try:
        return await fetch_page(client, url)
    except (FetchFailedError, NetworkTimeoutError) as error:
        logger.warning("HTML fetch failed for %s: %s", url, error)
        return None


async def ingest_web_page(
    url: str,
    *,
    client: httpx.AsyncClient,
    synthesizer: RecipeSynthesizer,
) -> Optional[ParsedRecipe]:
    """Structured markup, then heuristic text, then the LLM over page text."""
    page = await _fetch_html(client, url)

    if page is not None:
        recipe = extract_from_html(page.text, url, base_url=page.url)
        if recipe is not None:
            return recipe

        recipe = extract_heuristic(page.text, url, base_url=page.url)
        if recipe is not None:
            logger.info("Heuristic recipe found: %s (%d ingredients)", recipe.name, len(recipe.ingredients))
            return recipe

    # sem HTML o prompt leva apenas a URL
    context = html_to_text(page.text) if page is not None else None
    return await synthesizer.synthesize(context, url)


async def ingest(
    url: str,
    *,
    client: httpx.AsyncClient | None = None,
    synthesizer: RecipeSynthesizer | None = None,
    settings: Settings | None = None,
) -> Optional[ParsedRecipe]:
    """Best-effort recipe for ``url``; None when every stage fails.

    Video links go through the platform extractor and the video prompt only.
    Anything else is treated as a web page. ``RateLimitedError`` from the LLM
    stage propagates.
    """
    url = validate_url(url)
    settings = settings or get_settings()
    synthesizer = synthesizer or build_synthesizer(settings)

    owns_client = client is None
    if client is None:
        client = create_http_client(timeout=settings.FETCH_TIMEOUT_SECONDS, user_agent=settings.USER_AGENT)

    try:
        if detect_platform(url) is not None:
            return await parse_recipe_from_video_url(
                url,
                client=client,
                synthesizer=synthesizer,
                ytdlp_enabled=settings.YTDLP_FALLBACK_ENABLED,
            )
        return await ingest_web_page(url, client=client, synthesizer=synthesizer)
    finally:
        if owns_client:
            await client.aclose()


async def parse_recipe_from_url(
    url: str,
    *,
    client: httpx.AsyncClient | None = None,
    synthesizer: RecipeSynthesizer | None = None,
    settings: Settings | None = None,
) -> ParsedRecipe:
    recipe = await ingest(url, client=client, synthesizer=synthesizer, settings=settings)
    if recipe is None:
        logger.info("No recipe found at %s", url)
        raise RecipeParseError(url)
    return recipe
