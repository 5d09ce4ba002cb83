from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional

import httpx

from src.services.ids import detect_platform
from src.services.platforms.instagram import extract_instagram_info
from src.services.platforms.tiktok import extract_tiktok_info
from src.services.platforms.youtube import extract_youtube_info
from src.services.synthesizer import RecipeSynthesizer
from src.services.types import ParsedRecipe, VideoInfo

logger = logging.getLogger(__name__)

Extractor = Callable[..., Awaitable[Optional[VideoInfo]]]

PLATFORM_EXTRACTORS: dict[str, Extractor] = {
    "youtube": extract_youtube_info,
    "tiktok": extract_tiktok_info,
    "instagram": extract_instagram_info,
}


async def extract_video_info(
    url: str,
    *,
    client: httpx.AsyncClient,
    ytdlp_enabled: bool = True,
) -> Optional[VideoInfo]:
    detected = detect_platform(url)
    if detected is None:
        return None

    extractor = PLATFORM_EXTRACTORS.get(detected.platform)
    if extractor is None:
        logger.info("No extractor for platform %s", detected.platform)
        return None

    return await extractor(url, detected.video_id, client=client, ytdlp_enabled=ytdlp_enabled)


async def parse_recipe_from_video_url(
    url: str,
    *,
    client: httpx.AsyncClient,
    synthesizer: RecipeSynthesizer,
    ytdlp_enabled: bool = True,
) -> Optional[ParsedRecipe]:
    logger.info("[video] attempting to parse video URL: %s", url)

    info = await extract_video_info(url, client=client, ytdlp_enabled=ytdlp_enabled)
    if info is None:
        logger.info("[video] failed to extract video information for %s", url)
        return None

    logger.info(
        "[video] extracted %s video %r: transcript=%d chars, description=%d chars",
        info.platform,
        info.title,
        len(info.transcript or ""),
        len(info.description or ""),
    )

    if not info.has_text:
        logger.info("[video] no transcript or description available for %s", url)
        return None

    return await synthesizer.synthesize_from_video(info)
