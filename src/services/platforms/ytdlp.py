from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

import httpx
import yt_dlp

from src.services.captions import is_english, vtt_to_plain_text
from src.services.errors import FetchFailedError, NetworkTimeoutError, PrivateOrUnavailableError
from src.services.fetcher import clean_string, fetch_text
from src.services.types import VideoInfo, VideoPlatform

logger = logging.getLogger(__name__)

CAPTION_KEYS = ("subtitles", "automatic_captions")


def _safe_numeric(value: object, default: int | float = 0) -> int | float:
    return value if isinstance(value, (int, float)) else default


def _score_thumbnail(entry: dict) -> tuple[int | float, int | float, int | float]:
    return (
        _safe_numeric(entry.get("preference")),
        _safe_numeric(entry.get("width")),
        _safe_numeric(entry.get("height")),
    )


def best_thumbnail(info: dict | None) -> str | None:
    if not isinstance(info, dict):
        return None

    direct_url = clean_string(info.get("thumbnail")) or clean_string(info.get("thumbnail_url"))
    if direct_url:
        return direct_url

    thumbnails = info.get("thumbnails")
    if not isinstance(thumbnails, list):
        return None

    scored = [
        (_score_thumbnail(entry), clean_string(entry.get("url")))
        for entry in thumbnails
        if isinstance(entry, dict) and clean_string(entry.get("url"))
    ]
    if not scored:
        return None

    scored.sort(reverse=True, key=lambda x: x[0])
    return scored[0][1]


def _create_ydl_options() -> dict:
    return {
        "quiet": True,
        "noprogress": True,
        "no_warnings": True,
        "skip_download": True,
        "check_formats": False,
        "extractor_args": {"youtube": {"player_client": ["android"]}},
    }


def check_video_availability(info: dict) -> None:
    is_private = info.get("is_private")
    availability = info.get("availability")
    if is_private or availability in {"private", "needs_auth"}:
        raise PrivateOrUnavailableError("Video privado ou requer login.")


def _extract_info_sync(url: str) -> dict | None:
    with yt_dlp.YoutubeDL(_create_ydl_options()) as ydl:
        return ydl.extract_info(url, download=False)


def pick_english_vtt(info: dict) -> str | None:
    """URL da primeira legenda VTT em inglês, manual antes da automática."""
    for key in CAPTION_KEYS:
        submap = info.get(key)
        if not isinstance(submap, dict):
            continue
        for language, entries in submap.items():
            if not is_english(language) or not isinstance(entries, list):
                continue
            for item in entries:
                if isinstance(item, dict) and item.get("ext") == "vtt" and item.get("url"):
                    return item["url"]
    return None


async def _caption_text(client: httpx.AsyncClient, info: dict) -> str | None:
    caption_url = pick_english_vtt(info)
    if not caption_url:
        return None
    try:
        text = vtt_to_plain_text(await fetch_text(client, caption_url))
    except (FetchFailedError, NetworkTimeoutError) as error:
        logger.info("yt-dlp caption download failed: %s", error)
        return None
    return text or None


def _duration(value: Any) -> Optional[int]:
    if isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0:
        return int(value)
    return None


async def extract_with_ytdlp(
    url: str,
    platform: VideoPlatform,
    video_id: str,
    *,
    client: httpx.AsyncClient,
) -> VideoInfo | None:
    try:
        info = await asyncio.to_thread(_extract_info_sync, url)
    except yt_dlp.utils.DownloadError as error:
        raise FetchFailedError(url, f"yt-dlp: {error}") from error
    except (ConnectionError, TimeoutError) as error:
        raise FetchFailedError(url, f"yt-dlp network error: {error}") from error

    if not info:
        raise PrivateOrUnavailableError("Post privado ou nao disponivel")
    check_video_availability(info)

    description = clean_string(info.get("description")) or ""
    title = clean_string(info.get("title")) or description[:100]

    return VideoInfo(
        platform=platform,
        video_id=clean_string(info.get("id")) or video_id,
        url=url,
        title=title,
        description=description,
        transcript=await _caption_text(client, info),
        thumbnail_url=best_thumbnail(info),
        channel_name=clean_string(info.get("uploader")) or clean_string(info.get("channel")) or "",
        duration=_duration(info.get("duration")),
    )
