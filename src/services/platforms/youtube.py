from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Any, Optional

import httpx
import requests
from youtube_transcript_api import CouldNotRetrieveTranscript, YouTubeTranscriptApi

from src.services.captions import pick_track, timedtext_to_plain_text
from src.services.cascade import first_available
from src.services.errors import FetchFailedError, NetworkTimeoutError
from src.services.fetcher import (
    clean_string,
    extract_embedded_json,
    fetch_json,
    fetch_text,
    find_nested_value,
)
from src.services.markup import make_soup, meta_content
from src.services.platforms import ytdlp
from src.services.types import VideoInfo

logger = logging.getLogger(__name__)

WATCH_URL = "https://www.youtube.com/watch?v={video_id}"
OEMBED_URL = "https://www.youtube.com/oembed?url=https://www.youtube.com/watch?v={video_id}&format=json"
THUMBNAIL_FALLBACK_URL = "https://img.youtube.com/vi/{video_id}/maxresdefault.jpg"

PLAYER_RESPONSE_PREFIX = re.compile(r"ytInitialPlayerResponse\s*=\s*")
INITIAL_DATA_PREFIX = re.compile(r"ytInitialData\s*=\s*")
CAPTION_TRACKS_PREFIX = re.compile(r'"captionTracks"\s*:\s*')
SHORT_DESCRIPTION_CHARS = 50
TRANSCRIPT_LANGUAGES = ("en", "en-US", "en-GB")


@dataclass
class YouTubeMetadata:
    title: str = ""
    description: str = ""
    thumbnail_url: Optional[str] = None
    channel_name: str = ""
    duration: Optional[int] = None


async def _load(awaitable: Any, label: str) -> Any:
    try:
        return await awaitable
    except (FetchFailedError, NetworkTimeoutError) as error:
        logger.info("[youtube] %s unavailable: %s", label, error)
        return None


def _apply_player_response(metadata: YouTubeMetadata, html: str) -> None:
    player = extract_embedded_json(html, PLAYER_RESPONSE_PREFIX)
    details = player.get("videoDetails") if isinstance(player, dict) else None
    if not isinstance(details, dict):
        return

    metadata.title = metadata.title or clean_string(details.get("title")) or ""
    metadata.channel_name = metadata.channel_name or clean_string(details.get("author")) or ""
    metadata.description = clean_string(details.get("shortDescription")) or metadata.description

    length = details.get("lengthSeconds")
    if isinstance(length, (str, int)) and str(length).isdigit():
        metadata.duration = int(length)

    thumbnail = details.get("thumbnail")
    thumbnails = thumbnail.get("thumbnails") if isinstance(thumbnail, dict) else None
    if isinstance(thumbnails, list) and thumbnails and isinstance(thumbnails[-1], dict):
        # a última miniatura é a de maior resolução
        metadata.thumbnail_url = clean_string(thumbnails[-1].get("url")) or metadata.thumbnail_url


def _long_description(html: str) -> Optional[str]:
    initial = extract_embedded_json(html, INITIAL_DATA_PREFIX)
    body = find_nested_value(initial, "attributedDescriptionBodyText")
    if isinstance(body, dict):
        return clean_string(body.get("content"))
    return None


def parse_watch_page(metadata: YouTubeMetadata, html: str) -> YouTubeMetadata:
    """Fill description, duration and fallbacks from the watch page HTML."""
    metadata.description = meta_content(make_soup(html), name="description") or metadata.description
    _apply_player_response(metadata, html)

    if len(metadata.description) < SHORT_DESCRIPTION_CHARS:
        metadata.description = _long_description(html) or metadata.description
    return metadata


async def fetch_metadata(
    client: httpx.AsyncClient,
    video_id: str,
    watch_page: "asyncio.Future[Optional[str]]",
) -> Optional[YouTubeMetadata]:
    oembed, html = await asyncio.gather(
        _load(fetch_json(client, OEMBED_URL.format(video_id=video_id)), "oEmbed"),
        watch_page,
    )
    if oembed is None and html is None:
        return None

    metadata = YouTubeMetadata()
    if isinstance(oembed, dict):
        metadata.title = clean_string(oembed.get("title")) or ""
        metadata.channel_name = clean_string(oembed.get("author_name")) or ""
        metadata.thumbnail_url = clean_string(oembed.get("thumbnail_url"))

    if html:
        parse_watch_page(metadata, html)

    metadata.thumbnail_url = metadata.thumbnail_url or THUMBNAIL_FALLBACK_URL.format(video_id=video_id)
    return metadata


def _timedtext_url(base_url: str) -> str:
    return base_url if "fmt=" in base_url else f"{base_url}&fmt=srv3"


async def _transcript_from_caption_tracks(
    client: httpx.AsyncClient,
    watch_page: "asyncio.Future[Optional[str]]",
) -> Optional[str]:
    html = await watch_page
    if not html:
        return None

    tracks = extract_embedded_json(html, CAPTION_TRACKS_PREFIX)
    if not isinstance(tracks, list) or not tracks:
        logger.info("[youtube] no caption tracks on watch page")
        return None

    track = pick_track(tracks, "languageCode")
    base_url = clean_string(track.get("baseUrl")) if track else None
    if not base_url:
        return None

    transcript = timedtext_to_plain_text(await fetch_text(client, _timedtext_url(base_url)))
    if transcript:
        logger.info("[youtube] caption track decoded, %d characters", len(transcript))
    return transcript


def _fetch_transcript_sync(video_id: str) -> list[dict] | None:
    try:
        return YouTubeTranscriptApi.get_transcript(video_id, languages=list(TRANSCRIPT_LANGUAGES))
    except AttributeError:
        # versões 1.x removeram o método estático
        return _fetch_transcript_via_instance(video_id)
    except CouldNotRetrieveTranscript:
        return None
    except (requests.RequestException, OSError) as error:
        logger.warning("Network error fetching transcript: %s", error)
        return None


def _fetch_transcript_via_instance(video_id: str) -> list[dict] | None:
    try:
        fetched = YouTubeTranscriptApi().fetch(video_id, languages=list(TRANSCRIPT_LANGUAGES))
        return fetched.to_raw_data() if hasattr(fetched, "to_raw_data") else None
    except CouldNotRetrieveTranscript:
        return None
    except (requests.RequestException, OSError) as error:
        logger.warning("Network error fetching transcript: %s", error)
        return None


async def _transcript_from_api(video_id: str) -> Optional[str]:
    data = await asyncio.to_thread(_fetch_transcript_sync, video_id)
    if not data:
        return None

    text_parts = [
        item.get("text", "").strip()
        for item in data
        if isinstance(item, dict) and item.get("text")
    ]
    full_text = " ".join(text_parts).strip()
    return full_text or None


async def fetch_transcript(
    client: httpx.AsyncClient,
    video_id: str,
    watch_page: "asyncio.Future[Optional[str]]",
) -> Optional[str]:
    return await first_available(
        [
            ("caption tracks", lambda: _transcript_from_caption_tracks(client, watch_page)),
            ("transcript api", lambda: _transcript_from_api(video_id)),
        ],
        label="youtube transcript",
    )


async def _from_watch_page(url: str, video_id: str, client: httpx.AsyncClient) -> Optional[VideoInfo]:
    # metadados e transcrição compartilham um único download da página
    watch_page = asyncio.ensure_future(_load(fetch_text(client, WATCH_URL.format(video_id=video_id)), "watch page"))
    metadata, transcript = await asyncio.gather(
        fetch_metadata(client, video_id, watch_page),
        fetch_transcript(client, video_id, watch_page),
    )
    if metadata is None:
        return None

    return VideoInfo(
        platform="youtube",
        video_id=video_id,
        url=url,
        title=metadata.title,
        description=metadata.description,
        transcript=transcript,
        thumbnail_url=metadata.thumbnail_url,
        channel_name=metadata.channel_name,
        duration=metadata.duration,
    )


async def extract_youtube_info(
    url: str,
    video_id: str,
    *,
    client: httpx.AsyncClient,
    ytdlp_enabled: bool = True,
) -> Optional[VideoInfo]:
    logger.info("[youtube] extracting info for video %s", video_id)
    strategies = [("watch page", lambda: _from_watch_page(url, video_id, client))]
    if ytdlp_enabled:
        strategies.append(("yt-dlp", lambda: ytdlp.extract_with_ytdlp(url, "youtube", video_id, client=client)))

    return await first_available(strategies, label="youtube", accept=lambda info: info.has_text)
