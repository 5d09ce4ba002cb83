from __future__ import annotations

import functools
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Optional

import httpx
from bs4 import BeautifulSoup

from src.services.captions import pick_track, subtitles_to_plain_text
from src.services.cascade import first_available
from src.services.errors import FetchFailedError, NetworkTimeoutError
from src.services.fetcher import clean_string, fetch_page, fetch_text, resolve_redirects
from src.services.ids import detect_platform
from src.services.markup import make_soup, meta_content, page_title
from src.services.platforms import ytdlp
from src.services.types import VideoInfo

logger = logging.getLogger(__name__)

SHORT_LINK_MARKERS = ("vm.tiktok.com", "tiktok.com/t/")
USERNAME_PATTERN = re.compile(r"@([\w.-]+)")
TITLE_FROM_DESCRIPTION_CHARS = 100


@dataclass
class TikTokPost:
    description: str = ""
    channel_name: str = ""
    duration: Optional[int] = None
    cover_url: Optional[str] = None
    subtitle_url: Optional[str] = None


def _script_json(soup: BeautifulSoup, script_id: str) -> Any:
    tag = soup.find("script", id=script_id)
    if tag is None:
        return None
    raw = (tag.string or tag.get_text() or "").strip()
    return json.loads(raw) if raw else None


def _duration(value: Any) -> Optional[int]:
    if isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0:
        return int(value)
    return None


def _subtitle_url(video: dict) -> Optional[str]:
    infos = video.get("subtitleInfos")
    if not isinstance(infos, list) or not infos:
        return None
    track = pick_track(infos, "LanguageCodeName")
    return clean_string(track.get("Url")) if track else None


def _post_from_item(item: dict, channel_name: str = "") -> TikTokPost:
    video = item.get("video") if isinstance(item.get("video"), dict) else {}
    return TikTokPost(
        description=clean_string(item.get("desc")) or "",
        channel_name=channel_name,
        duration=_duration(video.get("duration")),
        cover_url=clean_string(video.get("cover")),
        subtitle_url=_subtitle_url(video),
    )


def parse_sigi_state(soup: BeautifulSoup) -> Optional[TikTokPost]:
    state = _script_json(soup, "SIGI_STATE")
    if not isinstance(state, dict):
        return None

    items = state.get("ItemModule")
    if not isinstance(items, dict) or not items:
        return None
    item = next(iter(items.values()))
    if not isinstance(item, dict):
        return None

    channel = clean_string(item.get("author")) or clean_string(item.get("nickname")) or ""
    if not channel:
        users = (state.get("UserModule") or {}).get("users")
        if isinstance(users, dict) and users:
            user = next(iter(users.values()))
            if isinstance(user, dict):
                channel = clean_string(user.get("nickname")) or clean_string(user.get("uniqueId")) or ""

    return _post_from_item(item, channel)


def parse_universal_data(soup: BeautifulSoup) -> Optional[TikTokPost]:
    data = _script_json(soup, "__UNIVERSAL_DATA_FOR_REHYDRATION__")
    if not isinstance(data, dict):
        return None

    scope = data.get("__DEFAULT_SCOPE__") or {}
    detail = ((scope.get("webapp.video-detail") or {}).get("itemInfo") or {}).get("itemStruct")
    if not isinstance(detail, dict):
        return None

    author = detail.get("author") if isinstance(detail.get("author"), dict) else {}
    channel = clean_string(author.get("nickname")) or clean_string(author.get("uniqueId")) or ""
    return _post_from_item(detail, channel)


def parse_open_graph(soup: BeautifulSoup) -> Optional[TikTokPost]:
    description = meta_content(soup, prop="og:description") or meta_content(soup, name="description")
    if not description:
        return None
    return TikTokPost(description=description, cover_url=meta_content(soup, prop="og:image"))


PAGE_PARSERS: tuple[tuple[str, Callable[[BeautifulSoup], Optional[TikTokPost]]], ...] = (
    ("SIGI_STATE", parse_sigi_state),
    ("UNIVERSAL_DATA", parse_universal_data),
    ("open graph", parse_open_graph),
)


async def _run_parser(parser: Callable[[BeautifulSoup], Optional[TikTokPost]], soup: BeautifulSoup) -> Optional[TikTokPost]:
    return parser(soup)


async def fetch_subtitles(client: httpx.AsyncClient, url: str) -> Optional[str]:
    try:
        return subtitles_to_plain_text(await fetch_text(client, url))
    except (FetchFailedError, NetworkTimeoutError) as error:
        logger.info("[tiktok] subtitle download failed: %s", error)
        return None


async def _from_page(url: str, video_id: str, client: httpx.AsyncClient) -> Optional[VideoInfo]:
    page = await fetch_page(client, url)
    soup = make_soup(page.text)

    post = await first_available(
        [(name, functools.partial(_run_parser, parser, soup)) for name, parser in PAGE_PARSERS],
        label="tiktok page",
        accept=lambda p: bool(p.description or p.subtitle_url),
    )
    if post is None:
        return None

    channel = post.channel_name
    if not channel:
        username = USERNAME_PATTERN.search(url)
        channel = username.group(1) if username else ""

    transcript = await fetch_subtitles(client, post.subtitle_url) if post.subtitle_url else None

    return VideoInfo(
        platform="tiktok",
        video_id=video_id,
        url=url,
        title=page_title(soup) or post.description[:TITLE_FROM_DESCRIPTION_CHARS],
        description=post.description,
        transcript=transcript,
        thumbnail_url=post.cover_url or meta_content(soup, prop="og:image"),
        channel_name=channel,
        duration=post.duration,
    )


async def resolve_short_url(client: httpx.AsyncClient, url: str) -> str:
    if any(marker in url for marker in SHORT_LINK_MARKERS):
        return await resolve_redirects(client, url)
    return url


async def extract_tiktok_info(
    url: str,
    video_id: str,
    *,
    client: httpx.AsyncClient,
    ytdlp_enabled: bool = True,
) -> Optional[VideoInfo]:
    logger.info("[tiktok] extracting info for video %s", video_id)
    resolved = await resolve_short_url(client, url)
    if resolved != url:
        logger.info("[tiktok] resolved %s -> %s", url, resolved)

    detected = detect_platform(resolved)
    if detected is not None and detected.platform == "tiktok" and detected.video_id.isdigit():
        video_id = detected.video_id

    strategies = [("page", lambda: _from_page(resolved, video_id, client))]
    if ytdlp_enabled:
        strategies.append(("yt-dlp", lambda: ytdlp.extract_with_ytdlp(resolved, "tiktok", video_id, client=client)))

    return await first_available(strategies, label="tiktok", accept=lambda info: info.has_text)
