from __future__ import annotations

import logging
import re
from typing import Any, Optional
from urllib.parse import quote

import httpx

from src.services.cascade import first_available
from src.services.fetcher import clean_string, extract_embedded_json, fetch_json, fetch_text
from src.services.markup import find_jsonld_blocks, make_soup, meta_content
from src.services.platforms import ytdlp
from src.services.types import VideoInfo

logger = logging.getLogger(__name__)

OEMBED_URL = "https://api.instagram.com/oembed/?url={url}"
EMBED_URL = "https://www.instagram.com/p/{post_id}/embed/"
SHARED_DATA_PREFIX = re.compile(r"window\._sharedData\s*=\s*")
ADDITIONAL_DATA_PREFIX = re.compile(r"window\.__additionalDataLoaded\s*\([^,]+,\s*")
BACKGROUND_IMAGE_PATTERN = re.compile(r"background-image:\s*url\(['\"]?(.*?)['\"]?\)")
POSTING_TYPES = {"VideoObject", "SocialMediaPosting"}


def _fallback_title(channel_name: str) -> str:
    return f"{channel_name}'s Recipe" if channel_name else "Instagram Recipe"


def _info(url: str, post_id: str, *, title: str, description: str, thumbnail: Optional[str], channel: str) -> VideoInfo:
    return VideoInfo(
        platform="instagram",
        video_id=post_id,
        url=url,
        title=title or _fallback_title(channel),
        description=description,
        transcript=None,
        thumbnail_url=thumbnail,
        channel_name=channel,
        duration=None,
    )


def _iter_nodes(block: Any):
    if isinstance(block, list):
        for item in block:
            yield from _iter_nodes(item)
    elif isinstance(block, dict):
        yield block
        graph = block.get("@graph")
        if isinstance(graph, list):
            yield from _iter_nodes(graph)


def parse_public_page(html: str, url: str, post_id: str) -> Optional[VideoInfo]:
    """Merge every public-page source; later sources override earlier ones."""
    soup = make_soup(html)
    title = meta_content(soup, prop="og:title") or ""
    description = meta_content(soup, prop="og:description") or meta_content(soup, name="description") or ""
    thumbnail = meta_content(soup, prop="og:image")
    channel = title.split(":", 1)[0].replace(" on Instagram", "").strip() if title else ""

    for block in find_jsonld_blocks(html):
        for node in _iter_nodes(block):
            types = node.get("@type")
            types = types if isinstance(types, list) else [types]
            if not any(isinstance(t, str) and t in POSTING_TYPES for t in types):
                continue
            description = (
                clean_string(node.get("articleBody"))
                or clean_string(node.get("caption"))
                or clean_string(node.get("description"))
                or description
            )
            author = node.get("author")
            if isinstance(author, dict) and clean_string(author.get("name")):
                channel = author["name"].strip()
            node_thumbnail = node.get("thumbnailUrl")
            if isinstance(node_thumbnail, list):
                node_thumbnail = node_thumbnail[0] if node_thumbnail else None
            thumbnail = clean_string(node_thumbnail) or thumbnail

    shared = extract_embedded_json(html, SHARED_DATA_PREFIX)
    if isinstance(shared, dict):
        post_pages = (shared.get("entry_data") or {}).get("PostPage") or []
        media = ((post_pages[0] or {}).get("graphql") or {}).get("shortcode_media") if post_pages else None
        if isinstance(media, dict):
            edges = (media.get("edge_media_to_caption") or {}).get("edges") or []
            if edges and isinstance(edges[0], dict):
                description = clean_string((edges[0].get("node") or {}).get("text")) or description
            owner = media.get("owner") or {}
            channel = clean_string(owner.get("username")) or clean_string(owner.get("full_name")) or channel
            thumbnail = clean_string(media.get("display_url")) or thumbnail

    additional = extract_embedded_json(html, ADDITIONAL_DATA_PREFIX)
    if isinstance(additional, dict):
        items = additional.get("items") or []
        item = items[0] if items and isinstance(items[0], dict) else None
        if item:
            description = clean_string((item.get("caption") or {}).get("text")) or description
            user = item.get("user") or {}
            channel = clean_string(user.get("username")) or clean_string(user.get("full_name")) or channel
            candidates = (item.get("image_versions2") or {}).get("candidates") or []
            if candidates and isinstance(candidates[0], dict):
                thumbnail = clean_string(candidates[0].get("url")) or thumbnail

    if not description and not title:
        return None
    return _info(url, post_id, title=title, description=description, thumbnail=thumbnail, channel=channel)


def parse_embed_page(html: str, url: str, post_id: str) -> Optional[VideoInfo]:
    soup = make_soup(html)

    caption = soup.select_one(".Caption")
    description = caption.get_text(" ", strip=True) if caption else ""
    if not description:
        return None

    username = soup.select_one(".UsernameText")
    channel = username.get_text(strip=True) if username else ""

    thumbnail = None
    media = soup.select_one(".EmbeddedMediaImage")
    if media is not None:
        match = BACKGROUND_IMAGE_PATTERN.search(media.get("style") or "")
        if match:
            thumbnail = match.group(1)
    if not thumbnail:
        img = soup.select_one("img.EmbeddedMediaImage, img[src*='instagram']")
        thumbnail = clean_string(img.get("src")) if img else None

    return _info(url, post_id, title="", description=description, thumbnail=thumbnail, channel=channel)


async def _from_public_page(url: str, post_id: str, client: httpx.AsyncClient) -> Optional[VideoInfo]:
    html = await fetch_text(client, url, headers={"Cache-Control": "no-cache"})
    return parse_public_page(html, url, post_id)


async def _from_oembed(url: str, post_id: str, client: httpx.AsyncClient) -> Optional[VideoInfo]:
    data = await fetch_json(client, OEMBED_URL.format(url=quote(url, safe="")))
    if not isinstance(data, dict):
        return None

    # o oEmbed não traz a legenda completa, só o título
    title = clean_string(data.get("title")) or ""
    return _info(
        url,
        post_id,
        title=title,
        description=title,
        thumbnail=clean_string(data.get("thumbnail_url")),
        channel=clean_string(data.get("author_name")) or "",
    )


async def _from_embed(url: str, post_id: str, client: httpx.AsyncClient) -> Optional[VideoInfo]:
    html = await fetch_text(client, EMBED_URL.format(post_id=post_id))
    return parse_embed_page(html, url, post_id)


async def extract_instagram_info(
    url: str,
    post_id: str,
    *,
    client: httpx.AsyncClient,
    ytdlp_enabled: bool = True,
) -> Optional[VideoInfo]:
    logger.info("[instagram] extracting info for post %s", post_id)
    strategies = [
        ("public page", lambda: _from_public_page(url, post_id, client)),
        ("oEmbed", lambda: _from_oembed(url, post_id, client)),
        ("embed page", lambda: _from_embed(url, post_id, client)),
    ]
    if ytdlp_enabled:
        strategies.append(("yt-dlp", lambda: ytdlp.extract_with_ytdlp(url, "instagram", post_id, client=client)))

    return await first_available(strategies, label="instagram", accept=lambda info: info.has_text)
