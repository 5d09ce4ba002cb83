from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any

import httpx

from .errors import FetchFailedError, NetworkTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 15.0
BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
BROWSER_HEADERS = {
    "User-Agent": BROWSER_USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}

_JSON_DECODER = json.JSONDecoder()


@dataclass(frozen=True)
class FetchedPage:
    url: str
    text: str


def create_http_client(
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    user_agent: str | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    headers = dict(BROWSER_HEADERS)
    if user_agent:
        headers["User-Agent"] = user_agent
    return httpx.AsyncClient(
        timeout=timeout,
        follow_redirects=True,
        headers=headers,
        transport=transport,
    )


def _timeout_seconds(client: httpx.AsyncClient) -> float:
    return client.timeout.read or DEFAULT_TIMEOUT_SECONDS


async def _request(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    headers: dict[str, str] | None = None,
) -> httpx.Response:
    try:
        response = await client.request(method, url, headers=headers)
        response.raise_for_status()
        return response
    except httpx.TimeoutException as error:
        raise NetworkTimeoutError(url, _timeout_seconds(client)) from error
    except httpx.HTTPStatusError as error:
        status = error.response.status_code
        raise FetchFailedError(url, f"HTTP {status}", status_code=status) from error
    except httpx.HTTPError as error:
        raise FetchFailedError(url, str(error) or type(error).__name__) from error


async def fetch_page(
    client: httpx.AsyncClient,
    url: str,
    headers: dict[str, str] | None = None,
) -> FetchedPage:
    response = await _request(client, "GET", url, headers)
    return FetchedPage(url=str(response.url), text=response.text)


async def fetch_text(
    client: httpx.AsyncClient,
    url: str,
    headers: dict[str, str] | None = None,
) -> str:
    return (await fetch_page(client, url, headers)).text


async def fetch_json(
    client: httpx.AsyncClient,
    url: str,
    headers: dict[str, str] | None = None,
) -> Any:
    response = await _request(client, "GET", url, headers)
    try:
        return response.json()
    except ValueError as error:
        raise FetchFailedError(url, "response is not JSON") from error


async def resolve_redirects(client: httpx.AsyncClient, url: str) -> str:
    try:
        response = await _request(client, "HEAD", url)
    except (FetchFailedError, NetworkTimeoutError) as error:
        logger.info("Could not resolve redirects for %s: %s", url, error)
        return url
    return str(response.url) or url


def extract_embedded_json(html: str, prefix: str | re.Pattern[str]) -> Any | None:
    """Decode the JSON value that starts right after ``prefix`` (``ytInitialData = {...};``).

    ``prefix`` is a regex ending just before the value. The value itself is read
    with ``raw_decode`` so trailing script content never has to be matched.
    """
    for match in re.finditer(prefix, html):
        start = match.end()
        while start < len(html) and html[start].isspace():
            start += 1
        if start >= len(html) or html[start] not in "{[":
            continue
        try:
            value, _ = _JSON_DECODER.raw_decode(html, start)
        except ValueError:
            continue
        return value
    return None


def find_nested_value(obj: Any, key: str) -> Any | None:
    if isinstance(obj, dict):
        if key in obj and obj[key]:
            return obj[key]
        children = obj.values()
    elif isinstance(obj, list):
        children = obj
    else:
        return None

    for child in children:
        found = find_nested_value(child, key)
        if found:
            return found
    return None


def clean_string(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped or None
