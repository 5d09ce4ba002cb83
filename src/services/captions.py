from __future__ import annotations

import html
import json
import re
from typing import Any

VTT_TAG_PATTERN = re.compile(r"<[^>]+>")
WHITESPACE_PATTERN = re.compile(r"\s+")
VTT_SKIP_PREFIXES = ("NOTE", "STYLE", "REGION", "WEBVTT")
TIMESTAMP_PATTERN = re.compile(r"^\d{2}:\d{2}")
TIMEDTEXT_NODE_PATTERN = re.compile(r"<(?:text|p)\b[^>]*>(.*?)</(?:text|p)>", re.DOTALL)
ENGLISH_LANGUAGE_PREFIXES = ("en", "eng")


def _collapse(text: str) -> str:
    return WHITESPACE_PATTERN.sub(" ", text).strip()


def _is_caption_line(line: str) -> bool:
    if not line:
        return False
    if line.startswith(VTT_SKIP_PREFIXES):
        return False
    if "-->" in line:
        return False
    if TIMESTAMP_PATTERN.match(line):
        return False
    if line.isdigit():
        return False
    return True


def vtt_to_plain_text(content: str) -> str:
    """Flatten SRT or WebVTT cues into one line of text."""
    in_note_block = False
    text_lines: list[str] = []

    for raw_line in content.splitlines():
        stripped = raw_line.strip()

        if in_note_block:
            if not stripped:
                in_note_block = False
            continue

        if stripped.startswith("NOTE"):
            in_note_block = True
            continue

        if not _is_caption_line(stripped):
            continue

        cleaned = VTT_TAG_PATTERN.sub("", stripped).strip()
        if cleaned:
            text_lines.append(cleaned)

    return _collapse(" ".join(text_lines))


def _json_array_text(data: list[Any]) -> str:
    parts = []
    for item in data:
        if isinstance(item, dict):
            text = item.get("text") or item.get("content") or ""
        elif isinstance(item, str):
            text = item
        else:
            text = ""
        if isinstance(text, str) and text.strip():
            parts.append(text.strip())
    return _collapse(" ".join(parts))


def subtitles_to_plain_text(content: str) -> str | None:
    """Decode a subtitle payload that is either a JSON array or SRT/WebVTT text."""
    try:
        data = json.loads(content)
    except ValueError:
        data = None

    if isinstance(data, list):
        text = _json_array_text(data)
    else:
        text = vtt_to_plain_text(content)
    return text or None


def _json3_text(data: dict[str, Any]) -> str:
    segments = []
    for event in data.get("events") or []:
        if not isinstance(event, dict):
            continue
        segs = event.get("segs") or []
        text = "".join(s.get("utf8", "") for s in segs if isinstance(s, dict)).strip()
        if text:
            segments.append(text)
    return _collapse(" ".join(segments))


def timedtext_to_plain_text(content: str) -> str | None:
    """Decode YouTube timed text: srv1/srv3 XML nodes first, json3 events as fallback."""
    segments = []
    for match in TIMEDTEXT_NODE_PATTERN.finditer(content):
        inner = VTT_TAG_PATTERN.sub("", match.group(1))
        text = html.unescape(inner).strip()
        if text:
            segments.append(text)

    if segments:
        return _collapse(" ".join(segments))

    try:
        data = json.loads(content)
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    return _json3_text(data) or None


def is_english(language_code: object) -> bool:
    return isinstance(language_code, str) and language_code.lower().startswith(ENGLISH_LANGUAGE_PREFIXES)


def pick_track(tracks: list[Any], language_key: str) -> dict[str, Any] | None:
    """Prefer an English track, else the first one."""
    candidates = [track for track in tracks if isinstance(track, dict)]
    if not candidates:
        return None
    for track in candidates:
        if is_english(track.get(language_key)):
            return track
    return candidates[0]
