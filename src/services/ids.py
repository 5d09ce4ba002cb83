# src/services/ids.py
import re
from typing import Optional

from src.services.types import DetectedPlatform, VideoPlatform

# Ordem importa: o primeiro padrao que casar vence
_PLATFORM_PATTERNS: dict[VideoPlatform, tuple[re.Pattern[str], ...]] = {
    "youtube": (
        re.compile(r"(?:youtube\.com/watch\?v=|youtu\.be/|youtube\.com/shorts/)([A-Za-z0-9_-]{11})"),
        re.compile(r"youtube\.com/embed/([A-Za-z0-9_-]{11})"),
        re.compile(r"youtube\.com/v/([A-Za-z0-9_-]{11})"),
    ),
    "tiktok": (
        re.compile(r"tiktok\.com/@[\w.-]+/video/(\d+)"),
        re.compile(r"vm\.tiktok\.com/(\w+)"),
        re.compile(r"tiktok\.com/t/(\w+)"),
    ),
    "instagram": (
        re.compile(r"instagram\.com/reel/([A-Za-z0-9_-]+)"),
        re.compile(r"instagram\.com/p/([A-Za-z0-9_-]+)"),
        re.compile(r"instagram\.com/reels/([A-Za-z0-9_-]+)"),
    ),
}


def detect_platform(url: str) -> Optional[DetectedPlatform]:
    """Retorna (plataforma, id_unico) ou None quando a URL e uma pagina web comum."""
    for platform, patterns in _PLATFORM_PATTERNS.items():
        for pattern in patterns:
            m = pattern.search(url)
            if m and m.group(1):
                return DetectedPlatform(platform=platform, video_id=m.group(1))
    return None


def is_video_url(url: str) -> bool:
    return detect_platform(url) is not None
