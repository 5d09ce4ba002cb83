from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional

VideoPlatform = Literal["youtube", "tiktok", "instagram", "unknown"]

SOURCE_URL_IMPORT = "url_import"
SOURCE_AI_PARSED = "AI Parsed"
SOURCE_VIDEO_IMPORT = "video_import"


@dataclass(frozen=True)
class DetectedPlatform:
    platform: VideoPlatform
    video_id: str


@dataclass
class VideoInfo:
    platform: VideoPlatform
    video_id: str
    url: str
    title: str
    description: str
    transcript: Optional[str]
    thumbnail_url: Optional[str]
    channel_name: str
    duration: Optional[int]  # seconds

    @property
    def has_text(self) -> bool:
        return bool((self.transcript or "").strip() or (self.description or "").strip())


@dataclass
class ParsedIngredient:
    name: str
    quantity: Optional[str] = None
    unit: Optional[str] = None


@dataclass
class ParsedRecipe:
    name: str
    description: Optional[str] = None
    instructions: Optional[str] = None
    image_url: Optional[str] = None
    cuisine: Optional[str] = None
    category: Optional[str] = None
    cooking_time: Optional[int] = None  # minutes
    servings: Optional[int] = None
    calories_per_serving: Optional[int] = None
    source_url: Optional[str] = None
    ingredients: list[ParsedIngredient] = field(default_factory=list)
    source: Optional[str] = None
