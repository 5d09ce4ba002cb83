"""Prompts and response schemas for recipe synthesis."""
from __future__ import annotations

from typing import Any, Optional

from src.services.types import VideoInfo

NOT_A_RECIPE = "NOT_A_RECIPE"

SYSTEM_PROMPT = (
    "You are a culinary extraction engine. You read recipe pages and cooking "
    "video material and return one structured recipe as valid JSON only."
)

_INGREDIENT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "name": {"type": "string"},
        "quantity": {"type": "string"},
        "unit": {"type": "string"},
    },
    "required": ["name"],
    "additionalProperties": False,
}

RECIPE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "name": {"type": "string"},
        "description": {"type": "string"},
        "instructions": {"type": "string"},
        "cuisine": {"type": "string"},
        "category": {"type": "string"},
        "cookingTime": {"type": "number"},
        "servings": {"type": "number"},
        "caloriesPerServing": {"type": "number"},
        "ingredients": {"type": "array", "items": _INGREDIENT_SCHEMA},
    },
    "required": ["name"],
    "additionalProperties": False,
}

WEB_SCHEMA_NAME = "recipe_extraction"
VIDEO_SCHEMA_NAME = "video_recipe"


def build_web_prompt(source_url: str, context_text: Optional[str]) -> str:
    if not context_text:
        return (
            f"Extract the recipe published at this URL: {source_url}\n\n"
            "The page could not be downloaded. Use what you know about this page; "
            f'if you cannot identify a recipe, return name "{NOT_A_RECIPE}".\n\n'
            "Return valid JSON only."
        )

    return f"""Extract recipe information from this web page content. Return JSON with: name, description, instructions (step by step, one step per line), ingredients (array of {{name, quantity, unit}}), cookingTime (minutes), servings.

SOURCE URL: {source_url}

PAGE CONTENT:
{context_text}

If the page does not contain a recipe, return name "{NOT_A_RECIPE}".

Return valid JSON only."""


def _video_context(info: VideoInfo) -> str:
    parts = [f"VIDEO TITLE: {info.title}"]
    if info.channel_name:
        parts.append(f"CHANNEL/CREATOR: {info.channel_name}")
    if info.description:
        parts.append(f"\nVIDEO DESCRIPTION:\n{info.description}")
    if info.transcript:
        parts.append(f"\nVIDEO TRANSCRIPT:\n{info.transcript}")
    return "\n".join(parts)


def build_video_prompt(info: VideoInfo) -> str:
    return f"""You are extracting a recipe from a cooking video. Given the video information below, extract a complete, structured recipe.

{_video_context(info)}

INSTRUCTIONS:
1. Extract the recipe name (use the video title as basis if not explicitly stated)
2. List ALL ingredients with quantities and units. For informal measurements like "a pinch", "handful", "some", provide reasonable estimates marked with "~" (e.g., "~1/4 tsp")
3. Write clear step-by-step instructions in logical cooking order, one step per line
4. Estimate total cooking time in minutes based on the steps described
5. Estimate the number of servings if mentioned or provide a reasonable default

IMPORTANT:
- Video transcripts may have errors or informal language; interpret them intelligently
- If the video does not appear to be a recipe, return a recipe with name "{NOT_A_RECIPE}"
- Combine information from both the description and the transcript
- The description often contains a written recipe that is more accurate than the transcript

Return a complete, well-structured recipe in JSON format."""
