from __future__ import annotations

import json
import logging
import re
from typing import Annotated, Any, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError, field_validator

from src.services.cooking_time import extract_cooking_time_from_instructions
from src.services.errors import LLMConfigurationError, LLMProviderError, LLMResponseError
from src.services.llm_client import LLMClient
from src.services.prompts import (
    NOT_A_RECIPE,
    RECIPE_SCHEMA,
    SYSTEM_PROMPT,
    VIDEO_SCHEMA_NAME,
    WEB_SCHEMA_NAME,
    build_video_prompt,
    build_web_prompt,
)
from src.services.types import (
    SOURCE_AI_PARSED,
    SOURCE_VIDEO_IMPORT,
    ParsedIngredient,
    ParsedRecipe,
    VideoInfo,
)

logger = logging.getLogger(__name__)

DEFAULT_WEB_CONTEXT_MAX_CHARS = 15000
_FENCE_PATTERN = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)


def _optional_text(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    if isinstance(value, str):
        return value.strip() or None
    return value


def _number_or_none(value: Any) -> Any:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    # o modelo às vezes devolve "30" ou "30 minutes"; o schema pede número
    if isinstance(value, str):
        match = re.search(r"\d+(?:\.\d+)?", value)
        return float(match.group()) if match else None
    return None


OptionalText = Annotated[Optional[str], BeforeValidator(_optional_text)]
OptionalNumber = Annotated[Optional[float], BeforeValidator(_number_or_none)]


class IngredientPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: OptionalText = None
    quantity: OptionalText = None
    unit: OptionalText = None


class RecipePayload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: OptionalText = None
    description: OptionalText = None
    instructions: Optional[str] = None
    cuisine: OptionalText = None
    category: OptionalText = None
    cooking_time: OptionalNumber = Field(default=None, alias="cookingTime")
    servings: OptionalNumber = None
    calories_per_serving: OptionalNumber = Field(default=None, alias="caloriesPerServing")
    ingredients: list[IngredientPayload] = Field(default_factory=list)

    @field_validator("instructions", mode="before")
    @classmethod
    def _join_steps(cls, value: Any) -> Any:
        if isinstance(value, list):
            return "\n".join(str(step).strip() for step in value if str(step).strip()) or None
        return _optional_text(value)

    @field_validator("ingredients", mode="before")
    @classmethod
    def _ingredients_list(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, dict)]


def extract_json_object(text: str) -> str:
    """Strip markdown fences or surrounding prose from a model answer."""
    stripped = text.strip()
    fenced = _FENCE_PATTERN.search(stripped)
    if fenced:
        stripped = fenced.group(1).strip()
    if stripped.startswith("{"):
        return stripped

    start = stripped.find("{")
    end = stripped.rfind("}")
    if start == -1 or end <= start:
        return stripped
    return stripped[start : end + 1]


def parse_recipe_payload(text: str) -> Optional[RecipePayload]:
    try:
        data = json.loads(extract_json_object(text))
    except ValueError as error:
        logger.warning("LLM answer is not valid JSON: %s", error)
        return None
    if not isinstance(data, dict):
        logger.warning("LLM answer is not a JSON object")
        return None

    try:
        return RecipePayload.model_validate(data)
    except ValidationError as error:
        logger.warning("LLM answer does not match the recipe schema: %s", error)
        return None


def _positive_int(value: Optional[float]) -> Optional[int]:
    if value is None or value <= 0:
        return None
    return round(value)


def payload_to_recipe(
    payload: RecipePayload,
    *,
    source_url: str,
    source: str,
    image_url: Optional[str] = None,
) -> ParsedRecipe:
    ingredients = [
        ParsedIngredient(name=item.name, quantity=item.quantity, unit=item.unit)
        for item in payload.ingredients
        if item.name
    ]
    cooking_time = _positive_int(payload.cooking_time)
    if cooking_time is None:
        cooking_time = extract_cooking_time_from_instructions(payload.instructions)

    return ParsedRecipe(
        name=payload.name or "",
        description=payload.description,
        instructions=payload.instructions,
        image_url=image_url,
        cuisine=payload.cuisine,
        category=payload.category,
        cooking_time=cooking_time,
        servings=_positive_int(payload.servings),
        calories_per_serving=_positive_int(payload.calories_per_serving),
        source_url=source_url,
        ingredients=ingredients,
        source=source,
    )


class RecipeSynthesizer:
    """Turns page text or video material into a recipe through the LLM client."""

    def __init__(self, llm_client: LLMClient, *, web_context_max_chars: int = DEFAULT_WEB_CONTEXT_MAX_CHARS) -> None:
        self.llm_client = llm_client
        self.web_context_max_chars = web_context_max_chars

    async def synthesize(self, context_text: Optional[str], source_url: str) -> Optional[ParsedRecipe]:
        context = (context_text or "").strip()[: self.web_context_max_chars] or None
        prompt = build_web_prompt(source_url, context)

        payload = await self._run(prompt, WEB_SCHEMA_NAME, source_url)
        if payload is None:
            return None

        recipe = payload_to_recipe(payload, source_url=source_url, source=SOURCE_AI_PARSED)
        logger.info("AI parsed recipe: %s (%d ingredients)", recipe.name, len(recipe.ingredients))
        return recipe

    async def synthesize_from_video(self, info: VideoInfo) -> Optional[ParsedRecipe]:
        payload = await self._run(build_video_prompt(info), VIDEO_SCHEMA_NAME, info.url)
        if payload is None:
            return None

        recipe = payload_to_recipe(
            payload,
            source_url=info.url,
            source=SOURCE_VIDEO_IMPORT,
            image_url=info.thumbnail_url,
        )
        logger.info(
            "Video recipe extracted: %s (%d ingredients)",
            recipe.name,
            len(recipe.ingredients),
        )
        return recipe

    async def _run(self, prompt: str, schema_name: str, source_url: str) -> Optional[RecipePayload]:
        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]
        try:
            text = await self.llm_client.complete_json(messages, schema=RECIPE_SCHEMA, schema_name=schema_name)
        except (LLMConfigurationError, LLMProviderError, LLMResponseError) as error:
            logger.warning("LLM extraction failed for %s: %s", source_url, error)
            return None

        payload = parse_recipe_payload(text)
        if payload is None:
            return None
        if not payload.name or payload.name == NOT_A_RECIPE:
            logger.info("LLM determined %s is not a recipe", source_url)
            return None
        return payload
