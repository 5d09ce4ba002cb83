from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

from src.services.types import ParsedRecipe


class IngredientItem(BaseModel):
    name: str
    quantity: Optional[str] = None
    unit: Optional[str] = None


class RecipeResponse(BaseModel):
    name: str
    description: Optional[str] = None
    instructions: Optional[str] = None
    imageUrl: Optional[str] = None
    cuisine: Optional[str] = None
    category: Optional[str] = None
    cookingTime: Optional[int] = None
    servings: Optional[int] = None
    caloriesPerServing: Optional[int] = None
    sourceUrl: Optional[str] = None
    ingredients: list[IngredientItem] = Field(default_factory=list)
    source: Optional[str] = None

    @classmethod
    def from_parsed(cls, recipe: ParsedRecipe) -> "RecipeResponse":
        return cls(
            name=recipe.name,
            description=recipe.description,
            instructions=recipe.instructions,
            imageUrl=recipe.image_url,
            cuisine=recipe.cuisine,
            category=recipe.category,
            cookingTime=recipe.cooking_time,
            servings=recipe.servings,
            caloriesPerServing=recipe.calories_per_serving,
            sourceUrl=recipe.source_url,
            ingredients=[
                IngredientItem(name=i.name, quantity=i.quantity, unit=i.unit) for i in recipe.ingredients
            ],
            source=recipe.source,
        )


class ParseRequest(BaseModel):
    url: str


class ParseResponse(BaseModel):
    recipe: RecipeResponse


class DetectResponse(BaseModel):
    platform: Optional[Literal["youtube", "tiktok", "instagram"]] = None
    videoId: Optional[str] = None
    isVideo: bool = False
