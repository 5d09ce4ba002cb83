from __future__ import annotations

from typing import Any

import pytest
from fastapi.testclient import TestClient

from src.app import main
from src.app.config import Settings
from src.app.deps import get_app_settings, get_synthesizer
from src.app.routers import ingest as ingest_router
from src.services.errors import InvalidURLError, RateLimitedError, RecipeParseError
from src.services.types import ParsedIngredient, ParsedRecipe

RECIPE = ParsedRecipe(
    name="Test Soup",
    instructions="Boil water.",
    cooking_time=10,
    source_url="https://example.com/recipe",
    ingredients=[ParsedIngredient(name="water", quantity="1", unit="cup")],
    source="url_import",
)


@pytest.fixture
def client():
    sentinel_synthesizer = object()
    main.app.dependency_overrides[get_app_settings] = lambda: Settings(_env_file=None, GEMINI_API_KEY=None)
    main.app.dependency_overrides[get_synthesizer] = lambda: sentinel_synthesizer
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()


def _parse_returning(monkeypatch: pytest.MonkeyPatch, outcome: Any) -> list[str]:
    calls: list[str] = []

    async def fake_parse(url: str, **kwargs: Any) -> ParsedRecipe:
        calls.append(url)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    monkeypatch.setattr(ingest_router, "parse_recipe_from_url", fake_parse)
    return calls


class TestParseEndpoint:
    def test_ok(self, client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
        calls = _parse_returning(monkeypatch, RECIPE)

        response = client.post("/recipes/parse", json={"url": "https://example.com/recipe"})

        assert response.status_code == 200
        recipe = response.json()["recipe"]
        assert recipe["name"] == "Test Soup"
        assert recipe["cookingTime"] == 10
        assert recipe["sourceUrl"] == "https://example.com/recipe"
        assert recipe["ingredients"] == [{"name": "water", "quantity": "1", "unit": "cup"}]
        assert recipe["source"] == "url_import"
        assert recipe["imageUrl"] is None
        assert calls == ["https://example.com/recipe"]

    def test_no_recipe(self, client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
        _parse_returning(monkeypatch, RecipeParseError("https://example.com/about"))

        response = client.post("/recipes/parse", json={"url": "https://example.com/about"})

        assert response.status_code == 422
        assert response.json()["detail"] == "Failed to parse recipe from URL"

    def test_invalid_url(self, client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
        _parse_returning(monkeypatch, InvalidURLError("bad"))
        response = client.post("/recipes/parse", json={"url": "nope"})
        assert response.status_code == 400

    def test_rate_limited(self, client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
        _parse_returning(monkeypatch, RateLimitedError("quota"))
        response = client.post("/recipes/parse", json={"url": "https://example.com/recipe"})
        assert response.status_code == 429

    def test_missing_body_field(self, client: TestClient) -> None:
        assert client.post("/recipes/parse", json={}).status_code == 422


class TestDetectEndpoint:
    def test_video(self, client: TestClient) -> None:
        response = client.get("/recipes/detect", params={"url": "https://www.youtube.com/shorts/dQw4w9WgXcQ"})
        assert response.json() == {"platform": "youtube", "videoId": "dQw4w9WgXcQ", "isVideo": True}

    def test_web_page(self, client: TestClient) -> None:
        response = client.get("/recipes/detect", params={"url": "https://example.com/recipe"})
        assert response.json() == {"platform": None, "videoId": None, "isVideo": False}


def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"ok": True}
