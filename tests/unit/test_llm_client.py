from __future__ import annotations

import asyncio
import json
from typing import Any, Callable

import httpx
import pytest

from src.app.config import Settings
from src.services.errors import LLMConfigurationError, LLMProviderError, RateLimitedError
from src.services import llm_client as llm_client_module
from src.services.llm_client import LLMClient, LLMProvider, build_providers

MESSAGES = [{"role": "system", "content": "be a chef"}, {"role": "user", "content": "extract"}]
SCHEMA = {"type": "object", "properties": {"name": {"type": "string"}}}
ANSWER = '{"name": "Pancakes"}'


def _settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "GEMINI_API_KEY": None,
        "OPENAI_API_KEY": None,
        "FORGE_API_KEY": None,
        "FORGE_API_URL": None,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def _openai(name: str = "OpenAI", base_url: str = "https://api.openai.com/v1") -> LLMProvider:
    return LLMProvider(name=name, kind="openai", model="gpt-4o-mini", api_key=f"{name}-key", base_url=base_url)


def _chat_response(content: Any) -> httpx.Response:
    return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": content}}]})


def _complete(
    providers: list[LLMProvider],
    handler: Callable[[httpx.Request], httpx.Response],
    **kwargs: Any,
) -> str:
    async def main() -> str:
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            client = LLMClient(providers, http_client=http, **kwargs)
            return await client.complete_json(MESSAGES, schema=SCHEMA, schema_name="recipe_extraction")

    return asyncio.run(main())


class TestBuildProviders:
    def test_preference_order(self) -> None:
        settings = _settings(
            GEMINI_API_KEY="g",
            OPENAI_API_KEY="o",
            OPENAI_BASE_URL="https://proxy.example/v1/",
            FORGE_API_KEY="f",
            FORGE_API_URL="https://forge.example/",
        )

        providers = build_providers(settings)

        assert [p.name for p in providers] == ["Gemini", "OpenAI", "Forge"]
        assert providers[0].model == "gemini-2.5-flash"
        assert providers[1].base_url == "https://proxy.example/v1"
        assert providers[2].base_url == "https://forge.example/v1"
        assert providers[2].kind == "openai"

    def test_only_configured_providers(self) -> None:
        assert [p.name for p in build_providers(_settings(OPENAI_API_KEY="o"))] == ["OpenAI"]
        assert build_providers(_settings(FORGE_API_KEY="f")) == []
        assert build_providers(_settings()) == []

    def test_from_settings(self) -> None:
        client = LLMClient.from_settings(_settings(GEMINI_API_KEY="g", LLM_TIMEOUT_SECONDS=5, LLM_MAX_TOKENS=999_999))
        assert client.timeout_seconds == 5
        assert client.max_tokens == 16000
        assert [p.kind for p in client.providers] == ["gemini"]


class TestCompleteJson:
    def test_no_providers(self) -> None:
        with pytest.raises(LLMConfigurationError):
            asyncio.run(LLMClient([]).complete_json(MESSAGES, schema=SCHEMA, schema_name="x"))

    def test_openai_request_shape(self) -> None:
        captured: dict[str, Any] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["url"] = str(request.url)
            captured["auth"] = request.headers["Authorization"]
            captured["body"] = json.loads(request.content)
            return _chat_response(ANSWER)

        assert _complete([_openai()], handler, max_tokens=1234) == ANSWER

        body = captured["body"]
        assert captured["url"] == "https://api.openai.com/v1/chat/completions"
        assert captured["auth"] == "Bearer OpenAI-key"
        assert body["messages"] == MESSAGES
        assert body["max_tokens"] == 1234
        assert body["response_format"]["type"] == "json_schema"
        assert body["response_format"]["json_schema"]["name"] == "recipe_extraction"
        assert body["response_format"]["json_schema"]["schema"] == SCHEMA

    def test_content_parts_joined(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return _chat_response([{"type": "text", "text": '{"name": '}, {"type": "text", "text": '"Soup"}'}])

        assert _complete([_openai()], handler) == '{"name": "Soup"}'

    def test_falls_through_to_next_provider(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "api.openai.com":
                return httpx.Response(500, text="boom")
            return _chat_response(ANSWER)

        providers = [_openai(), _openai("Forge", "https://forge.example/v1")]
        assert _complete(providers, handler) == ANSWER

    def test_empty_answer_is_a_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return _chat_response("   ")

        with pytest.raises(LLMProviderError) as excinfo:
            _complete([_openai()], handler)
        assert "did not include text content" in str(excinfo.value)

    def test_all_rate_limited(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(429, text="slow down")

        providers = [_openai(), _openai("Forge", "https://forge.example/v1")]
        with pytest.raises(RateLimitedError):
            _complete(providers, handler)

    def test_mixed_failures(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "api.openai.com":
                return httpx.Response(429)
            return httpx.Response(401, text="bad key")

        providers = [_openai(), _openai("Forge", "https://forge.example/v1")]
        with pytest.raises(LLMProviderError) as excinfo:
            _complete(providers, handler)

        assert len(excinfo.value.errors) == 2
        assert excinfo.value.errors[0].startswith("[OpenAI] rate limited")
        assert excinfo.value.errors[1].startswith("[Forge] 401")


class TestGeminiProvider:
    GEMINI = LLMProvider(name="Gemini", kind="gemini", model="gemini-2.5-flash", api_key="g")

    def test_gemini_first(self, monkeypatch: pytest.MonkeyPatch) -> None:
        calls: list[str] = []

        async def fake_gemini(self: LLMClient, provider: LLMProvider, messages: Any, schema: Any) -> str:
            calls.append(provider.name)
            return ANSWER

        monkeypatch.setattr(LLMClient, "_call_gemini", fake_gemini)

        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("OpenAI should not be called")

        assert _complete([self.GEMINI, _openai()], handler) == ANSWER
        assert calls == ["Gemini"]

    def test_timeout_moves_on(self, monkeypatch: pytest.MonkeyPatch) -> None:
        async def slow_gemini(self: LLMClient, provider: LLMProvider, messages: Any, schema: Any) -> str:
            await asyncio.sleep(5)
            return ANSWER

        monkeypatch.setattr(LLMClient, "_call_gemini", slow_gemini)

        def handler(request: httpx.Request) -> httpx.Response:
            return _chat_response('{"name": "Fallback"}')

        result = _complete([self.GEMINI, _openai()], handler, timeout_seconds=0.05)
        assert result == '{"name": "Fallback"}'

    def test_client_reused_across_calls(self, monkeypatch: pytest.MonkeyPatch) -> None:
        created: list[str] = []
        requests: list[dict[str, Any]] = []

        class FakeModels:
            async def generate_content(self, **kwargs: Any) -> Any:
                requests.append(kwargs)
                return type("Response", (), {"text": ANSWER})()

        class FakeClient:
            def __init__(self, api_key: str) -> None:
                created.append(api_key)
                self.aio = type("Aio", (), {"models": FakeModels()})()

        monkeypatch.setattr(llm_client_module.genai, "Client", FakeClient)

        async def main() -> list[str]:
            client = LLMClient([self.GEMINI])
            return [await client.complete_json(MESSAGES, schema=SCHEMA, schema_name="recipe_extraction") for _ in range(2)]

        assert asyncio.run(main()) == [ANSWER, ANSWER]
        assert created == ["g"]
        assert [r["model"] for r in requests] == ["gemini-2.5-flash", "gemini-2.5-flash"]
