from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Literal, Optional, Sequence

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from src.services.errors import (
    LLMConfigurationError,
    LLMProviderError,
    LLMResponseError,
    RateLimitedError,
)

logger = logging.getLogger(__name__)

ProviderKind = Literal["gemini", "openai"]
Message = dict[str, str]

DEFAULT_TIMEOUT_SECONDS = 60.0
DEFAULT_MAX_TOKENS = 8192


@dataclass(frozen=True)
class LLMProvider:
    name: str
    kind: ProviderKind
    model: str
    api_key: str
    base_url: Optional[str] = None


def build_providers(settings: Any) -> list[LLMProvider]:
    """Provedores na ordem de preferência: Gemini, OpenAI, Forge. Só entram os que têm chave."""
    providers: list[LLMProvider] = []

    if settings.GEMINI_API_KEY:
        providers.append(
            LLMProvider(
                name="Gemini",
                kind="gemini",
                model=settings.GEMINI_MODEL,
                api_key=settings.GEMINI_API_KEY,
            )
        )

    if settings.OPENAI_API_KEY:
        providers.append(
            LLMProvider(
                name="OpenAI",
                kind="openai",
                model=settings.OPENAI_MODEL,
                api_key=settings.OPENAI_API_KEY,
                base_url=settings.OPENAI_BASE_URL.rstrip("/"),
            )
        )

    forge_url = (settings.FORGE_API_URL or "").strip()
    if settings.FORGE_API_KEY and forge_url:
        providers.append(
            LLMProvider(
                name="Forge",
                kind="openai",
                model=settings.OPENAI_MODEL,
                api_key=settings.FORGE_API_KEY,
                base_url=f"{forge_url.rstrip('/')}/v1",
            )
        )

    return providers


class _ProviderRateLimited(Exception):
    pass


def _is_rate_limit(error: genai_errors.APIError) -> bool:
    code = getattr(error, "code", None) or getattr(error, "status_code", None)
    return code == 429 or "RESOURCE_EXHAUSTED" in str(error)


def _split_messages(messages: Sequence[Message]) -> tuple[Optional[str], str]:
    system = "\n\n".join(m["content"] for m in messages if m.get("role") == "system")
    user = "\n\n".join(m["content"] for m in messages if m.get("role") != "system")
    return system or None, user


class LLMClient:
    """JSON completions over an ordered list of providers.

    Each provider gets one attempt bounded by ``timeout_seconds``; the first
    non-empty answer wins. When every provider was rate limited the caller
    gets ``RateLimitedError`` so it can ask the user to retry later.
    """

    def __init__(
        self,
        providers: Sequence[LLMProvider],
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.providers = list(providers)
        self.timeout_seconds = timeout_seconds
        self.max_tokens = max_tokens
        self._http = http_client
        self._gemini_clients: dict[str, genai.Client] = {}

    @classmethod
    def from_settings(cls, settings: Any, http_client: httpx.AsyncClient | None = None) -> "LLMClient":
        return cls(
            build_providers(settings),
            timeout_seconds=settings.LLM_TIMEOUT_SECONDS,
            max_tokens=settings.LLM_MAX_TOKENS,
            http_client=http_client,
        )

    async def complete_json(
        self,
        messages: Sequence[Message],
        *,
        schema: dict[str, Any],
        schema_name: str,
    ) -> str:
        if not self.providers:
            raise LLMConfigurationError(
                "API key is not configured. Set GEMINI_API_KEY (recommended), OPENAI_API_KEY, or FORGE_API_KEY."
            )

        errors: list[str] = []
        rate_limited = 0
        for provider in self.providers:
            try:
                text = await asyncio.wait_for(
                    self._complete(provider, messages, schema, schema_name),
                    timeout=self.timeout_seconds,
                )
            except _ProviderRateLimited as error:
                rate_limited += 1
                errors.append(f"[{provider.name}] rate limited: {error}")
                logger.warning("[llm] %s rate limited", provider.name)
                continue
            except asyncio.TimeoutError:
                errors.append(f"[{provider.name}] timed out after {self.timeout_seconds}s")
                logger.warning("[llm] %s timed out after %ss", provider.name, self.timeout_seconds)
                continue
            except (
                genai_errors.APIError,
                httpx.HTTPError,
                LLMResponseError,
                ValueError,
                KeyError,
                IndexError,
                TypeError,
            ) as error:
                errors.append(f"[{provider.name}] {error}")
                logger.warning("[llm] %s failed: %s", provider.name, error)
                continue

            logger.info("[llm] %s answered (%d chars)", provider.name, len(text))
            return text

        if rate_limited == len(self.providers):
            raise RateLimitedError("Limite da IA atingido. Tente novamente em alguns instantes.")
        raise LLMProviderError(errors)

    async def _complete(
        self,
        provider: LLMProvider,
        messages: Sequence[Message],
        schema: dict[str, Any],
        schema_name: str,
    ) -> str:
        if provider.kind == "gemini":
            text = await self._call_gemini(provider, messages, schema)
        else:
            text = await self._call_openai(provider, messages, schema, schema_name)

        if not text or not text.strip():
            raise LLMResponseError("Model response did not include text content.")
        return text

    def _gemini_client(self, provider: LLMProvider) -> genai.Client:
        # um client por chave, reaproveitado entre chamadas
        client = self._gemini_clients.get(provider.api_key)
        if client is None:
            client = genai.Client(api_key=provider.api_key)
            self._gemini_clients[provider.api_key] = client
        return client

    async def _call_gemini(
        self,
        provider: LLMProvider,
        messages: Sequence[Message],
        schema: dict[str, Any],
    ) -> Optional[str]:
        system, user = _split_messages(messages)
        client = self._gemini_client(provider)
        try:
            response = await client.aio.models.generate_content(
                model=provider.model,
                contents=user,
                config=types.GenerateContentConfig(
                    system_instruction=system,
                    response_mime_type="application/json",
                    response_json_schema=schema,
                    max_output_tokens=self.max_tokens,
                    temperature=0.0,
                ),
            )
        except genai_errors.APIError as error:
            if _is_rate_limit(error):
                raise _ProviderRateLimited(str(error)) from error
            raise
        return response.text

    async def _call_openai(
        self,
        provider: LLMProvider,
        messages: Sequence[Message],
        schema: dict[str, Any],
        schema_name: str,
    ) -> Optional[str]:
        payload = {
            "model": provider.model,
            "messages": list(messages),
            "max_tokens": self.max_tokens,
            "response_format": {
                "type": "json_schema",
                "json_schema": {"name": schema_name, "strict": False, "schema": schema},
            },
        }
        headers = {"Authorization": f"Bearer {provider.api_key}"}
        url = f"{provider.base_url}/chat/completions"

        if self._http is not None:
            response = await self._http.post(url, json=payload, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as http:
                response = await http.post(url, json=payload, headers=headers)

        if response.status_code == 429:
            raise _ProviderRateLimited(f"{response.status_code} {response.text[:200]}")
        if response.is_error:
            raise LLMResponseError(f"{response.status_code} {response.reason_phrase}: {response.text[:500]}")

        content = response.json()["choices"][0]["message"]["content"]
        if isinstance(content, list):
            content = "".join(part.get("text", "") for part in content if isinstance(part, dict))
        return content
