from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# limite do payload aceito pelos provedores compatíveis com OpenAI
MAX_TOKENS_CEILING = 16000


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8-sig",
        case_sensitive=False,
        extra="ignore",
    )

    GEMINI_API_KEY: Optional[str] = None
    GEMINI_MODEL: str = "gemini-2.5-flash"
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    OPENAI_BASE_URL: str = "https://api.openai.com/v1"
    FORGE_API_URL: Optional[str] = None
    FORGE_API_KEY: Optional[str] = None

    LLM_MAX_TOKENS: int = 8192
    LLM_TIMEOUT_SECONDS: float = 60.0
    FETCH_TIMEOUT_SECONDS: float = 15.0
    WEB_CONTEXT_MAX_CHARS: int = 15000
    YTDLP_FALLBACK_ENABLED: bool = True
    USER_AGENT: Optional[str] = None

    LOG_LEVEL: str = "INFO"
    APP_ENV: str = "local"
    FRONTEND_CORS_ORIGINS: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://localhost:3000"],
    )

    @field_validator("LLM_MAX_TOKENS")
    @classmethod
    def _cap_max_tokens(cls, value: int) -> int:
        return min(value, MAX_TOKENS_CEILING)

    @field_validator("LOG_LEVEL")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings()
