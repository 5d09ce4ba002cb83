# src/app/deps.py (configuração e sintetizador expostos como dependências)

from __future__ import annotations

from fastapi import Depends

from src.app.config import Settings, get_settings
from src.services.ingest import build_synthesizer
from src.services.synthesizer import RecipeSynthesizer


def get_app_settings() -> Settings:
    return get_settings()


def get_synthesizer(settings: Settings = Depends(get_app_settings)) -> RecipeSynthesizer:
    return build_synthesizer(settings)
