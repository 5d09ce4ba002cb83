# src/app/routers/ingest.py
from __future__ import annotations

import logging
import time

from fastapi import APIRouter, Depends, HTTPException, Query

from src.app.config import Settings
from src.app.deps import get_app_settings, get_synthesizer
from src.app.schemas.ingest import DetectResponse, ParseRequest, ParseResponse, RecipeResponse
from src.services.errors import InvalidURLError, RateLimitedError, RecipeParseError
from src.services.ids import detect_platform
from src.services.ingest import parse_recipe_from_url
from src.services.synthesizer import RecipeSynthesizer

log = logging.getLogger("ingest")
router = APIRouter(prefix="/recipes", tags=["ingest"])


@router.post("/parse", response_model=ParseResponse)
async def parse_recipe(
    body: ParseRequest,
    settings: Settings = Depends(get_app_settings),
    synthesizer: RecipeSynthesizer = Depends(get_synthesizer),
) -> ParseResponse:
    t0 = time.time()
    log.info("ingest.start url=%s", body.url)
    try:
        recipe = await parse_recipe_from_url(body.url, synthesizer=synthesizer, settings=settings)
    except InvalidURLError as exc:
        log.info("ingest.invalid_url url=%s", body.url)
        raise HTTPException(status_code=400, detail="Invalid URL") from exc
    except RateLimitedError as exc:
        dt = time.time() - t0
        log.warning("ingest.rate_limited url=%s dt=%.2fs", body.url, dt)
        raise HTTPException(status_code=429, detail="Limite da IA atingido. Tente novamente em alguns instantes.") from exc
    except RecipeParseError as exc:
        dt = time.time() - t0
        log.info("ingest.no_recipe url=%s dt=%.2fs", body.url, dt)
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    dt = time.time() - t0
    log.info("ingest.ok url=%s source=%s dt=%.2fs", body.url, recipe.source, dt)
    return ParseResponse(recipe=RecipeResponse.from_parsed(recipe))


@router.get("/detect", response_model=DetectResponse)
def detect(url: str = Query(..., min_length=1)) -> DetectResponse:
    detected = detect_platform(url)
    if detected is None:
        return DetectResponse()
    return DetectResponse(platform=detected.platform, videoId=detected.video_id, isVideo=True)
