"""API route definitions."""

import asyncio
import time
from fastapi import APIRouter, UploadFile, File, Form, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
import logging

from ..models import (
    DetectionModeParam,
    DetectionResponse,
    IngredientWeightOut,
    ErrorResponse,
    HealthResponse,
)
from ..services import validate_image, CancellationToken, EngineMode
from ..exceptions import VisionError
from ..config import get_settings
from .. import __version__

logger = logging.getLogger(__name__)
router = APIRouter()

DISCONNECT_POLL_SECONDS = 0.2


def _get_engine(request: Request):
    return getattr(request.app.state, "engine", None)


async def cancel_on_disconnect(
    request: Request,
    token: CancellationToken,
    poll_seconds: float = DISCONNECT_POLL_SECONDS,
) -> None:
    """Cancel the token once the client goes away."""
    while not token.cancelled:
        if await request.is_disconnected():
            logger.info("Client disconnected; cancelling detection")
            token.cancel()
            return
        await asyncio.sleep(poll_seconds)


@router.get("/health", response_model=HealthResponse, tags=["System"])
async def health_check(request: Request):
    """Check API health and whether the detection engine is loaded."""
    engine = _get_engine(request)
    return HealthResponse(
        status="healthy",
        version=__version__,
        engine_ready=engine is not None,
        food_data_version=engine.food_data.version if engine is not None else None,
    )


@router.post(
    "/detect",
    response_model=DetectionResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid input"},
    },
    tags=["Detection"]
)
async def detect_ingredients(
    request: Request,
    image: UploadFile = File(..., description="Refrigerator photo"),
    mode: DetectionModeParam = Form(DetectionModeParam.COMBINED, description="Detection mode"),
):
    """
    Detect ingredients in a refrigerator photo.

    `combined` localizes objects and reads each region (text, then web, then
    label); the other modes run a single recognition feature on the whole image.
    """
    start_time = time.time()
    settings = get_settings()

    # Read image bytes
    try:
        image_bytes = await image.read()
    except Exception as e:
        logger.error(f"Failed to read uploaded image: {e}")
        raise HTTPException(status_code=400, detail="Failed to read uploaded image")

    # Validate image
    is_valid, error_msg = validate_image(image_bytes, image.filename or "unknown", settings)
    if not is_valid:
        return DetectionResponse(success=False, mode=mode, error=error_msg)

    engine = _get_engine(request)
    if engine is None:
        return DetectionResponse(
            success=False,
            mode=mode,
            error="Detection engine not configured. Check the server settings."
        )

    token = CancellationToken()
    watcher = asyncio.create_task(cancel_on_disconnect(request, token))
    try:
        result = await run_in_threadpool(engine.detect, EngineMode(mode.value), image_bytes, token)
    except VisionError as e:
        logger.warning(f"Detection failed ({mode.value}): {e}")
        return DetectionResponse(
            success=False,
            mode=mode,
            error=e.user_message,
            processing_time_ms=int((time.time() - start_time) * 1000)
        )
    finally:
        watcher.cancel()

    total_time = int((time.time() - start_time) * 1000)
    logger.info(f"Detection ({mode.value}) found {len(result.ingredients)} ingredients in {total_time}ms")

    weights = None
    used_fallback = None
    if mode == DetectionModeParam.COMBINED:
        used_fallback = result.used_fallback
        weights = [
            IngredientWeightOut(
                name=w.name,
                count=w.count,
                max_object_score=w.max_object_score,
                max_mode_score=w.max_web_score,
                max_integrated_score=w.max_integrated_score,
                modes=sorted(m.value for m in w.modes),
            )
            for w in result.weights
        ]

    return DetectionResponse(
        success=True,
        mode=mode,
        ingredients=result.ingredients,
        weights=weights,
        used_fallback=used_fallback,
        processing_time_ms=total_time
    )
