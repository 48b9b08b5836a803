# -*- coding: utf-8 -*-
"""Vision — API endpoints."""

from __future__ import annotations

import base64
import binascii

import httpx
from fastapi import APIRouter, HTTPException

from ..config import settings
from .models import RecognizeRequest, RecognizeResponse
from .service import VisionNotConfigured, prefill_fields, recognize_drink, split_data_url

router = APIRouter(prefix="/api/vision", tags=["Vision"])


def _check_image_or_400(image_base64: str, max_bytes: int) -> None:
    _, data = split_data_url(image_base64)
    try:
        decoded = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise HTTPException(status_code=400, detail=f"Invalid base64 image: {exc}") from exc
    if len(decoded) > max_bytes:
        raise HTTPException(status_code=400, detail=f"Image too large: {len(decoded)} bytes > {max_bytes}")


@router.post("/recognize", response_model=RecognizeResponse, summary="Read a drink photo (no storage)")
def recognize(request: RecognizeRequest):
    _check_image_or_400(request.image_base64, max_bytes=settings.vision_max_image_bytes)
    try:
        guess, model_name = recognize_drink(image_base64=request.image_base64, image_mime=request.image_mime)
    except VisionNotConfigured as exc:
        raise HTTPException(status_code=503, detail=f"Vision recognition unavailable: {exc}") from exc
    except httpx.HTTPError as exc:
        raise HTTPException(status_code=502, detail=f"Vision model call failed: {exc}") from exc

    return RecognizeResponse(guess=guess, prefill=prefill_fields(guess), model=model_name)
