# -*- coding: utf-8 -*-
"""Vision — Pydantic models."""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator


class DrinkGuess(BaseModel):
    """Best-effort reading of a cup label, receipt or order screenshot.

    Every field may be empty; ``calories`` is 0 when unknown.
    """

    brand: str = ""
    name: str = ""
    ingredients: str = ""
    sugar: str = ""
    ice: str = ""
    price: str = ""
    shop: str = ""
    calories: int = Field(0, ge=0)

    @field_validator("brand", "name", "ingredients", "sugar", "ice", "price", "shop", mode="before")
    @classmethod
    def _coerce_text(cls, value: object) -> str:
        # Models return null, numbers (price) or lists (ingredients) here.
        if value is None:
            return ""
        if isinstance(value, list):
            return ", ".join(str(v).strip() for v in value if v is not None and str(v).strip())
        return str(value).strip()


class RecognizeRequest(BaseModel):
    image_base64: str = Field(..., min_length=16, description="Raw base64 or a data: URL")
    image_mime: Optional[str] = Field(None, pattern=r"^image/(jpeg|jpg|png|webp|heic|heif)$")


class RecognizeResponse(BaseModel):
    guess: DrinkGuess
    prefill: Dict[str, Any] = Field(default_factory=dict, description="Record fields to pre-fill (wire names)")
    model: str
