# -*- coding: utf-8 -*-
"""Vision — drink photo recognition via an OpenAI-compatible VL endpoint."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import httpx

from ..config import settings
from ..records.models import IconId
from .models import DrinkGuess

logger = logging.getLogger(__name__)


class VisionNotConfigured(RuntimeError):
    pass


@dataclass(frozen=True)
class VisionSettings:
    base_url: str
    api_key: str
    model: str
    timeout: float
    max_tokens: int


def resolve_vision_settings() -> VisionSettings:
    if not settings.qwen_api_key:
        raise VisionNotConfigured("QWEN_API_KEY is not set")
    return VisionSettings(
        base_url=settings.qwen_base_url.rstrip("/"),
        api_key=settings.qwen_api_key,
        model=settings.qwen_vl_model,
        timeout=settings.qwen_timeout,
        max_tokens=settings.qwen_max_tokens,
    )


_PROMPT = (
    "You read photos of bubble tea and coffee cups, receipts and delivery order screenshots. "
    "Extract: brand, name (drink name), ingredients (toppings, comma separated), sugar (sugar level), "
    "ice (ice level or hot/warm), price (digits only), shop (store/branch name), "
    "calories (estimated kcal for this drink as a number). "
    "Return STRICT JSON only with exactly these keys: "
    '{"brand": "", "name": "", "ingredients": "", "sugar": "", "ice": "", "price": "", "shop": "", "calories": 0}. '
    "Use an empty string for anything you cannot read. No markdown, no extra text."
)


def split_data_url(image: str, default_mime: str = "image/jpeg") -> Tuple[str, str]:
    """``data:image/png;base64,AAAA`` -> ``("image/png", "AAAA")``; raw base64 passes through."""
    image = image.strip()
    if image.startswith("data:") and "," in image:
        header, data = image.split(",", 1)
        mime = header[5:].split(";", 1)[0] or default_mime
        return mime, data
    return default_mime, image


def _iter_json_object_candidates(text: str) -> List[str]:
    """Balanced {...} spans in arbitrary text, respecting string literals."""
    cleaned = text.strip()
    cleaned = re.sub(r"^```(?:json)?\s*", "", cleaned, flags=re.IGNORECASE)
    cleaned = re.sub(r"\s*```$", "", cleaned)

    candidates: List[str] = []
    in_str = False
    escaped = False
    depth = 0
    start_idx: int | None = None

    for i, ch in enumerate(cleaned):
        if in_str:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == "\"":
                in_str = False
            continue

        if ch == "\"":
            in_str = True
        elif ch == "{":
            if depth == 0:
                start_idx = i
            depth += 1
        elif ch == "}" and depth > 0:
            depth -= 1
            if depth == 0 and start_idx is not None:
                candidates.append(cleaned[start_idx : i + 1])
                start_idx = None

    return candidates


def _sanitize_json_like(text: str) -> str:
    # Full-width punctuation, curly quotes and trailing commas.
    cleaned = text.replace("：", ":").replace("，", ",")
    cleaned = cleaned.replace("“", "\"").replace("”", "\"")
    return re.sub(r",\s*([}\]])", r"\1", cleaned)


def parse_model_output(content: str) -> Dict[str, Any]:
    last_error: Exception | None = None
    for candidate in _iter_json_object_candidates(content):
        for attempt in (candidate, _sanitize_json_like(candidate)):
            try:
                parsed = json.loads(attempt)
            except ValueError as exc:
                last_error = exc
                continue
            if isinstance(parsed, dict):
                return parsed
    raise ValueError(f"Model output does not contain a JSON object: {last_error}")


_NUM_RE = re.compile(r"\d+(?:\.\d+)?")


def _coerce_calories(value: Any) -> int:
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return max(0, int(round(value)))
    if isinstance(value, str):
        m = _NUM_RE.search(value.replace(",", ""))
        if m:
            return int(round(float(m.group(0))))
    return 0


def normalize_guess(parsed: Dict[str, Any]) -> DrinkGuess:
    known = {k: parsed.get(k) for k in ("brand", "name", "ingredients", "sugar", "ice", "price", "shop")}
    known["calories"] = _coerce_calories(parsed.get("calories"))
    return DrinkGuess.model_validate(known)


_ICON_KEYWORDS: List[Tuple[IconId, Tuple[str, ...]]] = [
    (IconId.coffee, ("咖啡", "拿铁", "美式", "瑞幸", "星巴克", "coffee", "latte", "americano")),
    (IconId.matcha, ("抹茶", "绿茶", "茉莉", "matcha")),
    (IconId.fruit, ("果", "柠檬", "橙", "葡萄", "草莓", "芒", "fruit", "lemon", "mango")),
    (IconId.milk, ("鲜奶", "牛乳", "纯奶", "fresh milk")),
]


def guess_icon(name: str, brand: str) -> IconId:
    text = f"{name} {brand}".lower()
    for icon, keywords in _ICON_KEYWORDS:
        if any(k in text for k in keywords):
            return icon
    return IconId.pearl


def prefill_fields(guess: DrinkGuess) -> Dict[str, Any]:
    """Record fields (wire names) worth pre-filling from a guess; empty values are left out."""
    out: Dict[str, Any] = {}
    for field in ("name", "brand", "ingredients", "price", "shop"):
        value = getattr(guess, field)
        if value:
            out[field] = value
    sugar_ice = " / ".join(v for v in (guess.sugar, guess.ice) if v)
    if sugar_ice:
        out["sugarIce"] = sugar_ice
    if guess.calories > 0:
        out["calories"] = guess.calories
    out["iconId"] = guess_icon(guess.name, guess.brand).value
    return out


def _extract_content(data: object) -> str:
    if not isinstance(data, dict):
        return ""
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return ""
    message = choices[0].get("message") if isinstance(choices[0], dict) else None
    content = message.get("content") if isinstance(message, dict) else None
    if isinstance(content, list):
        return "".join(p.get("text", "") for p in content if isinstance(p, dict))
    return content if isinstance(content, str) else ""


def recognize_drink(*, image_base64: str, image_mime: Optional[str] = None) -> Tuple[DrinkGuess, str]:
    """Ask the VL model about a drink photo.

    Raises ``VisionNotConfigured`` without an API key and ``httpx.HTTPError`` when
    the call fails. Unparsable model output degrades to an empty guess.
    """
    cfg = resolve_vision_settings()
    mime, data = split_data_url(image_base64, default_mime=image_mime or "image/jpeg")

    payload: Dict[str, Any] = {
        "model": cfg.model,
        "messages": [
            {
                "role": "user",
                "content": [
                    {"type": "image_url", "image_url": {"url": f"data:{mime};base64,{data}"}},
                    {"type": "text", "text": _PROMPT},
                ],
            }
        ],
        "max_tokens": cfg.max_tokens,
        "enable_search": True,
    }
    headers = {"Authorization": f"Bearer {cfg.api_key}", "Content-Type": "application/json"}

    with httpx.Client(timeout=cfg.timeout, follow_redirects=True) as client:
        resp = client.post(f"{cfg.base_url}/chat/completions", headers=headers, json=payload)
        resp.raise_for_status()
        body = resp.json()

    content = _extract_content(body)
    try:
        parsed = parse_model_output(content)
    except ValueError as exc:
        logger.warning("drink vision output parse failed: %s (raw: %s)", exc, content[:200])
        return DrinkGuess(), cfg.model
    return normalize_guess(parsed), cfg.model
