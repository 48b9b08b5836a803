# -*- coding: utf-8 -*-
"""Records — Pydantic models.

Field names on the wire (and in the SQLite table) are camelCase; the Python
attributes are snake_case with aliases. Dump with ``by_alias=True``.
"""

from __future__ import annotations

from datetime import date as calendar_date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from ..errors import ValidationFailure

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


class IconId(str, Enum):
    pearl = "pearl"
    fruit = "fruit"
    coffee = "coffee"
    milk = "milk"
    matcha = "matcha"


DEFAULT_ICON_ID = IconId.pearl

# Wire names of every persisted column, in table order.
RECORD_COLUMNS = (
    "id",
    "date",
    "name",
    "imageBase64",
    "price",
    "sugarIce",
    "rating",
    "shop",
    "moodNote",
    "iconId",
    "createdAt",
    "brand",
    "ingredients",
    "calories",
)


def resolve_icon_id(value: Any) -> IconId:
    """Unknown or missing icon ids fall back to the default icon."""
    if isinstance(value, IconId):
        return value
    if isinstance(value, str):
        try:
            return IconId(value.strip().lower())
        except ValueError:
            pass
    return DEFAULT_ICON_ID


def normalize_created_at(value: Any) -> str:
    """Normalize an ISO-8601 timestamp to UTC millisecond form (``...T12:00:00.000Z``).

    Naive timestamps are taken as UTC. The fixed shape keeps lexical order equal
    to chronological order, both in SQL ``ORDER BY`` and in Python sorts.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError as exc:
            raise ValueError(f"createdAt is not an ISO-8601 timestamp: {value!r}") from exc
    else:
        raise ValueError("createdAt must be an ISO-8601 string")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    try:
        dt = dt.astimezone(timezone.utc)
    except (OverflowError, ValueError) as exc:
        # 0001-01-01 and 9999-12-31 with an offset fall outside the datetime range in UTC.
        raise ValueError(f"createdAt is out of range once converted to UTC: {value!r}") from exc
    return (
        f"{dt.year:04d}-{dt.month:02d}-{dt.day:02d}T"
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d}.{dt.microsecond // 1000:03d}Z"
    )


def utc_now_iso() -> str:
    return normalize_created_at(datetime.now(timezone.utc))


def check_calendar_date(value: Optional[str]) -> Optional[str]:
    """``YYYY-MM-DD`` must also name a real day (no 2024-13-45)."""
    if value is None:
        return value
    try:
        calendar_date.fromisoformat(value)
    except ValueError as exc:
        raise ValueError(f"date is not a calendar day: {value!r}") from exc
    return value


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


class Record(BaseModel):
    """One logged drink."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., min_length=1)
    date: str = Field(..., pattern=DATE_PATTERN, description="YYYY-MM-DD")
    name: str = Field(..., min_length=1)
    image_base64: Optional[str] = Field(None, alias="imageBase64")
    price: Optional[str] = Field(None, description="Free-text price, e.g. '18'")
    sugar_ice: Optional[str] = Field(None, alias="sugarIce")
    rating: Optional[int] = Field(None, ge=1, le=5)
    shop: Optional[str] = None
    mood_note: Optional[str] = Field(None, alias="moodNote")
    icon_id: IconId = Field(DEFAULT_ICON_ID, alias="iconId")
    created_at: str = Field(..., alias="createdAt", description="ISO-8601, UTC")
    brand: Optional[str] = None
    ingredients: Optional[str] = None
    calories: Optional[int] = Field(None, ge=0, description="kcal")

    @field_validator("*", mode="before")
    @classmethod
    def _strip_strings(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("icon_id", mode="before")
    @classmethod
    def _default_icon(cls, value: Any) -> IconId:
        return resolve_icon_id(value)

    @field_validator("date")
    @classmethod
    def _real_date(cls, value: Optional[str]) -> Optional[str]:
        return check_calendar_date(value)

    @field_validator("created_at", mode="before")
    @classmethod
    def _normalize_created_at(cls, value: Any) -> Any:
        if value is None:
            return value
        return normalize_created_at(value)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class RecordPatch(BaseModel):
    """Partial update.

    A key absent from the payload keeps the stored value; a key sent as
    ``null`` or ``""`` clears it. ``date`` and ``name`` cannot be cleared and a
    cleared ``iconId`` resets to the default icon. ``id`` and ``createdAt`` are
    ignored.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    date: Optional[str] = Field(None, pattern=DATE_PATTERN)
    name: Optional[str] = Field(None, min_length=1)
    image_base64: Optional[str] = Field(None, alias="imageBase64")
    price: Optional[str] = None
    sugar_ice: Optional[str] = Field(None, alias="sugarIce")
    rating: Optional[int] = Field(None, ge=1, le=5)
    shop: Optional[str] = None
    mood_note: Optional[str] = Field(None, alias="moodNote")
    icon_id: Optional[IconId] = Field(None, alias="iconId")
    brand: Optional[str] = None
    ingredients: Optional[str] = None
    calories: Optional[int] = Field(None, ge=0)

    @field_validator("*", mode="before")
    @classmethod
    def _strip_strings(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("icon_id", mode="before")
    @classmethod
    def _default_icon(cls, value: Any) -> IconId:
        return resolve_icon_id(value)

    @field_validator("date")
    @classmethod
    def _real_date(cls, value: Optional[str]) -> Optional[str]:
        return check_calendar_date(value)

    @model_validator(mode="after")
    def _required_fields_stay_set(self) -> "RecordPatch":
        for field in ("date", "name"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be cleared")
        return self

    def changes(self) -> Dict[str, Any]:
        """Wire-named dict of the fields present in the patch."""
        return self.model_dump(by_alias=True, exclude_unset=True, mode="json")


def _validation_message(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(x) for x in err.get("loc", ()) if x != "__root__")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts)


def parse_record(payload: Mapping[str, Any]) -> Record:
    try:
        return Record.model_validate(dict(payload))
    except ValidationError as exc:
        raise ValidationFailure(_validation_message(exc)) from exc


def parse_patch(payload: Mapping[str, Any] | RecordPatch) -> RecordPatch:
    if isinstance(payload, RecordPatch):
        return payload
    try:
        return RecordPatch.model_validate(dict(payload))
    except ValidationError as exc:
        raise ValidationFailure(_validation_message(exc)) from exc


def apply_patch(record: Record, patch: RecordPatch) -> Record:
    """Shallow field-by-field merge; ``id`` and ``createdAt`` never change."""
    merged = record.to_wire()
    merged.update(patch.changes())
    merged["id"] = record.id
    merged["createdAt"] = record.created_at
    return parse_record(merged)


def new_record(fields: Mapping[str, Any]) -> Record:
    """Build a record for a create intent with a fresh ``id`` and ``createdAt``."""
    payload = dict(fields)
    payload["id"] = str(uuid4())
    payload["createdAt"] = utc_now_iso()
    return parse_record(payload)


class RecordCreateResponse(BaseModel):
    success: bool = True
    id: str


class SuccessResponse(BaseModel):
    success: bool = True


class HealthResponse(BaseModel):
    status: str = "ok"
    time: str


RecordsByDate = Dict[str, List[Record]]
