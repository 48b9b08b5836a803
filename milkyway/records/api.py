# -*- coding: utf-8 -*-
"""Records — API endpoints."""

from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends, HTTPException

from ..errors import IOFailure, NotFound, ValidationFailure
from .models import Record, RecordCreateResponse, RecordsByDate, SuccessResponse, parse_patch, parse_record
from .storage import RecordStore

router = APIRouter(prefix="/api/records", tags=["Records"])

_store: RecordStore | None = None


def get_record_store() -> RecordStore:
    global _store
    if _store is None:
        _store = RecordStore()
    return _store


@router.get("", response_model=List[Record], summary="List all records (newest first)")
def list_records(store: RecordStore = Depends(get_record_store)):
    try:
        return store.list_records()
    except IOFailure as exc:
        raise HTTPException(status_code=500, detail=f"Failed to list records: {exc}") from exc


@router.get("/month/{year}/{month}", response_model=Dict[str, List[Record]], summary="Records of one month by date")
def list_month(year: int, month: int, store: RecordStore = Depends(get_record_store)) -> RecordsByDate:
    try:
        return store.list_by_month(year, month)
    except ValidationFailure as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except IOFailure as exc:
        raise HTTPException(status_code=500, detail=f"Failed to list month: {exc}") from exc


@router.get("/{record_id}", response_model=Record, summary="Get one record")
def get_record(record_id: str, store: RecordStore = Depends(get_record_store)):
    try:
        return store.get(record_id)
    except NotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except IOFailure as exc:
        raise HTTPException(status_code=500, detail=f"Failed to load record: {exc}") from exc


@router.post("", status_code=201, response_model=RecordCreateResponse, summary="Create a record")
def create_record(
    payload: Dict[str, Any] = Body(...),
    store: RecordStore = Depends(get_record_store),
):
    try:
        record_id = store.insert(parse_record(payload))
    except ValidationFailure as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except IOFailure as exc:
        raise HTTPException(status_code=500, detail=f"Failed to save record: {exc}") from exc
    return RecordCreateResponse(id=record_id)


@router.put("/{record_id}", response_model=SuccessResponse, summary="Partially update a record")
def update_record(
    record_id: str,
    payload: Dict[str, Any] = Body(...),
    store: RecordStore = Depends(get_record_store),
):
    try:
        store.update(record_id, parse_patch(payload))
    except ValidationFailure as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except NotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except IOFailure as exc:
        raise HTTPException(status_code=500, detail=f"Failed to update record: {exc}") from exc
    return SuccessResponse()


@router.delete("/{record_id}", response_model=SuccessResponse, summary="Delete a record (idempotent)")
def delete_record(record_id: str, store: RecordStore = Depends(get_record_store)):
    try:
        store.delete(record_id)
    except IOFailure as exc:
        raise HTTPException(status_code=500, detail=f"Failed to delete record: {exc}") from exc
    return SuccessResponse()
