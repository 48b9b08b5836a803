# -*- coding: utf-8 -*-
"""Error taxonomy shared by the Record Store, its HTTP client and the sync layer."""

from __future__ import annotations

from typing import Optional


class RecordError(Exception):
    """Base class for record persistence/sync failures."""


class ValidationFailure(RecordError):
    """Required field missing/invalid, or duplicate id on insert."""


class NotFound(RecordError):
    def __init__(self, record_id: str) -> None:
        super().__init__(f"Record not found: {record_id}")
        self.record_id = record_id


class IOFailure(RecordError):
    """Storage engine fault (disk, corruption, locked database)."""


class TransportFailure(RecordError):
    """A call to the remote Record Store did not complete successfully."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
