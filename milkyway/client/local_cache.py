# -*- coding: utf-8 -*-
"""Local Cache — client-side JSON mirror of the record list.

Synchronous and never raising: a missing or corrupt file reads as an empty
list, and a failed write (quota or disk) is logged while the in-memory list
keeps the mutation for this session.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Iterable, List, Mapping

from pydantic import ValidationError

from ..config import settings
from ..errors import ValidationFailure
from ..records.models import Record, RecordPatch, apply_patch

logger = logging.getLogger(__name__)


def _load(path: Path) -> List[Record]:
    if not path.exists():
        return []
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning("local cache unreadable, starting empty: %s", exc)
        return []
    if not isinstance(raw, list):
        logger.warning("local cache is not a list, starting empty")
        return []

    records: List[Record] = []
    for item in raw:
        try:
            records.append(Record.model_validate(item))
        except ValidationError:
            continue
    return records


class LocalCache:
    def __init__(self, path: Path | None = None, max_bytes: int | None = None) -> None:
        self.path = path or settings.cache_path
        self.max_bytes = settings.cache_max_bytes if max_bytes is None else max_bytes
        self._records: List[Record] = _load(self.path)

    def read_all(self) -> List[Record]:
        return [r.model_copy() for r in self._records]

    def replace_all(self, records: Iterable[Record]) -> None:
        self._records = [r.model_copy() for r in records]
        self._save()

    def append(self, record: Record) -> None:
        self._records.append(record.model_copy())
        self._save()

    def merge_patch(self, record_id: str, patch: RecordPatch) -> bool:
        """Merge ``patch`` onto the cached record; unknown ids are a no-op."""
        for i, record in enumerate(self._records):
            if record.id == record_id:
                try:
                    self._records[i] = apply_patch(record, patch)
                except ValidationFailure as exc:
                    logger.warning("local cache patch for %s rejected: %s", record_id, exc)
                    return False
                self._save()
                return True
        return False

    def remove(self, record_id: str) -> bool:
        kept = [r for r in self._records if r.id != record_id]
        if len(kept) == len(self._records):
            return False
        self._records = kept
        self._save()
        return True

    def _save(self) -> None:
        payload: List[Mapping[str, Any]] = [r.to_wire() for r in self._records]
        data = json.dumps(payload, ensure_ascii=False)
        if len(data.encode("utf-8")) > self.max_bytes:
            logger.warning(
                "local cache quota exceeded (%d records, limit %d bytes); keeping changes in memory only",
                len(payload),
                self.max_bytes,
            )
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=str(self.path.parent), prefix=".records-", suffix=".json")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(data)
                os.replace(tmp, self.path)
            except BaseException:
                if os.path.exists(tmp):
                    os.unlink(tmp)
                raise
        except OSError as exc:
            logger.warning("local cache write failed; keeping changes in memory only: %s", exc)
