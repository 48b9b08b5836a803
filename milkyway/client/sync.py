# -*- coding: utf-8 -*-
"""Sync Coordinator — optimistic local writes mirrored to the Record Store.

Read paths:
    cached()          synchronous, Local Cache, always available
    authoritative()   async, Record Store, raises TransportFailure

Writes hit the Local Cache first and return; the remote mirror runs as a
detached task whose outcome is only logged. There is no retry queue: a mirror
that fails stays local until the next ``refresh()`` overwrites the cache with
the remote list, which drops any record that never reached the store.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Mapping, Set

from ..errors import TransportFailure
from ..records.models import Record, RecordPatch, RecordsByDate, new_record, parse_patch
from ..records.projection import project_day, project_month, sort_newest_first
from .local_cache import LocalCache
from .remote import RemoteRecordStore

logger = logging.getLogger(__name__)

Subscriber = Callable[[List[Record]], None]


class SyncCoordinator:
    def __init__(self, cache: LocalCache, remote: RemoteRecordStore) -> None:
        self.cache = cache
        self.remote = remote
        self._subscribers: List[Subscriber] = []
        self._pending: Set[asyncio.Task] = set()

    # ---- change notification ----

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback``; it receives the full snapshot after every change."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self) -> None:
        for callback in list(self._subscribers):
            try:
                callback(self.cached())
            except Exception:
                logger.exception("record subscriber %r failed", callback)

    # ---- reads ----

    def cached(self) -> List[Record]:
        return sort_newest_first(self.cache.read_all())

    async def authoritative(self) -> List[Record]:
        return await self.remote.list_records()

    def cached_month(self, year: int, month: int) -> RecordsByDate:
        return project_month(self.cache.read_all(), year, month)

    def cached_day(self, date: str) -> List[Record]:
        """Records logged on one exact ``YYYY-MM-DD``, oldest first."""
        return project_day(self.cache.read_all(), date)

    async def month(self, year: int, month: int) -> RecordsByDate:
        """Month projection from the store, recomputed locally if it is unreachable."""
        try:
            return await self.remote.list_by_month(year, month)
        except TransportFailure as exc:
            logger.warning("month %04d-%02d from store failed, using local cache: %s", year, month, exc)
            return self.cached_month(year, month)

    # ---- writes ----

    def create(self, fields: Mapping[str, Any]) -> Record:
        """Build a new record (fresh id/createdAt), cache it, mirror it in the background."""
        record = new_record(fields)
        self.add(record)
        return record

    def add(self, record: Record) -> None:
        loop = asyncio.get_running_loop()
        self.cache.append(record)
        self._notify()
        self._spawn(loop, "insert", record.id, self.remote.insert(record))

    def update(self, record_id: str, patch: RecordPatch | Mapping[str, Any]) -> None:
        patch = parse_patch(patch)
        loop = asyncio.get_running_loop()
        if self.cache.merge_patch(record_id, patch):
            self._notify()
        self._spawn(loop, "update", record_id, self.remote.update(record_id, patch))

    def delete(self, record_id: str) -> None:
        loop = asyncio.get_running_loop()
        if self.cache.remove(record_id):
            self._notify()
        self._spawn(loop, "delete", record_id, self.remote.delete(record_id))

    async def refresh(self) -> bool:
        """Overwrite the Local Cache with the store's list; keep the cache on failure."""
        try:
            records = await self.remote.list_records()
        except TransportFailure as exc:
            logger.warning("refresh failed, keeping local cache: %s", exc)
            return False
        self.cache.replace_all(records)
        logger.info("synced %d records from store", len(records))
        self._notify()
        return True

    # ---- background mirrors ----

    def _spawn(self, loop: asyncio.AbstractEventLoop, op: str, record_id: str, coro: Awaitable[Any]) -> None:
        task = loop.create_task(self._mirror(op, record_id, coro))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _mirror(self, op: str, record_id: str, coro: Awaitable[Any]) -> None:
        try:
            await coro
        except TransportFailure as exc:
            logger.warning("%s %s not mirrored to store (kept locally): %s", op, record_id, exc)
        except Exception:
            logger.exception("%s %s mirror crashed (kept locally)", op, record_id)

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for every in-flight mirror. Mirror failures are already logged."""
        while self._pending:
            await asyncio.gather(*list(self._pending))
