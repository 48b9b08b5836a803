# -*- coding: utf-8 -*-
"""HTTP client for the remote Record Store."""

from __future__ import annotations

from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from ..config import settings
from ..errors import TransportFailure
from ..records.models import Record, RecordPatch, RecordsByDate

_UNSET: Any = object()


class RemoteRecordStore:
    """Async mirror of the Record Store REST surface.

    Every failure (connection error, non-2xx status, malformed body) surfaces
    as ``TransportFailure``. No retries and, unless configured, no timeout.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        timeout: Optional[float] = _UNSET,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.api_base).rstrip("/")
        if timeout is _UNSET:
            timeout = settings.remote_timeout
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            follow_redirects=True,
        )

    async def __aenter__(self) -> "RemoteRecordStore":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, json: Any = None) -> Any:
        try:
            resp = await self._client.request(method, path, json=json)
        except httpx.HTTPError as exc:
            raise TransportFailure(f"{method} {path} failed: {exc!r}") from exc
        if resp.status_code >= 300:
            detail = resp.text.replace("\n", " ").strip()[:200]
            raise TransportFailure(
                f"{method} {path} returned {resp.status_code}: {detail}",
                status_code=resp.status_code,
            )
        try:
            return resp.json()
        except ValueError as exc:
            raise TransportFailure(f"{method} {path} returned non-JSON body") from exc

    async def list_records(self) -> List[Record]:
        data = await self._request("GET", "/records")
        try:
            return [Record.model_validate(item) for item in data]
        except (TypeError, ValidationError) as exc:
            raise TransportFailure(f"GET /records returned an unexpected payload: {exc}") from exc

    async def list_by_month(self, year: int, month: int) -> RecordsByDate:
        path = f"/records/month/{int(year)}/{int(month)}"
        data = await self._request("GET", path)
        try:
            return {
                day: [Record.model_validate(item) for item in items]
                for day, items in sorted(data.items())
            }
        except (AttributeError, TypeError, ValidationError) as exc:
            raise TransportFailure(f"GET {path} returned an unexpected payload: {exc}") from exc

    async def insert(self, record: Record) -> str:
        data = await self._request("POST", "/records", json=record.to_wire())
        return str(data.get("id") or record.id) if isinstance(data, dict) else record.id

    async def update(self, record_id: str, patch: RecordPatch) -> None:
        await self._request("PUT", f"/records/{quote(record_id, safe='')}", json=patch.changes())

    async def delete(self, record_id: str) -> None:
        await self._request("DELETE", f"/records/{quote(record_id, safe='')}")

    async def health(self) -> Dict[str, Any]:
        return await self._request("GET", "/health")
