# -*- coding: utf-8 -*-
"""
Command-line client for the drink log.

Usage:
    python -m milkyway.client.cli refresh
    python -m milkyway.client.cli list
    python -m milkyway.client.cli month 2024 3
    python -m milkyway.client.cli day 2024-03-01
    python -m milkyway.client.cli add --date 2024-03-01 --name "Brown sugar boba" --rating 5
    python -m milkyway.client.cli update <id> --price 18 --mood ""
    python -m milkyway.client.cli delete <id>

Every command pulls the store into the local cache first and waits for
background mirrors before exiting.
"""

from __future__ import annotations

import argparse
import asyncio
import base64
import json
import logging
import mimetypes
import sys
from pathlib import Path
from typing import Any, Dict

from ..config import settings
from ..errors import ValidationFailure
from .local_cache import LocalCache
from .remote import RemoteRecordStore
from .sync import SyncCoordinator

# argparse dest -> record wire name
_FIELD_FLAGS = {
    "date": "date",
    "name": "name",
    "brand": "brand",
    "ingredients": "ingredients",
    "price": "price",
    "sugar_ice": "sugarIce",
    "rating": "rating",
    "shop": "shop",
    "mood": "moodNote",
    "icon": "iconId",
    "calories": "calories",
}


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _image_data_url(path: str) -> str:
    fp = Path(path)
    mime = mimetypes.guess_type(fp.name)[0] or "image/jpeg"
    return f"data:{mime};base64,{base64.b64encode(fp.read_bytes()).decode('ascii')}"


def _collect_fields(args: argparse.Namespace) -> Dict[str, Any]:
    fields: Dict[str, Any] = {}
    for dest, wire in _FIELD_FLAGS.items():
        value = getattr(args, dest, None)
        if value is not None:
            fields[wire] = value
    if getattr(args, "image", None):
        fields["imageBase64"] = _image_data_url(args.image)
    return fields


async def _run(args: argparse.Namespace) -> int:
    cache = LocalCache(Path(args.cache) if args.cache else None)
    async with RemoteRecordStore(args.api_base) as remote:
        coordinator = SyncCoordinator(cache, remote)
        online = await coordinator.refresh()
        if not online:
            print("Record store unreachable; working from the local cache.", file=sys.stderr)

        if args.command == "refresh":
            _print_json({"online": online, "count": len(coordinator.cached())})
        elif args.command == "list":
            _print_json([r.to_wire() for r in coordinator.cached()])
        elif args.command == "month":
            by_date = await coordinator.month(args.year, args.month)
            _print_json({day: [r.to_wire() for r in items] for day, items in by_date.items()})
        elif args.command == "day":
            _print_json([r.to_wire() for r in coordinator.cached_day(args.date)])
        elif args.command == "add":
            record = coordinator.create(_collect_fields(args))
            _print_json(record.to_wire())
        elif args.command == "update":
            coordinator.update(args.id, _collect_fields(args))
            _print_json({"id": args.id, "updated": True})
        elif args.command == "delete":
            coordinator.delete(args.id)
            _print_json({"id": args.id, "deleted": True})

        await coordinator.drain()
    return 0


def _add_field_args(parser: argparse.ArgumentParser, *, required: bool) -> None:
    parser.add_argument("--date", required=required, help="YYYY-MM-DD")
    parser.add_argument("--name", required=required, help="Drink name")
    parser.add_argument("--brand")
    parser.add_argument("--ingredients")
    parser.add_argument("--price", help="Free text, e.g. 18")
    parser.add_argument("--sugar-ice", dest="sugar_ice", help="e.g. '半糖 / 少冰'")
    parser.add_argument("--rating", type=int, choices=range(1, 6))
    parser.add_argument("--shop")
    parser.add_argument("--mood", help="Mood note")
    parser.add_argument("--icon", help="pearl | fruit | coffee | milk | matcha")
    parser.add_argument("--calories", type=int, help="kcal")
    parser.add_argument("--image", help="Path to a photo to attach")


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="MilkyWay drink log client",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--api-base", default=None, help=f"Record store base URL (default: {settings.api_base})")
    parser.add_argument("--cache", default=None, help=f"Local cache file (default: {settings.cache_path})")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    subparsers.add_parser("refresh", help="Pull the store into the local cache")
    subparsers.add_parser("list", help="List all records, newest first")

    month_parser = subparsers.add_parser("month", help="Records of one month grouped by date")
    month_parser.add_argument("year", type=int)
    month_parser.add_argument("month", type=int)

    day_parser = subparsers.add_parser("day", help="Records of one date, oldest first")
    day_parser.add_argument("date", help="YYYY-MM-DD")

    add_parser = subparsers.add_parser("add", help="Log a drink")
    _add_field_args(add_parser, required=True)

    update_parser = subparsers.add_parser("update", help="Edit fields of a record ('' clears a field)")
    update_parser.add_argument("id")
    _add_field_args(update_parser, required=False)

    delete_parser = subparsers.add_parser("delete", help="Delete a record")
    delete_parser.add_argument("id")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    logging.basicConfig(level=settings.log_level, format="%(levelname)s %(name)s: %(message)s")

    try:
        return asyncio.run(_run(args))
    except ValidationFailure as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
