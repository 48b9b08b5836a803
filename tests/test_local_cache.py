# -*- coding: utf-8 -*-

from __future__ import annotations

import json
import shutil
import tempfile
import unittest
from pathlib import Path

from milkyway.client.local_cache import LocalCache
from milkyway.records.models import parse_patch, parse_record


def _record(record_id: str, date: str = "2024-03-01", created_at: str = "2024-03-01T08:00:00Z", **extra):
    payload = {"id": record_id, "date": date, "name": f"drink {record_id}", "createdAt": created_at}
    payload.update(extra)
    return parse_record(payload)


class TestLocalCache(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = Path(tempfile.mkdtemp(prefix="milkyway-cache-"))
        self.path = self._tmp / "records.json"

    def tearDown(self) -> None:
        shutil.rmtree(self._tmp, ignore_errors=True)

    def test_missing_file_reads_empty(self) -> None:
        self.assertEqual(LocalCache(self.path).read_all(), [])

    def test_mutations_persist_across_sessions(self) -> None:
        cache = LocalCache(self.path)
        cache.append(_record("a"))
        cache.append(_record("b"))
        self.assertTrue(cache.merge_patch("a", parse_patch({"shop": "Guomao"})))
        self.assertTrue(cache.remove("b"))

        reopened = LocalCache(self.path)
        records = reopened.read_all()
        self.assertEqual([r.id for r in records], ["a"])
        self.assertEqual(records[0].shop, "Guomao")

        on_disk = json.loads(self.path.read_text(encoding="utf-8"))
        self.assertEqual(on_disk[0]["createdAt"], "2024-03-01T08:00:00.000Z")
        self.assertIsNone(on_disk[0]["price"])

    def test_replace_all_overwrites(self) -> None:
        cache = LocalCache(self.path)
        cache.append(_record("local-only"))
        cache.replace_all([_record("x"), _record("y")])
        self.assertEqual([r.id for r in cache.read_all()], ["x", "y"])
        self.assertEqual([r.id for r in LocalCache(self.path).read_all()], ["x", "y"])

    def test_unknown_ids_are_noops(self) -> None:
        cache = LocalCache(self.path)
        cache.append(_record("a"))
        self.assertFalse(cache.merge_patch("missing", parse_patch({"shop": "x"})))
        self.assertFalse(cache.remove("missing"))
        self.assertEqual([r.id for r in cache.read_all()], ["a"])

    def test_corrupt_file_reads_empty(self) -> None:
        self.path.write_text("{not json", encoding="utf-8")
        self.assertEqual(LocalCache(self.path).read_all(), [])
        self.path.write_text(json.dumps({"records": []}), encoding="utf-8")
        self.assertEqual(LocalCache(self.path).read_all(), [])

    def test_invalid_entries_are_skipped(self) -> None:
        good = _record("a").to_wire()
        self.path.write_text(json.dumps([good, {"id": "broken"}, "junk"]), encoding="utf-8")
        self.assertEqual([r.id for r in LocalCache(self.path).read_all()], ["a"])

    def test_out_of_range_timestamp_entry_is_skipped(self) -> None:
        good = _record("a").to_wire()
        edge = {"id": "x", "date": "2024-03-01", "name": "n", "createdAt": "9999-12-31T23:59:59-01:00"}
        self.path.write_text(json.dumps([edge, good]), encoding="utf-8")
        self.assertEqual([r.id for r in LocalCache(self.path).read_all()], ["a"])

    def test_reads_are_copies(self) -> None:
        cache = LocalCache(self.path)
        cache.append(_record("a"))
        snapshot = cache.read_all()
        snapshot[0].name = "tampered"
        snapshot.clear()
        self.assertEqual(cache.read_all()[0].name, "drink a")

    def test_quota_exceeded_keeps_memory_and_previous_file(self) -> None:
        cache = LocalCache(self.path, max_bytes=2000)
        cache.append(_record("a"))
        cache.append(_record("big", imageBase64="A" * 5000))
        self.assertEqual([r.id for r in cache.read_all()], ["a", "big"])
        self.assertEqual([r.id for r in LocalCache(self.path).read_all()], ["a"])

    def test_unwritable_location_does_not_raise(self) -> None:
        blocker = self._tmp / "blocker"
        blocker.write_text("file, not a directory", encoding="utf-8")
        cache = LocalCache(blocker / "records.json")
        cache.append(_record("a"))
        self.assertEqual([r.id for r in cache.read_all()], ["a"])


if __name__ == "__main__":
    unittest.main()
