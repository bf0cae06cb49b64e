import json
import os
import tempfile
import time
import unittest
from pathlib import Path

from claude_statusline.cache_store import CacheStore, atomic_write
from claude_statusline.config import StatuslineConfig
from claude_statusline.coordinator import build_cache_entries
from claude_statusline.models import CacheKind, default_payload
from claude_statusline.paths import StatuslinePaths


class CacheStoreReadTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.paths = StatuslinePaths(Path(self._tmp.name))
        self.store = CacheStore(build_cache_entries(StatuslineConfig(), self.paths))

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_missing_file_reads_as_default(self) -> None:
        self.assertEqual(self.store.read(CacheKind.BLOCKS), {"blocks": []})
        self.assertEqual(
            self.store.read(CacheKind.DAILY),
            {"daily": [], "totals": {"totalCost": 0, "totalTokens": 0}},
        )

    def test_malformed_json_reads_as_default(self) -> None:
        self.paths.blocks_cache.write_text('{"blocks": [', encoding="utf-8")

        self.assertEqual(self.store.read(CacheKind.BLOCKS), default_payload(CacheKind.BLOCKS))

    def test_binary_garbage_reads_as_default(self) -> None:
        self.paths.daily_cache.write_bytes(b"\xff\xfe\x00garbage")

        self.assertEqual(self.store.read(CacheKind.DAILY), default_payload(CacheKind.DAILY))

    def test_wrong_shape_reads_as_default(self) -> None:
        self.paths.blocks_cache.write_text('{"blocks": {"isActive": true}}', encoding="utf-8")
        self.paths.daily_cache.write_text("[1, 2, 3]", encoding="utf-8")

        self.assertEqual(self.store.read(CacheKind.BLOCKS), default_payload(CacheKind.BLOCKS))
        self.assertEqual(self.store.read(CacheKind.DAILY), default_payload(CacheKind.DAILY))

    def test_valid_payload_is_returned_unchanged(self) -> None:
        payload = {"blocks": [{"isActive": True, "totalTokens": 10}], "extra": 1}
        self.paths.blocks_cache.write_text(json.dumps(payload), encoding="utf-8")

        self.assertEqual(self.store.read(CacheKind.BLOCKS), payload)

    def test_seed_writes_default_payload(self) -> None:
        self.store.seed(CacheKind.DAILY)

        written = json.loads(self.paths.daily_cache.read_text(encoding="utf-8"))
        self.assertEqual(written, default_payload(CacheKind.DAILY))

    def test_age_is_none_when_absent(self) -> None:
        self.assertIsNone(self.store.age(CacheKind.BLOCKS))

    def test_age_tracks_modification_time(self) -> None:
        self.store.seed(CacheKind.BLOCKS)
        now = float(int(time.time()))
        os.utime(self.paths.blocks_cache, (now - 90, now - 90))

        self.assertAlmostEqual(self.store.age(CacheKind.BLOCKS, now), 90, places=3)


class AtomicWriteTests(unittest.TestCase):
    def test_replaces_target_without_leaving_temp_files(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            target = Path(tmp) / "cache.json"
            target.write_text("old", encoding="utf-8")

            atomic_write(target, b'{"blocks": []}')

            self.assertEqual(target.read_text(encoding="utf-8"), '{"blocks": []}')
            self.assertEqual(sorted(p.name for p in Path(tmp).iterdir()), ["cache.json"])

    def test_failed_write_keeps_old_content(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            target = Path(tmp) / "cache.json"
            target.write_text("old", encoding="utf-8")

            with self.assertRaises(TypeError):
                atomic_write(target, "not bytes")  # type: ignore[arg-type]

            self.assertEqual(target.read_text(encoding="utf-8"), "old")
            self.assertEqual(sorted(p.name for p in Path(tmp).iterdir()), ["cache.json"])


if __name__ == "__main__":
    unittest.main()
