import json
import os
import tempfile
import time
import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List

from claude_statusline.app import StatuslineApp
from claude_statusline.config import StatuslineConfig
from claude_statusline.models import CacheKind
from claude_statusline.paths import StatuslinePaths


class RecordingDispatcher:
    def __init__(self) -> None:
        self.calls: List[CacheKind] = []

    def __call__(self, kind: CacheKind) -> None:
        self.calls.append(kind)


def iso(dt: datetime) -> str:
    return dt.strftime("%Y-%m-%dT%H:%M:%S.000Z")


class StatuslineAppTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.paths = StatuslinePaths(self.root / "cache")
        self.paths.root.mkdir()
        self.workdir = self.root / "my-project"
        self.workdir.mkdir()
        self.dispatcher = RecordingDispatcher()
        self.app = StatuslineApp.create(StatuslineConfig(), self.paths, dispatch=self.dispatcher)
        self.now = float(int(time.time()))

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _event(self, **fields) -> str:
        payload = {
            "session_id": "session-1",
            "model": {"display_name": "Opus 4.1"},
            "workspace": {"current_dir": str(self.workdir)},
            "unrelated": {"nested": True},
        }
        payload.update(fields)
        return json.dumps(payload)

    def _write_caches(self) -> None:
        now = datetime.fromtimestamp(self.now, tz=timezone.utc)
        blocks = {
            "blocks": [
                {
                    "isActive": True,
                    "isGap": False,
                    "totalTokens": 11_900,
                    "costUSD": 13.6,
                    "startTime": iso(now - timedelta(hours=1, minutes=36)),
                }
            ]
        }
        daily = {"daily": [{"date": "2026-10-19"}], "totals": {"totalCost": 15.2, "totalTokens": 20_000}}
        self.paths.blocks_cache.write_text(json.dumps(blocks), encoding="utf-8")
        self.paths.daily_cache.write_text(json.dumps(daily), encoding="utf-8")

    def test_renders_cached_usage_without_refreshing_fresh_caches(self) -> None:
        self._write_caches()

        line = self.app.render(self._event(hook_event_name="UserPromptSubmit"), self.now)

        self.assertTrue(line.startswith("✨0s 🤖Opus 4.1 ⏱️ 1h36m 🪙11k 💰$14 📅$15 🌿"), line)
        self.assertTrue(line.endswith("📁my-project"), line)
        self.assertEqual(self.dispatcher.calls, [])

    def test_prompt_submit_starts_session_timer(self) -> None:
        self.app.render(self._event(hook_event_name="UserPromptSubmit"), self.now - 83)

        line = self.app.render(self._event(hook_event_name="Stop"), self.now)

        self.assertTrue(line.startswith("✨1m23s "), line)

    def test_missing_timer_shows_waiting_marker(self) -> None:
        line = self.app.render(self._event(), self.now)

        self.assertTrue(line.startswith("✨... "), line)

    def test_first_run_seeds_caches_and_dispatches_both_refreshes(self) -> None:
        line = self.app.render(self._event(), self.now)

        self.assertEqual(self.dispatcher.calls, [CacheKind.BLOCKS, CacheKind.DAILY])
        self.assertIn("⏱️ 0m 🪙0 💰$0 📅$0", line)
        self.assertTrue(self.paths.blocks_cache.exists())
        self.assertTrue(self.paths.daily_cache.exists())

    def test_corrupt_caches_render_defaults(self) -> None:
        self.paths.blocks_cache.write_text("{{{", encoding="utf-8")
        self.paths.daily_cache.write_text("null", encoding="utf-8")

        line = self.app.render(self._event(), self.now)

        self.assertIn("🪙0 💰$0 📅$0", line)

    def test_malformed_event_still_renders(self) -> None:
        line = self.app.render("not json at all", self.now)

        self.assertIn("🤖Claude ", line)

    def test_track_prompt_records_timer_and_passes_input_through(self) -> None:
        raw = self._event(hook_event_name="UserPromptSubmit")

        self.assertEqual(self.app.track_prompt(raw, self.now), raw)

        self.assertEqual(self.app.timestamps.read_elapsed("session-1", self.now + 5), 5)

    def test_render_sweeps_expired_timers(self) -> None:
        stale = self.paths.timestamp_file("gone")
        stale.write_text("1\n", encoding="ascii")
        os.utime(stale, (self.now - 2 * 86400, self.now - 2 * 86400))

        self.app.render(self._event(), self.now)

        self.assertFalse(stale.exists())


if __name__ == "__main__":
    unittest.main()
