import os
import tempfile
import time
import unittest
from pathlib import Path

from claude_statusline.lease import Lease, LeaseManager, is_expired


class IsExpiredTests(unittest.TestCase):
    def test_marker_exactly_at_ttl_is_not_expired(self) -> None:
        self.assertFalse(is_expired(now=160.0, marker_mtime=100.0, ttl=60))

    def test_marker_past_ttl_is_expired(self) -> None:
        self.assertTrue(is_expired(now=161.0, marker_mtime=100.0, ttl=60))

    def test_marker_from_the_future_is_not_expired(self) -> None:
        self.assertFalse(is_expired(now=100.0, marker_mtime=200.0, ttl=60))


class LeaseManagerTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.lock = self.root / "ccusage_blocks.lock"
        self.leases = LeaseManager(ttl=60)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _age_marker(self, seconds: float) -> float:
        now = float(int(time.time()))
        os.utime(self.lock, (now - seconds, now - seconds))
        return now

    def test_acquire_creates_marker_and_returns_lease(self) -> None:
        lease = self.leases.acquire(self.lock)

        self.assertIsInstance(lease, Lease)
        self.assertTrue(self.lock.is_dir())

    def test_second_acquire_fails_while_held(self) -> None:
        first = self.leases.acquire(self.lock)
        second = LeaseManager(ttl=60).acquire(self.lock)

        self.assertIsNotNone(first)
        self.assertIsNone(second)

    def test_release_allows_reacquire(self) -> None:
        lease = self.leases.acquire(self.lock)
        self.leases.release(lease)

        self.assertFalse(self.lock.exists())
        self.assertIsNotNone(self.leases.acquire(self.lock))

    def test_release_is_idempotent(self) -> None:
        self.leases.release(self.lock)
        self.leases.acquire(self.lock)
        self.leases.release(self.lock)
        self.leases.release(self.lock)

        self.assertFalse(self.lock.exists())

    def test_reclaims_marker_older_than_ttl(self) -> None:
        self.leases.acquire(self.lock)
        now = self._age_marker(61)

        self.assertTrue(self.leases.reclaim_if_expired(self.lock, now))
        self.assertFalse(self.lock.exists())

    def test_keeps_marker_within_ttl(self) -> None:
        self.leases.acquire(self.lock)
        now = self._age_marker(59)

        self.assertFalse(self.leases.reclaim_if_expired(self.lock, now))
        self.assertTrue(self.lock.exists())

    def test_reclaims_plain_file_marker(self) -> None:
        self.lock.write_text("12345\n", encoding="utf-8")
        now = self._age_marker(120)

        self.assertTrue(self.leases.reclaim_if_expired(self.lock, now))
        self.assertFalse(self.lock.exists())

    def test_reclaim_without_marker_is_noop(self) -> None:
        self.assertFalse(self.leases.reclaim_if_expired(self.lock))


if __name__ == "__main__":
    unittest.main()
