from __future__ import annotations

import os
import subprocess
import sys
import time
from typing import Callable, Dict, Optional

from .cache_store import CacheStore
from .config import StatuslineConfig
from .lease import LeaseManager
from .log import logger
from .models import CacheEntry, CacheKind
from .paths import CACHE_DIR_ENV, StatuslinePaths

Dispatcher = Callable[[CacheKind], None]

WORKER_MODULE = "claude_statusline.update_cache"


def build_cache_entries(config: StatuslineConfig, paths: StatuslinePaths) -> Dict[CacheKind, CacheEntry]:
    return {
        CacheKind.BLOCKS: CacheEntry(
            kind=CacheKind.BLOCKS,
            path=paths.blocks_cache,
            lock_path=paths.blocks_lock,
            max_age=config.blocks_max_age,
            fetch_timeout=config.blocks_fetch_timeout,
        ),
        CacheKind.DAILY: CacheEntry(
            kind=CacheKind.DAILY,
            path=paths.daily_cache,
            lock_path=paths.daily_lock,
            max_age=config.daily_max_age,
            fetch_timeout=config.daily_fetch_timeout,
        ),
    }


def is_stale(age: Optional[float], max_age: float) -> bool:
    return age is None or age > max_age


class BackgroundRefresher:
    """Starts a detached ``update_cache`` worker that inherits the held lock."""

    def __init__(self, paths: StatuslinePaths):
        self.paths = paths

    def __call__(self, kind: CacheKind) -> None:
        argv = [
            sys.executable,
            "-m",
            WORKER_MODULE,
            f"--{kind.value}-only",
            "--quiet",
            "--lease-held",
        ]
        env = dict(os.environ)
        env[CACHE_DIR_ENV] = str(self.paths.root)
        subprocess.Popen(
            argv,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            env=env,
            close_fds=True,
            start_new_session=True,
        )
        logger.debug("dispatched %s refresh worker", kind.value)


class RefreshCoordinator:
    def __init__(self, store: CacheStore, leases: LeaseManager, dispatch: Dispatcher):
        self.store = store
        self.leases = leases
        self._dispatch = dispatch

    def maybe_refresh(self, kind: CacheKind, now: Optional[float] = None) -> None:
        """Start a background refresh of ``kind`` if it is stale and nobody else is.

        Never blocks on the fetch and never raises; the outcome shows up later as
        new cache contents.
        """
        entry = self.store.entry(kind)
        now = time.time() if now is None else now
        try:
            self.leases.reclaim_if_expired(entry.lock_path, now)
            age = self.store.age(kind, now)
            if age is None:
                self.store.seed(kind)
            if not is_stale(age, entry.max_age):
                return
            lease = self.leases.acquire(entry.lock_path)
            if lease is None:
                logger.debug("%s refresh already in flight", kind.value)
                return
            try:
                self._dispatch(kind)
            except OSError as exc:
                self.leases.release(lease)
                logger.warning("could not start %s refresh: %s", kind.value, exc)
        except OSError as exc:
            logger.warning("%s refresh check failed: %s", kind.value, exc)

    def refresh_all(self, now: Optional[float] = None) -> None:
        for kind in CacheKind:
            self.maybe_refresh(kind, now)


__all__ = [
    "BackgroundRefresher",
    "RefreshCoordinator",
    "build_cache_entries",
    "is_stale",
]
