from __future__ import annotations

import os
import shutil
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from .log import logger


def is_expired(now: float, marker_mtime: float, ttl: float) -> bool:
    return now - marker_mtime > ttl


@dataclass(frozen=True)
class Lease:
    path: Path
    acquired_at: float = field(default_factory=time.time)


class LeaseManager:
    """Advisory refresh locks shared between unrelated processes.

    A lease is a directory; ``mkdir`` either creates it or fails, which makes
    acquisition atomic. Holders that die leave the directory behind, so any
    process may remove a marker older than ``ttl`` and try again. Two fetches can
    therefore overlap after a reclaim; the later rename of the cache wins.
    """

    def __init__(self, ttl: float):
        self.ttl = ttl

    def reclaim_if_expired(self, path: Path, now: Optional[float] = None) -> bool:
        try:
            mtime = path.stat().st_mtime
        except OSError:
            return False
        now = time.time() if now is None else now
        if not is_expired(now, mtime, self.ttl):
            return False
        logger.info("reclaiming orphaned lock %s (age %.0fs)", path, now - mtime)
        self._remove(path)
        return True

    def acquire(self, path: Path) -> Optional[Lease]:
        try:
            os.mkdir(path)
        except FileExistsError:
            return None
        except OSError as exc:
            logger.warning("cannot create lock %s: %s", path, exc)
            return None
        return Lease(path=path)

    def release(self, lease: Union[Lease, Path]) -> None:
        path = lease.path if isinstance(lease, Lease) else lease
        self._remove(path)

    def _remove(self, path: Path) -> None:
        try:
            if path.is_dir():
                shutil.rmtree(path, ignore_errors=True)
            else:
                path.unlink()
        except FileNotFoundError:
            return
        except OSError as exc:
            logger.warning("cannot remove lock %s: %s", path, exc)


__all__ = ["Lease", "LeaseManager", "is_expired"]
