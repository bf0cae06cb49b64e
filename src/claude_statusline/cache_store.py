from __future__ import annotations

import json
import os
import tempfile
import time
from pathlib import Path
from typing import Any, Dict, Optional

from .log import logger
from .models import CacheEntry, CacheKind, default_payload


def atomic_write(path: Path, data: bytes) -> None:
    """Replace ``path`` with ``data`` so readers see either the old or the new file."""
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise


def file_age(path: Path, now: Optional[float] = None) -> Optional[float]:
    try:
        mtime = path.stat().st_mtime
    except OSError:
        return None
    now = time.time() if now is None else now
    return now - mtime


def has_expected_shape(kind: CacheKind, data: object) -> bool:
    if not isinstance(data, dict):
        return False
    if kind is CacheKind.BLOCKS:
        return isinstance(data.get("blocks"), list)
    return isinstance(data.get("totals"), dict)


class CacheStore:
    """The two usage documents shared by every status-line process."""

    def __init__(self, entries: Dict[CacheKind, CacheEntry]):
        self._entries = entries

    def entry(self, kind: CacheKind) -> CacheEntry:
        return self._entries[kind]

    def age(self, kind: CacheKind, now: Optional[float] = None) -> Optional[float]:
        return file_age(self.entry(kind).path, now)

    def seed(self, kind: CacheKind) -> None:
        self.write(kind, default_payload(kind))

    def write(self, kind: CacheKind, payload: Dict[str, Any]) -> None:
        atomic_write(self.entry(kind).path, json.dumps(payload).encode("utf-8"))

    def read(self, kind: CacheKind) -> Dict[str, Any]:
        path = self.entry(kind).path
        try:
            with path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except FileNotFoundError:
            return default_payload(kind)
        except (OSError, ValueError) as exc:
            logger.debug("unreadable %s cache %s: %s", kind.value, path, exc)
            return default_payload(kind)
        if not has_expected_shape(kind, data):
            logger.debug("unexpected %s cache shape in %s", kind.value, path)
            return default_payload(kind)
        return data


__all__ = ["CacheStore", "atomic_write", "file_age", "has_expected_shape"]
