from __future__ import annotations

import os
import time
from pathlib import Path
from typing import Optional

from .cache_store import atomic_write
from .log import logger
from .models import HookEvent
from .paths import StatuslinePaths
from .process_monitor import find_session_process


def resolve_session_id(event: HookEvent) -> str:
    """Pick the key that isolates this session's processing timer.

    Order: the event's session id, the transcript file name, then the pid of the
    Claude CLI process that launched us (shared by its hook and status-line
    children), falling back to our own parent pid.
    """
    if event.session_id:
        return event.session_id
    if event.transcript_path:
        stem = Path(event.transcript_path).stem
        if stem:
            return stem
    owner = find_session_process()
    pid = owner.pid if owner is not None else os.getppid()
    return f"pid_{pid}"


class TimestampStore:
    def __init__(self, paths: StatuslinePaths, retention_seconds: float):
        self.paths = paths
        self.retention_seconds = retention_seconds

    def record_prompt_submitted(self, session_id: str, now: Optional[float] = None) -> None:
        now = time.time() if now is None else now
        target = self.paths.timestamp_file(session_id)
        try:
            atomic_write(target, f"{int(now)}\n".encode("ascii"))
        except OSError as exc:
            logger.warning("could not record prompt time for %s: %s", session_id, exc)

    def read_started(self, session_id: str) -> Optional[int]:
        try:
            raw = self.paths.timestamp_file(session_id).read_text(encoding="ascii").strip()
            return int(raw)
        except (OSError, ValueError):
            return None

    def read_elapsed(self, session_id: str, now: Optional[float] = None) -> Optional[int]:
        started = self.read_started(session_id)
        if started is None:
            return None
        now = time.time() if now is None else now
        elapsed = int(now) - started
        return elapsed if elapsed >= 0 else None

    def cleanup(self, now: Optional[float] = None) -> int:
        now = time.time() if now is None else now
        removed = 0
        for path in self.paths.timestamp_files():
            try:
                if now - path.stat().st_mtime <= self.retention_seconds:
                    continue
                path.unlink()
                removed += 1
            except FileNotFoundError:
                continue
            except OSError as exc:
                logger.debug("could not remove %s: %s", path, exc)
        if removed:
            logger.debug("removed %d expired timestamp files", removed)
        return removed


__all__ = ["TimestampStore", "resolve_session_id"]
