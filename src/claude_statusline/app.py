from __future__ import annotations

import os
import sys
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .cache_store import CacheStore
from .config import StatuslineConfig, load_config
from .coordinator import BackgroundRefresher, Dispatcher, RefreshCoordinator, build_cache_entries
from .lease import LeaseManager
from .log import configure_logging, logger
from .models import BlockUsage, CacheKind, DailyUsage, HookEvent
from .paths import StatuslinePaths, discover_paths
from .renderer import DEFAULT_MODEL, StatusLine, build_status_line
from .timestamps import TimestampStore, resolve_session_id
from .usage_reader import summarize_blocks, summarize_daily


@dataclass
class StatuslineApp:
    config: StatuslineConfig
    paths: StatuslinePaths
    store: CacheStore
    leases: LeaseManager
    timestamps: TimestampStore
    coordinator: RefreshCoordinator

    @classmethod
    def create(
        cls,
        config: Optional[StatuslineConfig] = None,
        paths: Optional[StatuslinePaths] = None,
        dispatch: Optional[Dispatcher] = None,
    ) -> "StatuslineApp":
        config = config or load_config()
        paths = paths or discover_paths()
        store = CacheStore(build_cache_entries(config, paths))
        leases = LeaseManager(ttl=config.lock_timeout)
        coordinator = RefreshCoordinator(store, leases, dispatch or BackgroundRefresher(paths))
        return cls(
            config=config,
            paths=paths,
            store=store,
            leases=leases,
            timestamps=TimestampStore(paths, config.timestamp_retention_seconds),
            coordinator=coordinator,
        )

    def render(self, raw: str, now: Optional[float] = None) -> str:
        now = time.time() if now is None else now
        event = HookEvent.from_json(raw)
        session_id = resolve_session_id(event)
        if event.is_prompt_submit:
            self.timestamps.record_prompt_submitted(session_id, now)
        self.timestamps.cleanup(now)
        self.coordinator.refresh_all(now)

        blocks = summarize_blocks(
            self.store.read(CacheKind.BLOCKS),
            datetime.fromtimestamp(now, tz=timezone.utc),
            self.config.session_window_seconds,
        )
        daily = summarize_daily(self.store.read(CacheKind.DAILY))
        processing = self.timestamps.read_elapsed(session_id, now)
        return build_status_line(event, blocks, daily, processing).render()

    def track_prompt(self, raw: str, now: Optional[float] = None) -> str:
        event = HookEvent.from_json(raw)
        self.timestamps.cleanup(now)
        self.timestamps.record_prompt_submitted(resolve_session_id(event), now)
        return raw


def read_stdin(limit: int) -> bytes:
    stream = sys.stdin
    if stream is None or stream.isatty():
        return b""
    return stream.buffer.read(limit)


def read_event(limit: int) -> str:
    return read_stdin(limit).decode("utf-8", "replace")


def bootstrap() -> tuple[StatuslineConfig, StatuslinePaths]:
    config = load_config()
    paths = discover_paths()
    configure_logging(config, paths.error_log)
    return config, paths


def _fallback_line() -> str:
    return StatusLine(
        processing=None,
        model=DEFAULT_MODEL,
        blocks=BlockUsage(),
        daily=DailyUsage(),
        branch="none",
        folder=Path(os.getcwd()).name,
    ).render()


def main() -> None:
    try:
        config, paths = bootstrap()
        raw = read_event(config.stdin_limit)
        line = StatuslineApp.create(config, paths).render(raw)
    except Exception:
        logger.exception("status line rendering failed")
        line = _fallback_line()
    sys.stdout.write(line)
    sys.stdout.flush()


def track_main() -> None:
    """Prompt-submission hook: start this session's processing timer.

    Whatever arrives on stdin is written back unchanged, even when the timer
    could not be recorded.
    """
    paths: Optional[StatuslinePaths] = None
    try:
        config, paths = bootstrap()
    except Exception:
        logger.exception("prompt hook startup failed")
        config = StatuslineConfig()
    data = b""
    try:
        data = read_stdin(config.stdin_limit)
        if paths is not None:
            StatuslineApp.create(config, paths).track_prompt(data.decode("utf-8", "replace"))
    except Exception:
        logger.exception("prompt tracking failed")
    sys.stdout.buffer.write(data)
    sys.stdout.flush()


__all__ = ["StatuslineApp", "bootstrap", "main", "read_event", "read_stdin", "track_main"]
