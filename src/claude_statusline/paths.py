from __future__ import annotations

import os
import re
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

CACHE_DIR_ENV = "CLAUDE_STATUSLINE_CACHE_DIR"
BLOCKS_CACHE_NAME = "ccusage_blocks_cache.json"
DAILY_CACHE_NAME = "ccusage_daily_cache.json"
BLOCKS_LOCK_NAME = "ccusage_blocks.lock"
DAILY_LOCK_NAME = "ccusage_daily.lock"
ERROR_LOG_NAME = "statusline-errors.log"
TIMESTAMP_PREFIX = "claude_processing_start_"
TIMESTAMP_SUFFIX = ".timestamp"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


@dataclass(frozen=True)
class StatuslinePaths:
    root: Path

    @property
    def blocks_cache(self) -> Path:
        return self.root / BLOCKS_CACHE_NAME

    @property
    def daily_cache(self) -> Path:
        return self.root / DAILY_CACHE_NAME

    @property
    def blocks_lock(self) -> Path:
        return self.root / BLOCKS_LOCK_NAME

    @property
    def daily_lock(self) -> Path:
        return self.root / DAILY_LOCK_NAME

    @property
    def error_log(self) -> Path:
        return self.root / ERROR_LOG_NAME

    def timestamp_file(self, session_id: str) -> Path:
        return self.root / f"{TIMESTAMP_PREFIX}{sanitize_session_id(session_id)}{TIMESTAMP_SUFFIX}"

    def timestamp_files(self) -> Iterator[Path]:
        return self.root.glob(f"{TIMESTAMP_PREFIX}*{TIMESTAMP_SUFFIX}")


def discover_paths(explicit_root: Optional[Path] = None) -> StatuslinePaths:
    if explicit_root is not None:
        return StatuslinePaths(explicit_root.expanduser())
    env_value = os.getenv(CACHE_DIR_ENV, "").strip()
    if env_value:
        try:
            root = Path(env_value).expanduser()
            root.mkdir(parents=True, exist_ok=True)
        except (OSError, RuntimeError):
            root = Path(tempfile.gettempdir())
        return StatuslinePaths(root)
    return StatuslinePaths(Path(tempfile.gettempdir()))


def sanitize_session_id(session_id: str) -> str:
    cleaned = _UNSAFE_CHARS.sub("_", session_id.strip())
    return cleaned.strip(".") or "unknown"


__all__ = ["StatuslinePaths", "discover_paths", "sanitize_session_id", "CACHE_DIR_ENV"]
