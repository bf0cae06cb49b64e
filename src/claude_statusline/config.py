from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

CONFIG_PATH = Path(
    os.getenv(
        "CLAUDE_STATUSLINE_CONFIG",
        Path.home() / ".config" / "claude_statusline" / "config.json",
    )
)
MEMORY_ENV = "CCUSAGE_MAX_MEMORY_MB"
DEBUG_ENV = "CLAUDE_STATUSLINE_DEBUG"

DEFAULT_CONFIG = {
    "blocks_max_age": 120,
    "daily_max_age": 300,
    "lock_timeout": 60,
    "blocks_fetch_timeout": 30,
    "daily_fetch_timeout": 45,
    "probe_timeout": 2.0,
    "memory_limit_mb": 1024,
    "error_log_max_bytes": 10 * 1024 * 1024,
    "timestamp_retention_hours": 24,
    "session_window_hours": 5,
    "stdin_limit": 100_000,
    "ccusage_path": None,
    "debug": False,
}


@dataclass
class StatuslineConfig:
    blocks_max_age: int = DEFAULT_CONFIG["blocks_max_age"]
    daily_max_age: int = DEFAULT_CONFIG["daily_max_age"]
    lock_timeout: int = DEFAULT_CONFIG["lock_timeout"]
    blocks_fetch_timeout: int = DEFAULT_CONFIG["blocks_fetch_timeout"]
    daily_fetch_timeout: int = DEFAULT_CONFIG["daily_fetch_timeout"]
    probe_timeout: float = DEFAULT_CONFIG["probe_timeout"]
    memory_limit_mb: int = DEFAULT_CONFIG["memory_limit_mb"]
    error_log_max_bytes: int = DEFAULT_CONFIG["error_log_max_bytes"]
    timestamp_retention_hours: int = DEFAULT_CONFIG["timestamp_retention_hours"]
    session_window_hours: int = DEFAULT_CONFIG["session_window_hours"]
    stdin_limit: int = DEFAULT_CONFIG["stdin_limit"]
    ccusage_path: Optional[Path] = None
    debug: bool = DEFAULT_CONFIG["debug"]

    @property
    def session_window_seconds(self) -> int:
        return max(self.session_window_hours, 1) * 3600

    @property
    def timestamp_retention_seconds(self) -> int:
        return max(self.timestamp_retention_hours, 1) * 3600

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StatuslineConfig":
        def _int(key: str) -> int:
            return int(data.get(key, DEFAULT_CONFIG[key]))

        raw_path = data.get("ccusage_path")
        ccusage_path = Path(raw_path).expanduser() if isinstance(raw_path, str) and raw_path else None

        return cls(
            blocks_max_age=_int("blocks_max_age"),
            daily_max_age=_int("daily_max_age"),
            lock_timeout=_int("lock_timeout"),
            blocks_fetch_timeout=_int("blocks_fetch_timeout"),
            daily_fetch_timeout=_int("daily_fetch_timeout"),
            probe_timeout=float(data.get("probe_timeout", DEFAULT_CONFIG["probe_timeout"])),
            memory_limit_mb=_int("memory_limit_mb"),
            error_log_max_bytes=_int("error_log_max_bytes"),
            timestamp_retention_hours=_int("timestamp_retention_hours"),
            session_window_hours=_int("session_window_hours"),
            stdin_limit=_int("stdin_limit"),
            ccusage_path=ccusage_path,
            debug=bool(data.get("debug", DEFAULT_CONFIG["debug"])),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "blocks_max_age": self.blocks_max_age,
            "daily_max_age": self.daily_max_age,
            "lock_timeout": self.lock_timeout,
            "blocks_fetch_timeout": self.blocks_fetch_timeout,
            "daily_fetch_timeout": self.daily_fetch_timeout,
            "probe_timeout": self.probe_timeout,
            "memory_limit_mb": self.memory_limit_mb,
            "error_log_max_bytes": self.error_log_max_bytes,
            "timestamp_retention_hours": self.timestamp_retention_hours,
            "session_window_hours": self.session_window_hours,
            "stdin_limit": self.stdin_limit,
            "ccusage_path": str(self.ccusage_path) if self.ccusage_path else None,
            "debug": self.debug,
        }


def load_config(path: Optional[Path] = None) -> StatuslineConfig:
    path = path or CONFIG_PATH
    data: Dict[str, Any] = {}
    if path.exists():
        try:
            with path.open("r", encoding="utf-8") as handle:
                loaded = json.load(handle)
            if isinstance(loaded, dict):
                data = loaded
        except (json.JSONDecodeError, OSError):
            data = {}
    try:
        config = StatuslineConfig.from_dict(data)
    except (TypeError, ValueError, RuntimeError):
        # RuntimeError: "~user/..." naming an unknown user
        config = StatuslineConfig()
    _apply_env_overrides(config)
    return config


def _apply_env_overrides(config: StatuslineConfig) -> None:
    memory = os.getenv(MEMORY_ENV, "").strip()
    if memory:
        try:
            config.memory_limit_mb = max(int(memory), 64)
        except ValueError:
            pass
    if os.getenv(DEBUG_ENV):
        config.debug = True


__all__ = ["StatuslineConfig", "load_config", "CONFIG_PATH", "DEFAULT_CONFIG"]
