from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, Optional


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value or not isinstance(value, str):
        return None
    try:
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        dt = datetime.fromisoformat(value)
        if dt.tzinfo is None:
            return dt.replace(tzinfo=timezone.utc)
        return dt
    except ValueError:
        return None


def safe_float(value: object) -> float:
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        cleaned = value.strip().replace("$", "").replace(",", "")
        try:
            return float(cleaned)
        except ValueError:
            return 0.0
    return 0.0


def safe_int(entry: Dict[str, object], *keys: str) -> int:
    for key in keys:
        if key in entry and entry[key] is not None:
            value = entry[key]
            if isinstance(value, bool):
                continue
            if isinstance(value, (int, float)):
                return int(value)
            if isinstance(value, str):
                cleaned = value.strip().replace(",", "")
                try:
                    return int(float(cleaned))
                except ValueError:
                    continue
    return 0


def format_tokens(tokens: int) -> str:
    if tokens <= 0:
        return "0"
    if tokens >= 1_000_000_000:
        return f"{tokens // 1_000_000_000}B"
    if tokens >= 1_000_000:
        return f"{tokens // 1_000_000}M"
    if tokens >= 1000:
        return f"{tokens // 1000}k"
    return str(tokens)


def format_elapsed(seconds: Optional[int]) -> str:
    """Compact processing time: 36s, 1m23s, 1h24m, 1d23h."""
    if seconds is None or seconds < 0:
        return "..."
    seconds = int(seconds)
    if seconds < 60:
        return f"{seconds}s"
    minutes, sec = divmod(seconds, 60)
    if minutes < 60:
        return f"{minutes}m{sec}s"
    hours, minutes = divmod(minutes, 60)
    if hours < 24:
        return f"{hours}h{minutes}m"
    days, hours = divmod(hours, 24)
    return f"{days}d{hours}h"


def format_session_time(seconds: int) -> str:
    hours, remainder = divmod(max(int(seconds), 0), 3600)
    minutes = remainder // 60
    if hours and minutes:
        return f"{hours}h{minutes}m"
    if hours:
        return f"{hours}h"
    return f"{minutes}m"


def format_dollars(value: Optional[float]) -> str:
    """Whole dollars; anything that shows as at least a cent counts as $1."""
    cents = round(value or 0.0, 2)
    if cents <= 0:
        return "$0"
    return f"${max(int(round(cents)), 1)}"


def format_currency(value: Optional[float]) -> str:
    if value is None:
        return "$0.00"
    return f"${value:.2f}"


__all__ = [
    "format_currency",
    "format_dollars",
    "format_elapsed",
    "format_session_time",
    "format_tokens",
    "parse_timestamp",
    "safe_float",
    "safe_int",
]
