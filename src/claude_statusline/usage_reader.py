from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from .models import BlockUsage, DailyUsage
from .utils import parse_timestamp, safe_float, safe_int


def _blocks(payload: Dict[str, Any]) -> List[Dict[str, Any]]:
    raw = payload.get("blocks")
    if not isinstance(raw, list):
        return []
    return [block for block in raw if isinstance(block, dict)]


def _session_seconds(block: Dict[str, Any], now: datetime, window: timedelta) -> int:
    end = parse_timestamp(block.get("endTime"))
    if end is not None:
        if end <= now:
            return 0
        # future end: freshly reset window, started at end - window
        started = end - window
    else:
        started = parse_timestamp(block.get("startTime"))
        if started is None:
            return 0
    elapsed = (now - started).total_seconds()
    if elapsed < 0:
        return 0
    return int(min(elapsed, window.total_seconds()))


def summarize_blocks(
    payload: Dict[str, Any],
    now: Optional[datetime] = None,
    window_seconds: int = 5 * 3600,
) -> BlockUsage:
    now = now or datetime.now(timezone.utc)
    window = timedelta(seconds=window_seconds)
    blocks = _blocks(payload)

    for block in blocks:
        if block.get("isActive"):
            return BlockUsage(
                total_tokens=safe_int(block, "totalTokens"),
                cost_usd=safe_float(block.get("costUSD")),
                session_seconds=_session_seconds(block, now, window),
            )

    non_gap = [block for block in blocks if not block.get("isGap", False)]
    if non_gap:
        last = non_gap[-1]
        return BlockUsage(
            total_tokens=safe_int(last, "totalTokens"),
            cost_usd=safe_float(last.get("costUSD")),
        )
    return BlockUsage()


def summarize_daily(payload: Dict[str, Any]) -> DailyUsage:
    totals = payload.get("totals")
    if not isinstance(totals, dict):
        totals = {}
    return DailyUsage(total_cost=safe_float(totals.get("totalCost")))


__all__ = ["summarize_blocks", "summarize_daily"]
