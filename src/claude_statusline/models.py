from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

USER_PROMPT_SUBMIT = "UserPromptSubmit"


class CacheKind(str, Enum):
    BLOCKS = "blocks"
    DAILY = "daily"

    @property
    def label(self) -> str:
        return self.value.capitalize()


def default_payload(kind: CacheKind) -> Dict[str, Any]:
    """Empty but well-formed document for a cache kind."""
    if kind is CacheKind.BLOCKS:
        return {"blocks": []}
    return {"daily": [], "totals": {"totalCost": 0, "totalTokens": 0}}


@dataclass(frozen=True)
class CacheEntry:
    kind: CacheKind
    path: Path
    lock_path: Path
    max_age: float
    fetch_timeout: float


@dataclass
class BlockUsage:
    total_tokens: int = 0
    cost_usd: float = 0.0
    session_seconds: int = 0


@dataclass
class DailyUsage:
    total_cost: float = 0.0


@dataclass
class HookEvent:
    session_id: Optional[str] = None
    transcript_path: Optional[str] = None
    hook_event_name: Optional[str] = None
    display_name: Optional[str] = None
    current_dir: Optional[str] = None

    @property
    def is_prompt_submit(self) -> bool:
        return self.hook_event_name == USER_PROMPT_SUBMIT

    @classmethod
    def from_json(cls, raw: str) -> "HookEvent":
        try:
            data = json.loads(raw) if raw.strip() else {}
        except ValueError:
            return cls()
        if not isinstance(data, dict):
            return cls()
        model = data.get("model")
        workspace = data.get("workspace")
        display_name = _text(data.get("display_name"))
        if display_name is None and isinstance(model, dict):
            display_name = _text(model.get("display_name"))
        current_dir = _text(data.get("current_dir"))
        if current_dir is None and isinstance(workspace, dict):
            current_dir = _text(workspace.get("current_dir"))
        return cls(
            session_id=_text(data.get("session_id")),
            transcript_path=_text(data.get("transcript_path")),
            hook_event_name=_text(data.get("hook_event_name")),
            display_name=display_name,
            current_dir=current_dir,
        )


def _text(value: object) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value
    return None


__all__ = [
    "BlockUsage",
    "CacheEntry",
    "CacheKind",
    "DailyUsage",
    "HookEvent",
    "USER_PROMPT_SUBMIT",
    "default_payload",
]
