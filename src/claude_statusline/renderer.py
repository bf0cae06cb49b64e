from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .models import BlockUsage, DailyUsage, HookEvent
from .utils import format_dollars, format_elapsed, format_session_time, format_tokens

DEFAULT_MODEL = "Claude"
GIT_TIMEOUT = 1.0

ICON_PROCESSING = "✨"
ICON_MODEL = "🤖"
ICON_WINDOW = "⏱️"
ICON_TOKENS = "🪙"
ICON_SESSION_COST = "💰"
ICON_DAILY_COST = "📅"
ICON_BRANCH = "🌿"
ICON_FOLDER = "📁"


@dataclass
class StatusLine:
    processing: Optional[int]
    model: str
    blocks: BlockUsage
    daily: DailyUsage
    branch: str
    folder: str

    def render(self) -> str:
        return (
            f"{ICON_PROCESSING}{format_elapsed(self.processing)} "
            f"{ICON_MODEL}{self.model} "
            f"{ICON_WINDOW} {format_session_time(self.blocks.session_seconds)} "
            f"{ICON_TOKENS}{format_tokens(self.blocks.total_tokens)} "
            f"{ICON_SESSION_COST}{format_dollars(self.blocks.cost_usd)} "
            f"{ICON_DAILY_COST}{format_dollars(self.daily.total_cost)} "
            f"{ICON_BRANCH}{self.branch} "
            f"{ICON_FOLDER}{self.folder}"
        )


def git_branch(directory: str) -> str:
    try:
        proc = subprocess.run(
            ["git", "branch", "--show-current"],
            cwd=directory,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            timeout=GIT_TIMEOUT,
            check=False,
        )
    except (OSError, subprocess.SubprocessError):
        return "none"
    branch = proc.stdout.decode("utf-8", "replace").strip() if proc.returncode == 0 else ""
    return branch or "none"


def build_status_line(
    event: HookEvent,
    blocks: BlockUsage,
    daily: DailyUsage,
    processing: Optional[int],
) -> StatusLine:
    directory = event.current_dir or os.getcwd()
    return StatusLine(
        processing=processing,
        model=event.display_name or DEFAULT_MODEL,
        blocks=blocks,
        daily=daily,
        branch=git_branch(directory),
        folder=Path(directory).name or directory,
    )


__all__ = ["StatusLine", "build_status_line", "git_branch"]
