from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List, Optional

import psutil


@dataclass
class ProcessSnapshot:
    pid: int
    name: str
    cmdline: List[str]


def find_session_process(pid: Optional[int] = None) -> Optional[ProcessSnapshot]:
    """Return the nearest ancestor that looks like the Claude CLI."""
    try:
        current = psutil.Process(pid or os.getpid())
        parents = current.parents()
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        return None
    for proc in parents:
        try:
            name = (proc.name() or "").lower()
            cmdline = proc.cmdline() or []
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
            continue
        if _looks_like_claude_process(name, cmdline):
            return ProcessSnapshot(pid=proc.pid, name=name, cmdline=list(cmdline))
    return None


def tree_rss(pid: int) -> int:
    """Resident memory of a process and all of its descendants, in bytes."""
    try:
        root = psutil.Process(pid)
        members = [root] + root.children(recursive=True)
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        return 0
    total = 0
    for proc in members:
        try:
            total += proc.memory_info().rss
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
            continue
    return total


def kill_tree(pid: int) -> None:
    try:
        root = psutil.Process(pid)
        children = root.children(recursive=True)
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        return
    for proc in children + [root]:
        try:
            proc.kill()
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            continue
    psutil.wait_procs(children, timeout=2)


def _looks_like_claude_process(name: str, cmdline: List[str]) -> bool:
    if "statusl" in name:
        return False
    if "claude" in name:
        return True
    if not name.startswith(("node", "bun")):
        return False
    return any("claude" in os.path.basename(part).lower() for part in cmdline[:2])


__all__ = ["ProcessSnapshot", "find_session_process", "kill_tree", "tree_rss"]
