from __future__ import annotations

import json
import os
import shutil
import subprocess
import tempfile
import time
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, List, Optional

from .cache_store import CacheStore, atomic_write, has_expected_shape
from .config import StatuslineConfig
from .lease import LeaseManager
from .log import logger
from .models import CacheKind
from .process_monitor import kill_tree, tree_rss

WATCHDOG_INTERVAL = 0.25
# The heap flag only bounds V8's old space; leave room for the rest of the runtime.
RSS_HEADROOM = 1.5
STDERR_TAIL_CHARS = 400
HEAP_FLAG = "--max-old-space-size"


class FetchError(Exception):
    pass


def _candidate_ccusage_paths(explicit: Optional[str] = None) -> List[Path]:
    home = Path.home()
    direct_env = os.environ.get("CCUSAGE_PATH")
    resolved = shutil.which("ccusage")
    candidates = [
        explicit,
        direct_env,
        resolved,
        "/usr/local/bin/ccusage",
        "/opt/homebrew/bin/ccusage",
        str(home / ".local" / "bin" / "ccusage"),
        str(home / ".bun" / "bin" / "ccusage"),
    ]
    unique: List[Path] = []
    seen = set()
    for item in candidates:
        if not item:
            continue
        try:
            path = Path(item).expanduser()
        except (OSError, RuntimeError):
            continue
        norm = str(path.resolve()) if path.exists() else str(path)
        if norm in seen:
            continue
        seen.add(norm)
        unique.append(path)
    return unique


def resolve_command(config: StatuslineConfig) -> Optional[List[str]]:
    """Find a way to run ccusage: the binary itself, else ``npx ccusage``."""
    explicit = str(config.ccusage_path) if config.ccusage_path else None
    for path in _candidate_ccusage_paths(explicit):
        if path.is_file() and os.access(path, os.X_OK):
            return [str(path)]
    npx = shutil.which("npx")
    if npx and _probe([npx, "ccusage", "--help"], config.probe_timeout):
        return [npx, "ccusage"]
    return None


def _probe(argv: List[str], timeout: float) -> bool:
    try:
        proc = subprocess.run(
            argv,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            timeout=timeout,
            check=False,
        )
    except (OSError, subprocess.SubprocessError):
        return False
    return proc.returncode == 0


def command_args(kind: CacheKind, now: Optional[datetime] = None) -> List[str]:
    if kind is CacheKind.BLOCKS:
        return ["blocks", "--json"]
    today = (now or datetime.now()).strftime("%Y%m%d")
    return ["daily", "--json", "--since", today, "--until", today]


def child_environment(memory_limit_mb: int, base: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    env = dict(os.environ if base is None else base)
    options = [opt for opt in env.get("NODE_OPTIONS", "").split() if not opt.startswith(HEAP_FLAG)]
    options.append(f"{HEAP_FLAG}={memory_limit_mb}")
    env["NODE_OPTIONS"] = " ".join(options)
    return env


def _payload_is_valid(kind: CacheKind, data: bytes) -> bool:
    try:
        payload = json.loads(data)
    except ValueError:
        return False
    return has_expected_shape(kind, payload)


class UsageFetcher:
    def __init__(
        self,
        config: StatuslineConfig,
        store: CacheStore,
        leases: LeaseManager,
        resolver: Optional[Callable[[], Optional[List[str]]]] = None,
    ):
        self.config = config
        self.store = store
        self.leases = leases
        self._resolver = resolver or (lambda: resolve_command(config))
        self._command: Optional[List[str]] = None
        self._resolved = False

    def command(self) -> Optional[List[str]]:
        if not self._resolved:
            self._command = self._resolver()
            self._resolved = True
            if self._command:
                logger.debug("using ccusage via %s", " ".join(self._command))
            else:
                logger.info("ccusage not found; set CCUSAGE_PATH or install ccusage/npx")
        return self._command

    def fetch(self, kind: CacheKind) -> bytes:
        command = self.command()
        if command is None:
            raise FetchError("ccusage is not available")
        timeout = self.store.entry(kind).fetch_timeout
        return self._run(command + command_args(kind), timeout)

    def refresh(self, kind: CacheKind) -> bool:
        """Fetch ``kind`` and swap it into the cache; the lock is always released."""
        entry = self.store.entry(kind)
        started = time.monotonic()
        try:
            if self.command() is None:
                self.store.seed(kind)
                return False
            try:
                data = self.fetch(kind)
                if not data.strip():
                    raise FetchError("empty output")
                if not _payload_is_valid(kind, data):
                    raise FetchError("output is not a %s payload" % kind.value)
            except FetchError as exc:
                logger.warning("%s cache refresh failed: %s", kind.value, exc)
                return False
            atomic_write(entry.path, data)
            logger.debug(
                "%s cache refreshed in %.1fs (%d bytes)",
                kind.value,
                time.monotonic() - started,
                len(data),
            )
            return True
        except OSError as exc:
            logger.warning("%s cache refresh failed: %s", kind.value, exc)
            return False
        finally:
            self.leases.release(entry.lock_path)

    def _run(self, argv: List[str], timeout: float) -> bytes:
        env = child_environment(self.config.memory_limit_mb)
        with tempfile.TemporaryFile() as out, tempfile.TemporaryFile() as err:
            try:
                proc = subprocess.Popen(
                    argv,
                    stdin=subprocess.DEVNULL,
                    stdout=out,
                    stderr=err,
                    env=env,
                    close_fds=True,
                    start_new_session=True,
                )
            except OSError as exc:
                raise FetchError(f"cannot start {argv[0]}: {exc}") from exc
            returncode = self._wait(proc, timeout)
            out.seek(0)
            data = out.read()
            if returncode != 0:
                err.seek(0)
                tail = err.read().decode("utf-8", "replace")[-STDERR_TAIL_CHARS:]
                detail = " ".join(tail.split())
                raise FetchError(f"exit code {returncode}" + (f": {detail}" if detail else ""))
            return data

    def _wait(self, proc: subprocess.Popen, timeout: float) -> int:
        deadline = time.monotonic() + timeout
        rss_limit = int(self.config.memory_limit_mb * RSS_HEADROOM * 1024 * 1024)
        while True:
            try:
                return proc.wait(timeout=WATCHDOG_INTERVAL)
            except subprocess.TimeoutExpired:
                pass
            if time.monotonic() >= deadline:
                kill_tree(proc.pid)
                proc.wait()
                raise FetchError(f"timed out after {timeout:g}s")
            rss = tree_rss(proc.pid)
            if rss > rss_limit:
                kill_tree(proc.pid)
                proc.wait()
                raise FetchError(
                    f"memory ceiling exceeded ({rss // (1024 * 1024)}MB > {rss_limit // (1024 * 1024)}MB)"
                )


__all__ = [
    "FetchError",
    "UsageFetcher",
    "child_environment",
    "command_args",
    "resolve_command",
]
