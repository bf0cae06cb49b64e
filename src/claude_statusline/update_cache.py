from __future__ import annotations

import argparse
import sys
from typing import Callable, List, Optional, Sequence

from .app import StatuslineApp, bootstrap
from .fetcher import UsageFetcher
from .log import logger
from .models import CacheKind
from .usage_reader import summarize_blocks, summarize_daily
from .utils import format_currency, format_tokens


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="claude-statusline-update",
        description="Refresh the cached ccusage blocks and daily data.",
    )
    parser.add_argument("--blocks-only", action="store_true", help="refresh only the blocks cache")
    parser.add_argument("--daily-only", action="store_true", help="refresh only the daily cache")
    parser.add_argument("--quiet", action="store_true", help="do not print progress")
    parser.add_argument("--lease-held", action="store_true", help=argparse.SUPPRESS)
    return parser


def _requested_kinds(args: argparse.Namespace) -> List[CacheKind]:
    if args.blocks_only:
        return [CacheKind.BLOCKS]
    if args.daily_only:
        return [CacheKind.DAILY]
    return [CacheKind.BLOCKS, CacheKind.DAILY]


def run(
    argv: Optional[Sequence[str]] = None,
    app: Optional[StatuslineApp] = None,
    fetcher: Optional[UsageFetcher] = None,
    out: Callable[[str], None] = print,
) -> int:
    args, _ = build_parser().parse_known_args(argv)
    app = app or StatuslineApp.create()
    fetcher = fetcher or UsageFetcher(app.config, app.store, app.leases)
    kinds = _requested_kinds(args)
    everything = len(kinds) == len(CacheKind)

    def say(message: str) -> None:
        if not args.quiet:
            out(message)

    if everything:
        say("Updating all cached data...")

    for kind in kinds:
        entry = app.store.entry(kind)
        if not args.lease_held:
            app.leases.reclaim_if_expired(entry.lock_path)
            if app.leases.acquire(entry.lock_path) is None:
                logger.debug("%s refresh already in flight, skipping", kind.value)
                say(f"⏭️  {kind.label} cache refresh already running")
                continue
        say(f"Updating {kind.value} cache...")
        if fetcher.refresh(kind):
            say(f"✅ {kind.label} cache updated")
        else:
            say(f"❌ Failed to update {kind.value} cache")

    if everything and not args.quiet:
        _print_stats(app, out)
    return 0


def _print_stats(app: StatuslineApp, out: Callable[[str], None]) -> None:
    blocks = summarize_blocks(
        app.store.read(CacheKind.BLOCKS),
        window_seconds=app.config.session_window_seconds,
    )
    daily = summarize_daily(app.store.read(CacheKind.DAILY))
    out("")
    out("📊 Current stats:")
    out(f"  🪙 Tokens: {format_tokens(blocks.total_tokens)}")
    out(f"  💰 Session: {format_currency(blocks.cost_usd)}")
    out(f"  📅 Daily: {format_currency(daily.total_cost)}")


def main(argv: Optional[Sequence[str]] = None) -> None:
    try:
        config, paths = bootstrap()
        run(argv, app=StatuslineApp.create(config, paths))
    except Exception:
        logger.exception("cache update failed")
    sys.exit(0)


__all__ = ["build_parser", "main", "run"]


if __name__ == "__main__":
    main()
