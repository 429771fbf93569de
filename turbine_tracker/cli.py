"""
Turbine Tracker command line.

Usage:
    turbine-tracker sync [--rpc URL] [--start ISO] [--end ISO] [--batch-size N]
    turbine-tracker stats [--view ALL|TODAY] [--display-threshold X]
    turbine-tracker export [--view ALL|TODAY] [--output PATH]
    turbine-tracker chain-info
    turbine-tracker reset --yes
"""

import argparse
import asyncio
import sys
from datetime import datetime
from pathlib import Path

from loguru import logger

from jobs.tasks.chain_info_refresh import run_chain_info_refresh
from turbine_tracker.config.logging import setup_logging
from turbine_tracker.config.settings import settings
from turbine_tracker.models.enums import SyncStatus, ViewMode
from turbine_tracker.services.indexer_factory import Indexer, create_indexer
from turbine_tracker.utils.datetime_utils import from_epoch_ms
from turbine_tracker.utils.exceptions import ConfigLockedError
from turbine_tracker.utils.export import export_filename
from turbine_tracker.utils.security import mask_address


def _parse_datetime(value: str) -> datetime:
    """ISO datetime; naive values are local time."""
    try:
        return datetime.fromisoformat(value).astimezone()
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Invalid datetime: {value}") from e


async def cmd_sync(indexer: Indexer, args: argparse.Namespace) -> int:
    """Run one sync until it completes, gives up, or is interrupted."""
    sync = indexer.sync

    changes = {}
    if args.start is not None:
        changes["start_time"] = args.start
    if args.end is not None:
        changes["end_time"] = args.end
    if args.batch_size is not None:
        changes["batch_size"] = args.batch_size
    if changes:
        try:
            await sync.update_config(**changes)
        except ConfigLockedError as e:
            logger.error(f"Cannot apply sync options: {e}")
            return 1
    if args.rpc:
        await sync.change_rpc(args.rpc)

    refresher = asyncio.create_task(
        run_chain_info_refresh(sync, settings.chain_info_refresh_interval)
    )
    try:
        sync.start()
        status = await sync.wait_until_settled()
    except asyncio.CancelledError:
        sync.stop()
        await sync.wait()
        status = sync.status
    finally:
        refresher.cancel()

    progress = sync.progress()
    logger.info(
        f"Sync finished: {status} at block {progress.scanned_block} "
        f"({await indexer.store.count()} events stored)"
    )
    if progress.error_message:
        logger.error(progress.error_message)
    return 0 if status in (SyncStatus.COMPLETED, SyncStatus.PAUSED) else 1


async def cmd_stats(indexer: Indexer, args: argparse.Namespace) -> int:
    """Print leaderboard and summary numbers."""
    stats = indexer.stats
    stats.set_view(ViewMode(args.view))
    stats.set_thresholds(
        stat_threshold=args.stat_threshold,
        display_threshold=args.display_threshold,
    )

    silence, usdt = stats.volumes()
    print(f"View:            {stats.view_mode}")
    print(f"Events:          {len(stats.events)}")
    print(f"Active wallets:  {stats.active_wallets_count()} (>= {stats.stat_threshold})")
    print(f"Total LGNS:      {silence:,.4f}")
    print(f"Total USDT:      {usdt:,.4f}")
    print()

    rows = stats.leaderboard()
    limit = args.limit or len(rows)
    for rank, row in enumerate(rows[:limit], start=1):
        print(
            f"{rank:>4}. {row.recipient}  "
            f"{row.total_silence:>18,.4f} LGNS  "
            f"{row.total_usdt:>14,.4f} USDT  x{row.count}"
        )
    return 0


async def cmd_export(indexer: Indexer, args: argparse.Namespace) -> int:
    """Write the current leaderboard as CSV."""
    stats = indexer.stats
    stats.set_view(ViewMode(args.view))
    stats.set_thresholds(display_threshold=args.display_threshold)

    output = Path(args.output or export_filename(stats.view_mode))
    output.write_text(stats.export_csv(), encoding="utf-8")
    logger.success(f"Exported {len(stats.leaderboard())} rows to {output}")
    return 0


async def cmd_chain_info(indexer: Indexer, args: argparse.Namespace) -> int:
    """Print chain head and stored checkpoint."""
    sync = indexer.sync
    ok = await sync.refresh_chain_info()
    progress = sync.progress()
    checkpoint = await indexer.store.latest_scanned_block()

    if not ok:
        logger.error(progress.error_message)
        return 1
    print(f"Contract:         {mask_address(settings.contract_address)}")
    print(f"RPC:              {settings.rpc_url}")
    print(f"Head block:       {progress.head_block}")
    print(f"Head timestamp:   {from_epoch_ms(progress.head_timestamp).isoformat()}")
    print(f"Start block:      {progress.start_block}")
    print(f"Stored checkpoint:{checkpoint:>12}")
    return 0


async def cmd_reset(indexer: Indexer, args: argparse.Namespace) -> int:
    """Clear the local database."""
    if not args.yes:
        logger.error("Refusing to reset without --yes")
        return 1
    await indexer.sync.reset()
    return 0


COMMANDS = {
    "sync": cmd_sync,
    "stats": cmd_stats,
    "export": cmd_export,
    "chain-info": cmd_chain_info,
    "reset": cmd_reset,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="turbine-tracker",
        description="Index Turbine contract events and show recipient stats",
    )
    parser.add_argument("--log-level", default=settings.log_level)
    sub = parser.add_subparsers(dest="command", required=True)

    sync = sub.add_parser("sync", help="Fetch new events up to the chain head")
    sync.add_argument("--rpc", help="JSON-RPC endpoint")
    sync.add_argument("--start", type=_parse_datetime, help="Start time (ISO)")
    sync.add_argument("--end", type=_parse_datetime, help="End time (ISO)")
    sync.add_argument("--batch-size", type=int, help="Blocks per request")

    for name, help_text in (
        ("stats", "Show leaderboard"),
        ("export", "Export leaderboard as CSV"),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument(
            "--view",
            choices=[v.value for v in ViewMode],
            default=settings.view_mode.value,
        )
        cmd.add_argument(
            "--display-threshold", type=float, default=settings.display_threshold
        )
        if name == "stats":
            cmd.add_argument(
                "--stat-threshold", type=float, default=settings.stat_threshold
            )
            cmd.add_argument("--limit", type=int, default=50)
        else:
            cmd.add_argument("--output", help="Output path")

    sub.add_parser("chain-info", help="Show chain head and checkpoint")

    reset = sub.add_parser("reset", help="Clear the local database")
    reset.add_argument("--yes", action="store_true", help="Confirm reset")

    return parser


async def run(args: argparse.Namespace) -> int:
    indexer = await create_indexer(settings)
    try:
        return await COMMANDS[args.command](indexer, args)
    finally:
        await indexer.close()


def main() -> None:
    """Entry point of the turbine-tracker script."""
    args = build_parser().parse_args()
    setup_logging(args.log_level, settings.log_file)
    try:
        sys.exit(asyncio.run(run(args)))
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        sys.exit(130)


if __name__ == "__main__":
    main()
