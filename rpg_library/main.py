import argparse
import asyncio
import os
import sys

from rpg_library.config import get_config
from rpg_library.core.batch_cleanup import BatchCleanupCoordinator, non_slim_folders
from rpg_library.core.cleaner import AtomicCleaner, CleanupOperation
from rpg_library.core.drive_info import DriveClassifier
from rpg_library.core.state import LibraryState
from rpg_library.database import JSONStore, MetadataCache
from rpg_library.errors import ConcurrencyConflict, LibraryRootError
from rpg_library.models.cleanup import CleanupOutcome
from rpg_library.scanner.file_system import AsyncFileSystem
from rpg_library.scanner.manager import ScanOrchestrator


def _format_size(num: int) -> str:
    for unit in ("B", "KB", "MB", "GB"):
        if num < 1024:
            return f"{num:.0f} {unit}" if unit == "B" else f"{num:.1f} {unit}"
        num /= 1024
    return f"{num:.1f} TB"


def _print_game(record):
    slim = "slim" if record.is_slim else "bundled runtime"
    code = f" [{record.external_id}]" if record.external_id else ""
    print(f"  🎮 {record.title}{code} | {record.engine_type.value} | {slim} | {record.entry_path}")


def _ask(question: str) -> bool:
    try:
        return input(f"{question} [y/N] ").strip().lower() in ("y", "yes")
    except EOFError:
        return False


def build_state(config):
    fs = AsyncFileSystem()
    cache = MetadataCache(fs, JSONStore(config.cache_file))
    cache.load()
    return fs, LibraryState(cache)


async def cmd_scan(args, config) -> int:
    fs, state = build_state(config)
    orchestrator = ScanOrchestrator(fs, state)
    root = os.path.abspath(args.root)
    try:
        cached = orchestrator.load_library(root)
        if cached:
            print(f"📂 Last scan ({len(cached)} games):")
            for record in cached:
                _print_game(record)

        print(f"🚀 Scanning {root}...")
        games = await orchestrator.scan_library(
            root,
            recursive=args.recursive,
            force=args.force,
            progress_callback=lambda x: print(f"  {x}"),
        )
        for record in games:
            _print_game(record)
        return 0
    finally:
        state.close()


async def cmd_clean(args, config) -> int:
    fs, state = build_state(config)
    orchestrator = ScanOrchestrator(fs, state)
    folder = os.path.abspath(args.folder)
    try:
        classification = await orchestrator.classifier.classify(folder)
        if classification is None:
            print(f"❌ {folder} is not a game folder.")
            return 1

        op = CleanupOperation(
            folder,
            fs,
            state,
            orchestrator.junk_detector,
            AtomicCleaner(fs, pace=config.cleanup_pace),
            DriveClassifier(),
            classification=classification,
            orchestrator=orchestrator,
        )
        summary = await op.analyze()
        for warning in summary.warnings:
            print(f"⚠️ {warning}")
        if summary.item_count == 0:
            print("✅ Nothing to remove, the game is already slim.")
            op.cancel()
            return 0

        print(f"🧹 {summary.item_count} item(s), about {_format_size(summary.estimated_bytes)}, will be removed from {folder}")
        for item in op.manifest.items():
            print(f"  - {item}")
        if summary.network_warning:
            print("⚠️ Network drive: files cannot go to the trash and will be deleted permanently.")

        if not args.yes and not _ask("Proceed?"):
            op.cancel()
            print("Cancelled.")
            return 0

        tx = await op.confirm(progress_callback=lambda x: print(f"  {x}"))
        if tx.succeeded:
            print(f"✅ Cleanup finished ({len(tx.staged_items)} item(s) removed).")
            return 0
        print(f"❌ Cleanup {tx.outcome.value}: {tx.error}")
        if tx.outcome == CleanupOutcome.FAILED:
            print(f"   Leftovers are in {os.path.join(folder, tx.staging_name)}")
        return 1
    finally:
        state.close()


async def cmd_slim_all(args, config) -> int:
    fs, state = build_state(config)
    orchestrator = ScanOrchestrator(fs, state)
    root = os.path.abspath(args.root)
    try:
        print(f"🚀 Scanning {root}...")
        games = await orchestrator.scan_library(root, recursive=args.recursive)
        folders = non_slim_folders(games)
        if not folders:
            print("✅ Every game is already slim.")
            return 0

        print(f"🧹 {len(folders)} game(s) still carry a bundled runtime:")
        for path in folders:
            print(f"  - {path}")
        if not args.yes and not _ask("Clean all of them?"):
            print("Cancelled.")
            return 0

        coordinator = BatchCleanupCoordinator(
            orchestrator,
            AtomicCleaner(fs, pace=config.cleanup_pace),
            log_file=config.cleanup_log_file,
        )
        report = await coordinator.run(folders, progress_callback=print)
        print(
            f"📊 {report.succeeded} cleaned, {report.already_slim} already slim, "
            f"{report.conflicts} busy, {report.failed} failed"
        )
        return 1 if report.failed else 0
    finally:
        state.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="rpg-library", description="RPG Maker / Tyrano game library tool")
    sub = parser.add_subparsers(dest="command", required=True)

    scan = sub.add_parser("scan", help="Find games under a library folder.")
    scan.add_argument("root", nargs="?", help="Library root folder (defaults to library_path from settings).")
    scan.add_argument("--recursive", action="store_true", help="Look up to 3 levels deep.")
    scan.add_argument("--force", action="store_true", help="Ignore cached records.")

    clean = sub.add_parser("clean", help="Remove the bundled runtime from one game.")
    clean.add_argument("folder", help="Game folder.")
    clean.add_argument("--yes", action="store_true", help="Do not ask for confirmation.")

    slim = sub.add_parser("slim-all", help="Scan, then clean every game that is not slim.")
    slim.add_argument("root", nargs="?", help="Library root folder (defaults to library_path from settings).")
    slim.add_argument("--recursive", action="store_true", help="Look up to 3 levels deep.")
    slim.add_argument("--yes", action="store_true", help="Do not ask for confirmation.")
    return parser


COMMANDS = {
    "scan": cmd_scan,
    "clean": cmd_clean,
    "slim-all": cmd_slim_all,
}


def main(args_list=None) -> int:
    args = build_parser().parse_args(args_list)
    config = get_config()

    if args.command != "clean":
        if not args.recursive:
            args.recursive = config.settings.recursive_scan
        if not args.root:
            args.root = config.settings.library_path
        if not args.root:
            print("❌ No library folder given and library_path is not set in settings.json.")
            return 2

    try:
        return asyncio.run(COMMANDS[args.command](args, config))
    except (LibraryRootError, ConcurrencyConflict) as e:
        print(f"❌ {e}")
        return 1
    except KeyboardInterrupt:
        print("\n⚠️ Interrupted.")
        return 130


if __name__ == "__main__":
    sys.exit(main())
