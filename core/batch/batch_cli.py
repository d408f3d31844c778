#!/usr/bin/env python3
"""
Batch Translation CLI

Command-line front end for the translation server.

Usage:
    python -m core.batch.batch_cli list
    python -m core.batch.batch_cli upload diagram1.svg model.asta
    python -m core.batch.batch_cli translate a.svg b.svg
    python -m core.batch.batch_cli translate --all
    python -m core.batch.batch_cli download --all -o translated/
    python -m core.batch.batch_cli delete a.svg --yes
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List

from api.client import TranslationApiClient
from api.sse import SSEChannelProvider
from config.logging_config import get_logger
from config.settings import settings

from .file_manager import FileManager
from .orchestrator import BatchTranslationOrchestrator, OrchestratorConfig
from .progress_tracker import ProgressSnapshot, ProgressState, create_logging_callback
from .selection import FileSelectionState

logger = get_logger(__name__)


def print_files(manager: FileManager):
    """Print the listing"""
    metadata = manager.selection.metadata
    if not metadata:
        print("  (no files)")
        return

    for entry in metadata:
        flags = []
        if entry.translated:
            flags.append(f"translated v{entry.version or 1}")
        if entry.outlined:
            flags.append("OUTLINED")
        uploaded = entry.uploaded_at.strftime("%Y-%m-%d %H:%M") if entry.uploaded_at else "-"
        print(f"  {entry.file_name:<40} {uploaded:<17} {', '.join(flags)}")


def render_progress(snapshot: ProgressSnapshot):
    """Single-line progress renderer"""
    batch = snapshot.batch
    if batch is None or batch.finished:
        return
    line = f"[{batch.current + 1}/{batch.total}] {batch.current_file}"
    if snapshot.file:
        line += f"  {snapshot.file.percentage:3d}%  {snapshot.file.message}"
    print(f"\r{line[:110]:<110}", end="", flush=True)


def select_files(manager: FileManager, names: List[str], select_all: bool) -> bool:
    if select_all:
        manager.selection.select_all()
    else:
        manager.selection.select_many(names)
    return len(manager.selection) > 0


async def cmd_list(args, manager: FileManager) -> int:
    if await manager.fetch_files() is None:
        return 1
    print_files(manager)
    return 0


async def cmd_upload(args, manager: FileManager) -> int:
    report = await manager.upload_files(Path(p) for p in args.files)
    for name in report.uploaded:
        print(f"  [UPLOADED] {name}")
    for name in report.rejected:
        print(f"  [REJECTED] {name}")
    if report.outlined:
        print(f"  WARNING: outlined files cannot be translated: {', '.join(report.outlined)}")
    return 0 if report.success else 1


async def cmd_translate(args, manager: FileManager) -> int:
    if await manager.fetch_files() is None:
        return 1
    select_files(manager, args.files, args.all)

    unsubscribe = manager.state.subscribe(render_progress)
    try:
        outcome = await manager.translate_selected()
    finally:
        unsubscribe()
        print()

    for name in outcome.succeeded:
        print(f"  [DONE] {name}")
    for name in outcome.failed:
        print(f"  [FAILED] {name}: {outcome.failure_reason}")
    for name in outcome.not_attempted:
        print(f"  [SKIPPED] {name} (batch aborted)")
    for name in outcome.skipped_outlined:
        print(f"  [OUTLINED] {name}")
    return 0 if outcome.success else 1


async def cmd_download(args, manager: FileManager) -> int:
    if await manager.fetch_files() is None:
        return 1
    select_files(manager, args.files, args.all)
    saved = await manager.download_selected(Path(args.output))
    for path in saved:
        print(f"  [SAVED] {path}")
    return 0 if saved and not manager.state.error else 1


async def cmd_delete(args, manager: FileManager) -> int:
    if await manager.fetch_files() is None:
        return 1
    if not select_files(manager, args.files, args.all):
        print("Nothing selected.")
        return 1

    names = manager.selection.selected
    if not args.yes:
        answer = input(f"Delete {len(names)} file(s)? [y/N] ").strip().lower()
        if answer not in ("y", "yes"):
            print("Cancelled.")
            return 0

    return 0 if await manager.delete_selected() else 1


async def run(args) -> int:
    logger.debug(f"Settings: {settings.summary()}")
    state = ProgressState(name="cli")
    state.add_callback(create_logging_callback(log_interval=10))

    async with TranslationApiClient(
        args.server,
        timeout=settings.request_timeout_seconds,
        translate_timeout=settings.translate_timeout_seconds,
    ) as client:
        orchestrator = BatchTranslationOrchestrator(
            transport=client,
            channel_provider=SSEChannelProvider(client.http_client),
            state=state,
            selection=FileSelectionState(),
            config=OrchestratorConfig.from_settings(settings),
        )
        manager = FileManager(client, orchestrator)

        commands = {
            "list": cmd_list,
            "upload": cmd_upload,
            "translate": cmd_translate,
            "download": cmd_download,
            "delete": cmd_delete,
        }
        code = await commands[args.command](args, manager)

    if state.error:
        print(f"\n{state.error}", file=sys.stderr)
    return code


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Batch translation client for the diagram translation server"
    )
    parser.add_argument("--server", default=settings.api_base_url,
                        help="API base URL (default: %(default)s)")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    subparsers.add_parser("list", help="List uploaded files")

    upload_parser = subparsers.add_parser("upload", help="Upload .svg/.asta/.astah files")
    upload_parser.add_argument("files", nargs="+", help="Local files")

    translate_parser = subparsers.add_parser("translate", help="Translate files one by one")
    translate_parser.add_argument("files", nargs="*", help="Server file names")
    translate_parser.add_argument("-a", "--all", action="store_true",
                                  help="Translate every listed file")

    download_parser = subparsers.add_parser("download", help="Download translated files")
    download_parser.add_argument("files", nargs="*", help="Server file names")
    download_parser.add_argument("-a", "--all", action="store_true",
                                 help="Download every translated file")
    download_parser.add_argument("-o", "--output", default=str(settings.download_dir),
                                 help="Destination directory")

    delete_parser = subparsers.add_parser("delete", help="Delete files on the server")
    delete_parser.add_argument("files", nargs="*", help="Server file names")
    delete_parser.add_argument("-a", "--all", action="store_true",
                               help="Delete every listed file")
    delete_parser.add_argument("-y", "--yes", action="store_true",
                               help="Do not ask for confirmation")

    return parser


def main():
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    try:
        code = asyncio.run(run(args))
    except KeyboardInterrupt:
        print("\nInterrupted.")
        code = 130
    sys.exit(code)


if __name__ == "__main__":
    main()
