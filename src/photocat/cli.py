"""
PhotoCat - Command Line Interface

Usage:
    photocat sync [--full] [--external DIR]
    photocat check
    photocat watch [--interval SECONDS]
    photocat tree
    photocat files [FOLDER] [--limit N]
    photocat search "query text"
    photocat suggest "partial quer"
    photocat tag FILE KEYWORD
    photocat tag-folder FOLDER KEYWORD [--recursive]
    photocat keywords
    photocat register KEYWORD [KEYWORD ...]
    photocat stats
    photocat browse [PATH] [--dirs-only]
    photocat remove-folder FOLDER [--keep-files]
    photocat dedupe
    photocat clear
    photocat purge
"""
import argparse
import asyncio
import sys
from typing import List, Optional
from loguru import logger

from src.core.config import ConfigManager
from src.core.logging import setup_logging
from src.photocat.discovery.service import SyncService
from src.photocat.engine_bootstrap import running_engine
from src.photocat.errors import PhotoCatError
from src.photocat.search.service import SearchService
from src.photocat.services.folder_tree import FolderNode
from src.photocat.services.fs_service import FSService
from src.photocat.services.maintenance_service import MaintenanceService
from src.photocat.tags.manager import KeywordManager


def print_tree(nodes: List[FolderNode], depth: int = 0) -> None:
    for node in nodes:
        print(f"{'  ' * depth}{node.name}/")
        print_tree(node.children, depth + 1)


def print_report(report) -> None:
    print(f"Sync of {report.root}: {'OK' if report.success else 'incomplete'}")
    print(f"  Folders: {report.folders_synced}")
    print(f"  Files added: {report.files_added} | updated: {report.files_updated} | unchanged: {report.files_unchanged}")
    print(f"  Thumbnails generated: {report.thumbnails_generated}")
    if report.cancelled:
        print("  Cancelled before completion")
    for error in report.errors:
        print(f"  ! {error.path}: {error.reason}")


async def cmd_sync(args, locator) -> int:
    sync = locator.get_system(SyncService)
    if args.external:
        report = await sync.sync(args.external, external=True)
    else:
        report = await sync.sync(args.path, full_resync=args.full)
    print_report(report)
    return 0 if report.success else 2


async def cmd_check(args, locator) -> int:
    result = await locator.get_system(SyncService).check_for_changes()
    if "report" in result:
        print(f"Duplicates removed: {result['duplicates_removed']}")
        for error in result["report"]["errors"]:
            print(f"  ! {error['path']}: {error['reason']}")
    else:
        print(f"Check failed: {result['error']}")
    return 0 if result["success"] else 2


async def cmd_watch(args, locator) -> int:
    sync = locator.get_system(SyncService)
    try:
        await sync.poll(interval=args.interval)
    except asyncio.CancelledError:
        logger.info("Polling stopped")
    return 0


async def cmd_tree(args, locator) -> int:
    print_tree(await locator.get_system(FSService).get_folder_tree())
    return 0


async def cmd_files(args, locator) -> int:
    fs = locator.get_system(FSService)
    if args.folder is not None:
        files = await fs.list_folder_files(args.folder)
    else:
        files = await fs.list_files(limit=args.limit)
    for record in files:
        print(f"{record.path}\t{record.size}\t{record.thumbnail_path}")
    print(f"{len(files)} files")
    return 0


async def cmd_search(args, locator) -> int:
    files = await locator.get_system(SearchService).search(args.query)
    for record in files:
        print(record.path)
    print(f"{len(files)} matches")
    return 0


async def cmd_suggest(args, locator) -> int:
    for hint in await locator.get_system(SearchService).suggest(args.text, limit=args.limit):
        print(f"{hint.keyword}\t{hint.count}\t{hint.full_query}")
    return 0


async def cmd_tag(args, locator) -> int:
    keyword = await locator.get_system(KeywordManager).attach_keyword(args.file, args.keyword)
    print(f"{args.file}: {keyword.value} (used by {keyword.count} files)")
    return 0


async def cmd_tag_folder(args, locator) -> int:
    keywords = locator.get_system(KeywordManager)
    if args.recursive:
        result = await keywords.propagate_to_subtree(args.folder, [args.keyword])
    else:
        result = await keywords.tag_folder(args.folder, args.keyword)
    print(f"{args.folder}: {result['files_tagged']} files newly tagged")
    return 0


async def cmd_keywords(args, locator) -> int:
    for keyword in await locator.get_system(KeywordManager).list_keywords():
        print(f"{keyword.value}\t{keyword.count}")
    return 0


async def cmd_register(args, locator) -> int:
    count = await locator.get_system(KeywordManager).bulk_register(args.keywords)
    print(f"{count} keywords registered")
    return 0


async def cmd_stats(args, locator) -> int:
    stats = await locator.get_system(KeywordManager).get_stats()
    print(f"Keywords: {stats['total_keywords']}")
    print(f"Files without keywords: {stats['files_without_keywords']}")
    return 0


async def cmd_browse(args, locator) -> int:
    for entry in await locator.get_system(FSService).list_directory(args.path, directories_only=args.dirs_only):
        print(f"{entry.name}/" if entry.is_directory else entry.name)
    return 0


async def cmd_remove_folder(args, locator) -> int:
    stats = await locator.get_system(FSService).remove_folder(args.folder, delete_from_disk=not args.keep_files)
    print(f"Removed {stats['folders_deleted']} folders and {stats['files_deleted']} files")
    return 0


async def cmd_dedupe(args, locator) -> int:
    removed = await locator.get_system(MaintenanceService).cleanup_duplicate_folders()
    print(f"{removed} duplicate folders removed")
    return 0


async def cmd_clear(args, locator) -> int:
    result = await locator.get_system(MaintenanceService).clear_catalog()
    print(f"Cleared {result['folders_deleted']} folders and {result['files_deleted']} files")
    return 0


async def cmd_purge(args, locator) -> int:
    result = await locator.get_system(MaintenanceService).purge_all()
    print(f"Purged {result['folders_deleted']} folders, {result['files_deleted']} files, "
          f"{result['keywords_deleted']} keywords")
    for error in result["errors"]:
        print(f"  ! {error}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="photocat", description="PhotoCat - photo catalog engine")
    parser.add_argument("--config", default="config.json", help="Config file (JSON or TOML)")
    parser.add_argument("--debug", action="store_true", help="Verbose console logging")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    p = subparsers.add_parser("sync", help="Sync the library into the catalog")
    p.add_argument("path", nargs="?", help="Directory inside the library (default: whole library)")
    p.add_argument("--full", action="store_true", help="Clear folder records first")
    p.add_argument("--external", metavar="DIR", help="Import a directory outside the library")
    p.set_defaults(handler=cmd_sync)

    p = subparsers.add_parser("check", help="Remove duplicate folders and sync changes")
    p.set_defaults(handler=cmd_check)

    p = subparsers.add_parser("watch", help="Check for changes periodically")
    p.add_argument("--interval", type=float, default=None, help="Seconds between checks")
    p.set_defaults(handler=cmd_watch)

    p = subparsers.add_parser("tree", help="Show the folder tree")
    p.set_defaults(handler=cmd_tree)

    p = subparsers.add_parser("files", help="List files")
    p.add_argument("folder", nargs="?", help="Only files directly in this folder")
    p.add_argument("--limit", type=int, default=0, help="Maximum files (0 for all)")
    p.set_defaults(handler=cmd_files)

    p = subparsers.add_parser("search", help="Search files by keywords")
    p.add_argument("query")
    p.set_defaults(handler=cmd_search)

    p = subparsers.add_parser("suggest", help="Autocomplete a keyword query")
    p.add_argument("text")
    p.add_argument("--limit", type=int, default=10)
    p.set_defaults(handler=cmd_suggest)

    p = subparsers.add_parser("tag", help="Attach a keyword to a file")
    p.add_argument("file", help="File catalog path")
    p.add_argument("keyword")
    p.set_defaults(handler=cmd_tag)

    p = subparsers.add_parser("tag-folder", help="Attach a keyword to a folder and its files")
    p.add_argument("folder")
    p.add_argument("keyword")
    p.add_argument("--recursive", action="store_true", help="Include files in subfolders")
    p.set_defaults(handler=cmd_tag_folder)

    p = subparsers.add_parser("keywords", help="List keywords")
    p.set_defaults(handler=cmd_keywords)

    p = subparsers.add_parser("register", help="Create keywords without attaching them")
    p.add_argument("keywords", nargs="+")
    p.set_defaults(handler=cmd_register)

    p = subparsers.add_parser("stats", help="Keyword statistics")
    p.set_defaults(handler=cmd_stats)

    p = subparsers.add_parser("browse", help="List a directory on disk")
    p.add_argument("path", nargs="?")
    p.add_argument("--dirs-only", action="store_true")
    p.set_defaults(handler=cmd_browse)

    p = subparsers.add_parser("remove-folder", help="Remove a folder from the catalog and disk")
    p.add_argument("folder")
    p.add_argument("--keep-files", action="store_true", help="Only remove catalog records")
    p.set_defaults(handler=cmd_remove_folder)

    p = subparsers.add_parser("dedupe", help="Remove duplicate folder records")
    p.set_defaults(handler=cmd_dedupe)

    p = subparsers.add_parser("clear", help="Delete folder and file records")
    p.set_defaults(handler=cmd_clear)

    p = subparsers.add_parser("purge", help="Delete all records and thumbnails")
    p.set_defaults(handler=cmd_purge)

    return parser


async def run(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    config = ConfigManager(args.config)
    general = config.data.general
    setup_logging(debug_mode=args.debug or general.debug_mode, log_dir=general.log_dir)

    try:
        async with running_engine(config) as locator:
            return await args.handler(args, locator)
    except (PhotoCatError, ValueError) as e:
        logger.error(f"Command failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1


def main() -> None:
    try:
        sys.exit(asyncio.run(run()))
    except KeyboardInterrupt:
        sys.exit(130)
