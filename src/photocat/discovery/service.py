"""
PhotoCat - Sync Service

Orchestrates walking a photo tree and writing it to the catalog.
"""
import asyncio
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Set
from loguru import logger

from src.core.base_system import BaseSystem
from src.core.database.manager import DatabaseManager
from src.photocat.discovery.scanner import DirectoryListing, DirectoryWalker, WalkError
from src.photocat.discovery.sync import ADDED, UPDATED, CatalogWriter
from src.photocat.errors import (
    ConfigurationError,
    PhotoCatError,
    ScanError,
    SyncInProgressError,
)
from src.photocat.library import is_within, relative_logical_path, resolve_root
from src.photocat.services.maintenance_service import MaintenanceService
from src.photocat.thumbnails.service import ThumbnailService


@dataclass
class SyncError:
    path: str
    reason: str


@dataclass
class SyncReport:
    """Outcome of one sync run."""
    root: str
    success: bool = True
    cancelled: bool = False
    folders_synced: int = 0
    files_added: int = 0
    files_updated: int = 0
    files_unchanged: int = 0
    thumbnails_generated: int = 0
    errors: List[SyncError] = field(default_factory=list)
    synced_subtrees: List[str] = field(default_factory=list)

    def add_error(self, path: str, reason: str) -> None:
        self.errors.append(SyncError(path, reason))
        self.success = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class SyncService(BaseSystem):
    """
    Sync entry points.

    - sync(): walk a root and upsert what changed
    - check_for_changes(): duplicate cleanup followed by an incremental sync
    - poll(): check_for_changes() on an interval

    Only one sync per root runs at a time; an overlapping request fails
    fast with SyncInProgressError.
    """

    depends_on = [DatabaseManager, ThumbnailService, MaintenanceService]

    async def initialize(self) -> None:
        logger.info("SyncService initializing")
        library = self.config.data.library
        settings = self.config.data.sync

        self.thumbnails = self.locator.get_system(ThumbnailService)
        self.maintenance = self.locator.get_system(MaintenanceService)
        self.walker = DirectoryWalker(
            thumbnails_dir_name=library.thumbnails_dir_name,
            io_timeout=settings.io_timeout,
            probe_timeout=settings.probe_timeout,
        )
        self.thumbnail_timeout = settings.thumbnail_timeout
        self.poll_interval = settings.poll_interval
        self._semaphore = asyncio.Semaphore(max(1, settings.thumbnail_workers))
        self._locks: Dict[str, asyncio.Lock] = {}
        self._cancelled: Set[str] = set()

        await super().initialize()
        logger.info(f"SyncService ready ({settings.thumbnail_workers} thumbnail workers)")

    async def shutdown(self) -> None:
        logger.info("SyncService shutting down")
        self._cancelled.update(self._locks.keys())
        await super().shutdown()

    def _lock_for(self, key: str) -> asyncio.Lock:
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        return self._locks[key]

    def is_running(self, root: Optional[str] = None) -> bool:
        if root is None:
            return any(lock.locked() for lock in self._locks.values())
        key = Path(root).expanduser().resolve().as_posix()
        return key in self._locks and self._locks[key].locked()

    def cancel(self, root: Optional[str] = None) -> bool:
        """
        Ask a running sync to stop after the current directory.

        Args:
            root: Root of the run to stop, None for every running sync

        Returns:
            True if a running sync was signalled
        """
        if root is None:
            keys = [key for key, lock in self._locks.items() if lock.locked()]
        else:
            key = Path(root).expanduser().resolve().as_posix()
            keys = [key] if self.is_running(key) else []
        self._cancelled.update(keys)
        return bool(keys)

    def _resolve_start(self, root_path: Optional[str], external: bool):
        """
        Returns (start directory, logical path, whether File paths are
        absolute, lock key).

        Runs inside the library share the library root as lock key, so a
        subtree sync never overlaps a whole-library sync.
        """
        library_root = resolve_root(self.config)

        if external:
            if not root_path:
                raise ConfigurationError("External sync requires a directory")
            start = Path(root_path).expanduser().resolve()
            if not start.is_dir():
                raise ConfigurationError(f"Not a directory: {start}")
            return start, start.name, True, start.as_posix()

        start = Path(root_path).expanduser().resolve() if root_path else library_root
        if not is_within(start, library_root):
            raise ConfigurationError(f"{start} is outside the library root; sync it as external")
        if not start.is_dir():
            raise ConfigurationError(f"Not a directory: {start}")
        return start, relative_logical_path(start, library_root), False, library_root.as_posix()

    async def sync(self, root_path: Optional[str] = None, external: bool = False,
                   full_resync: bool = False) -> SyncReport:
        """
        Sync a directory tree into the catalog.

        Args:
            root_path: Directory to sync; None for the library root
            external: Import a directory outside the library, namespaced
                under its base name, with absolute File paths
            full_resync: Clear all Folder records first (whole-library sync only)

        Returns:
            SyncReport with counters, per-subtree errors and synced subtrees

        Raises:
            ConfigurationError: library root or start directory invalid
            SyncInProgressError: a sync of the same root is running
            ScanError: the start directory itself is unreadable
        """
        start, logical_path, absolute, key = self._resolve_start(root_path, external)
        start_dir = start.as_posix()

        lock = self._lock_for(key)
        if lock.locked():
            raise SyncInProgressError(key)

        async with lock:
            self._cancelled.discard(key)
            report = SyncReport(root=start_dir)
            writer = CatalogWriter(self.thumbnails, self.thumbnail_timeout)

            if full_resync:
                if logical_path:
                    logger.warning("Full resync only applies to the whole library, running incremental sync")
                else:
                    await writer.clear_folders()

            logger.info(f"Sync started: {start_dir} (external={external}, full_resync={full_resync})")
            try:
                async for item in self.walker.walk(start_dir, logical_path):
                    if key in self._cancelled:
                        report.cancelled = True
                        report.success = False
                        logger.warning(f"Sync cancelled: {start_dir}")
                        break
                    if isinstance(item, WalkError):
                        report.add_error(item.path, item.reason)
                        continue
                    await self._sync_directory(writer, item, absolute, report)
            except ScanError as e:
                logger.error(f"Cannot sync {start_dir}: {e}")
                raise
            finally:
                self._cancelled.discard(key)

            logger.info(
                f"Sync finished: {start_dir} - folders={report.folders_synced} "
                f"added={report.files_added} updated={report.files_updated} "
                f"unchanged={report.files_unchanged} errors={len(report.errors)}"
            )
            return report

    async def _sync_directory(self, writer: CatalogWriter, listing: DirectoryListing,
                              absolute: bool, report: SyncReport) -> None:
        if not listing.is_root:
            await writer.ensure_folder(listing.logical_path)
            report.folders_synced += 1

        errors_before = len(report.errors)

        async def process(entry):
            if absolute:
                file_path = entry.disk_path
            elif listing.logical_path:
                file_path = f"{listing.logical_path}/{entry.filename}"
            else:
                file_path = entry.filename

            async with self._semaphore:
                try:
                    outcome = await writer.sync_file(entry, file_path, listing.logical_path)
                except ScanError as e:
                    logger.warning(f"Failed to sync {e.path}: {e.reason}")
                    report.add_error(e.path, e.reason)
                    return

            if outcome == ADDED:
                report.files_added += 1
                report.thumbnails_generated += 1
            elif outcome == UPDATED:
                report.files_updated += 1
                report.thumbnails_generated += 1
            else:
                report.files_unchanged += 1

        await asyncio.gather(*(process(entry) for entry in listing.files))

        if len(report.errors) == errors_before:
            report.synced_subtrees.append(listing.logical_path or "/")

    async def check_for_changes(self) -> Dict[str, Any]:
        """
        Remove duplicate folders, then run an incremental sync of the library.

        Returns:
            Dict with `success`, plus `report` or `error` details
        """
        try:
            removed = await self.maintenance.cleanup_duplicate_folders()
            report = await self.sync()
        except ScanError as e:
            return {"success": False, "error": e.reason, "path": e.path}
        except PhotoCatError as e:
            logger.error(f"Check for changes failed: {e}")
            return {"success": False, "error": str(e)}

        return {
            "success": report.success,
            "duplicates_removed": removed,
            "report": report.to_dict(),
        }

    async def poll(self, interval: Optional[float] = None,
                   stop_event: Optional[asyncio.Event] = None) -> int:
        """
        Run check_for_changes() every `interval` seconds until stopped.

        Args:
            interval: Seconds between checks, defaults to sync.poll_interval
            stop_event: Set it to stop polling

        Returns:
            Number of checks performed
        """
        interval = interval if interval is not None else self.poll_interval
        stop_event = stop_event or asyncio.Event()
        runs = 0

        logger.info(f"Polling for changes every {interval:g}s")
        while not stop_event.is_set():
            result = await self.check_for_changes()
            runs += 1
            if not result["success"]:
                logger.warning(f"Change check failed: {result.get('error', 'see report')}")
            try:
                await asyncio.wait_for(stop_event.wait(), interval)
            except asyncio.TimeoutError:
                pass
        return runs
