"""
PhotoCat - Catalog Writer

Persists walk results: idempotent folder/file upserts keyed by path,
size-based change detection, and cascading folder removal.
"""
import asyncio
import shutil
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Set
from loguru import logger

from src.photocat.discovery.scanner import ImageEntry
from src.photocat.errors import NotFoundError, ScanTimeoutError
from src.photocat.models.file_record import FileRecord
from src.photocat.models.folder import Folder, name_of, parent_of, subtree_query
from src.photocat.thumbnails.service import ThumbnailService

ADDED = "added"
UPDATED = "updated"
UNCHANGED = "unchanged"


class CatalogWriter:
    """
    Writes Folder and File records for one sync run.

    A writer remembers which folders it already materialized so ancestor
    chains are written once per run; create a new writer (or call reset())
    for every run.
    """

    def __init__(self, thumbnails: ThumbnailService, thumbnail_timeout: float = 30.0):
        self.thumbnails = thumbnails
        self.thumbnail_timeout = thumbnail_timeout
        self._materialized: Set[str] = set()

    def reset(self) -> None:
        self._materialized.clear()

    async def upsert_folder(self, path: str, name: Optional[str] = None,
                            parent_path: Optional[str] = None) -> Folder:
        """
        Insert or refresh the Folder at `path`.

        Keywords and creation time are only set on insert, so repeated runs
        leave existing records unchanged.
        """
        folder = await Folder.find_one_and_update(
            {"path": path},
            {
                "$set": {
                    "name": name if name is not None else name_of(path),
                    "parent_path": parent_path if parent_path is not None else parent_of(path),
                },
                "$setOnInsert": {"keywords": [], "created_at": datetime.now()},
            },
            upsert=True,
        )
        self._materialized.add(path)
        return folder

    async def ensure_folder(self, path: str) -> int:
        """
        Materialize `path` and every ancestor, shallowest first.

        Returns:
            Number of folders written during this call
        """
        written = 0
        parts = path.split("/")
        for depth in range(1, len(parts) + 1):
            current = "/".join(parts[:depth])
            if current in self._materialized:
                continue
            await self.upsert_folder(current)
            written += 1
        return written

    async def upsert_file(self, path: str, filename: str, folder_path: str, size: int,
                          extension: str, thumbnail_path: str) -> FileRecord:
        """Insert or refresh the File at `path`; existing keywords are kept."""
        now = datetime.now()
        return await FileRecord.find_one_and_update(
            {"path": path},
            {
                "$set": {
                    "filename": filename,
                    "folder_path": folder_path,
                    "size": size,
                    "extension": extension,
                    "thumbnail_path": thumbnail_path,
                    "updated_at": now,
                },
                "$setOnInsert": {"keywords": [], "created_at": now},
            },
            upsert=True,
        )

    async def sync_file(self, entry: ImageEntry, file_path: str, folder_path: str) -> str:
        """
        Bring one image's record up to date.

        The thumbnail is regenerated only for new files and files whose size
        changed.

        Args:
            entry: Image found by the walker
            file_path: Catalog key for the image
            folder_path: Logical folder of the image

        Returns:
            ADDED, UPDATED or UNCHANGED

        Raises:
            ScanTimeoutError: thumbnail generation exceeded its timeout;
                the record is left untouched so the next run retries
        """
        existing = await FileRecord.find_one({"path": file_path})
        if existing is not None and existing.size == entry.size:
            return UNCHANGED

        try:
            thumbnail_path = await asyncio.wait_for(
                self.thumbnails.generate_async(entry.disk_path, file_path),
                self.thumbnail_timeout,
            )
        except asyncio.TimeoutError:
            raise ScanTimeoutError(entry.disk_path, self.thumbnail_timeout)

        await self.upsert_file(
            path=file_path,
            filename=entry.filename,
            folder_path=folder_path,
            size=entry.size,
            extension=entry.extension,
            thumbnail_path=thumbnail_path,
        )
        if existing is None:
            logger.debug(f"Added {file_path}")
            return ADDED
        logger.debug(f"Updated {file_path} (size {existing.size} -> {entry.size})")
        return UPDATED

    async def clear_folders(self) -> int:
        """Delete every Folder record (full resync)."""
        deleted = await Folder.delete_many({})
        self.reset()
        logger.info(f"Cleared {deleted} folder records")
        return deleted

    async def remove_folder(self, path: str, disk_path: Optional[str] = None) -> Dict[str, Any]:
        """
        Cascade-delete a folder from the catalog and, optionally, from disk.

        Files and folders at `path` or nested under it are removed. Thumbnail
        and disk removal are best effort: failures are logged, not raised.

        Args:
            path: Logical folder path
            disk_path: Directory to delete from disk, None to keep the files

        Returns:
            Stats dict with deleted counts

        Raises:
            NotFoundError: nothing in the catalog matches `path`
                or `path` is the library root
        """
        # The library root has no Folder record and cannot be removed
        if not path.strip("/"):
            raise NotFoundError("Folder", path or "/")

        files: List[FileRecord] = await FileRecord.find(subtree_query("folder_path", path))
        folder_count = await Folder.count_documents(subtree_query("path", path))
        if not files and folder_count == 0:
            raise NotFoundError("Folder", path)

        stats: Dict[str, Any] = {
            "files_deleted": await FileRecord.delete_many(subtree_query("folder_path", path)),
            "folders_deleted": await Folder.delete_many(subtree_query("path", path)),
            "thumbnails_removed": 0,
            "disk_removed": False,
        }

        for record in files:
            if await asyncio.to_thread(self.thumbnails.remove, record.thumbnail_path):
                stats["thumbnails_removed"] += 1

        if disk_path:
            stats["disk_removed"] = await asyncio.to_thread(self._remove_tree, disk_path)

        logger.info(
            f"Removed folder {path}: {stats['files_deleted']} files, "
            f"{stats['folders_deleted']} folders"
        )
        return stats

    def _remove_tree(self, disk_path: str) -> bool:
        target = Path(disk_path)
        if not target.exists():
            return False
        try:
            shutil.rmtree(target)
            return True
        except OSError as e:
            logger.warning(f"Failed to remove {disk_path} from disk: {e}")
            return False
