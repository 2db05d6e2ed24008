"""
PhotoCat - Filesystem Service

Entry points API for reading the catalog, removing folders and browsing
the library on disk.
"""
import asyncio
from typing import Any, Dict, List, Optional
from loguru import logger

from src.core.base_system import BaseSystem
from src.core.database.manager import DatabaseManager
from src.photocat.discovery.browser import DirectoryEntry, list_directory
from src.photocat.discovery.sync import CatalogWriter
from src.photocat.errors import (
    NotFoundError,
    ScanError,
    ScanPermissionError,
    ScanTimeoutError,
)
from src.photocat.library import is_within, resolve_root
from src.photocat.models.file_record import FileRecord
from src.photocat.models.folder import Folder, subtree_query
from src.photocat.services.folder_tree import FolderNode, build_folder_tree
from src.photocat.thumbnails.service import ThumbnailService


class FSService(BaseSystem):
    """
    Catalog service providing entry points API.

    Provides methods to:
    - Build the folder tree
    - List files of a folder or of the whole catalog
    - Look up single files and folders
    - Remove a folder with everything below it
    - Browse directories on disk
    """

    depends_on = [DatabaseManager, ThumbnailService]

    async def initialize(self) -> None:
        logger.info("FSService initializing")
        self._thumbnails = self.locator.get_system(ThumbnailService)
        await super().initialize()
        logger.info("FSService ready")

    async def shutdown(self) -> None:
        logger.info("FSService shutting down")
        await super().shutdown()

    # ==================== Catalog Reads ====================

    async def get_folder_tree(self) -> List[FolderNode]:
        """
        Get the folder hierarchy.

        Returns:
            Top-level FolderNodes, children nested and sorted by name
        """
        return build_folder_tree(await Folder.find({}))

    async def list_folder_files(self, folder_path: str) -> List[FileRecord]:
        """Files directly inside a folder, by filename."""
        return await FileRecord.find({"folder_path": folder_path}, sort=[("filename", 1)])

    async def list_files(self, limit: int = 0, skip: int = 0) -> List[FileRecord]:
        """
        All catalogued files by filename.

        Args:
            limit: Maximum number of files (0 for all)
            skip: Number of files to skip (for pagination)
        """
        return await FileRecord.find({}, sort=[("filename", 1)], limit=limit, skip=skip)

    async def get_file(self, path: str) -> FileRecord:
        record = await FileRecord.find_one({"path": path})
        if record is None:
            raise NotFoundError("File", path)
        return record

    async def get_folder(self, path: str) -> Folder:
        folder = await Folder.find_one({"path": path})
        if folder is None:
            raise NotFoundError("Folder", path)
        return folder

    # ==================== Mutations ====================

    async def remove_folder(self, path: str, delete_from_disk: bool = True) -> Dict[str, Any]:
        """
        Remove a folder, its subfolders and their files from the catalog.

        The matching directory under the library root is deleted from disk
        as well when `delete_from_disk` is set. Folders imported from an
        external location (absolute file paths) are only removed from the
        catalog.

        Args:
            path: Logical folder path
            delete_from_disk: Also delete the directory under the library root

        Returns:
            Stats dict from CatalogWriter.remove_folder

        Raises:
            NotFoundError: nothing in the catalog matches `path`
        """
        path = path.strip("/")
        disk_path: Optional[str] = None
        if delete_from_disk:
            external = await FileRecord.find_one({
                **subtree_query("folder_path", path),
                "path": {"$regex": "^(/|[A-Za-z]:/)"},
            })
            if external is None:
                root = resolve_root(self.config)
                candidate = (root / path).resolve()
                if is_within(candidate, root) and candidate != root:
                    disk_path = candidate.as_posix()
            else:
                logger.info(f"Folder {path} was imported from outside the library, keeping it on disk")

        writer = CatalogWriter(self._thumbnails)
        return await writer.remove_folder(path, disk_path)

    # ==================== Browsing ====================

    async def list_directory(self, path: Optional[str] = None,
                             directories_only: bool = False) -> List[DirectoryEntry]:
        """
        List a directory on disk.

        Args:
            path: Directory to list (absolute, or relative to the library
                root); None lists the root. Paths outside the root fall back
                to the root unless library.browse_outside_root is set.
            directories_only: Leave files out

        Returns:
            DirectoryEntries, directories first, then by name

        Raises:
            ConfigurationError: library root invalid
            NotFoundError: directory does not exist
            ScanError: directory unreadable or listing timed out
        """
        root = resolve_root(self.config)
        library = self.config.data.library

        target = (root / path).resolve() if path else root
        if not is_within(target, root) and not library.browse_outside_root:
            logger.warning(f"Browse outside library root refused: {target}, listing root")
            target = root
        if not target.is_dir():
            raise NotFoundError("Directory", target.as_posix())

        timeout = self.config.data.sync.io_timeout
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(list_directory, str(target), library.thumbnails_dir_name, directories_only),
                timeout,
            )
        except asyncio.TimeoutError:
            raise ScanTimeoutError(target.as_posix(), timeout)
        except PermissionError:
            raise ScanPermissionError(target.as_posix())
        except OSError as e:
            raise ScanError(target.as_posix(), e.strerror or str(e))
