"""
PhotoCat - Maintenance Service

Catalog repair and reset operations.
"""
import asyncio
import shutil
import time
from typing import Any, Dict, Set
from loguru import logger

from src.core.base_system import BaseSystem
from src.core.database.manager import DatabaseManager
from src.photocat.library import thumbnails_dir
from src.photocat.models.file_record import FileRecord
from src.photocat.models.folder import Folder
from src.photocat.models.keyword import Keyword


class MaintenanceService(BaseSystem):
    """
    Maintenance operations.

    Provides methods to:
    - Remove duplicate Folder rows left by older catalogs
    - Clear folder and file records (keywords survive)
    - Purge the whole catalog including thumbnails
    """

    depends_on = [DatabaseManager]

    async def initialize(self) -> None:
        logger.info("MaintenanceService initializing")
        await super().initialize()
        logger.info("MaintenanceService ready")

    async def shutdown(self) -> None:
        logger.info("MaintenanceService shutting down")
        await super().shutdown()

    async def cleanup_duplicate_folders(self) -> int:
        """
        Keep the first Folder row of every path and delete the rest.

        Rows are visited in insertion order, so the oldest record survives.

        Returns:
            Number of rows removed
        """
        seen: Set[str] = set()
        duplicate_ids = []
        for folder in await Folder.find({}, sort=[("_id", 1)]):
            if folder.path in seen:
                duplicate_ids.append(folder.id)
            else:
                seen.add(folder.path)

        if not duplicate_ids:
            return 0

        removed = await Folder.delete_many({"_id": {"$in": duplicate_ids}})
        logger.info(f"Removed {removed} duplicate folder records")
        return removed

    async def clear_catalog(self) -> Dict[str, Any]:
        """
        Delete all Folder and File records. Keywords are kept.

        Returns:
            Dict with folders_deleted and files_deleted
        """
        result = {
            "folders_deleted": await Folder.delete_many({}),
            "files_deleted": await FileRecord.delete_many({}),
        }
        logger.warning(f"Catalog cleared: {result['folders_deleted']} folders, {result['files_deleted']} files")
        return result

    async def purge_all(self) -> Dict[str, Any]:
        """
        Delete every Folder, File and Keyword record and the thumbnails directory.

        Thumbnail removal is best effort; a failure is reported in `errors`.

        Returns:
            Dict with:
                folders_deleted, files_deleted, keywords_deleted: record counts
                thumbnails_removed: whether the directory was deleted
                duration: seconds taken
                errors: list of error messages
        """
        start_time = time.time()
        result: Dict[str, Any] = {
            "folders_deleted": await Folder.delete_many({}),
            "files_deleted": await FileRecord.delete_many({}),
            "keywords_deleted": await Keyword.delete_many({}),
            "thumbnails_removed": False,
            "duration": 0.0,
            "errors": [],
        }

        try:
            target = thumbnails_dir(self.config)
            if target.exists():
                await asyncio.to_thread(shutil.rmtree, target)
                result["thumbnails_removed"] = True
        except Exception as e:
            error_msg = f"Thumbnail removal failed: {e}"
            result["errors"].append(error_msg)
            logger.error(error_msg)

        result["duration"] = time.time() - start_time
        logger.warning(
            f"Catalog purged: {result['folders_deleted']} folders, "
            f"{result['files_deleted']} files, {result['keywords_deleted']} keywords"
        )
        return result
