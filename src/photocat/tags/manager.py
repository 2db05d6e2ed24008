"""
PhotoCat - Keyword Manager

Keyword catalog: normalization, attachment to files and folders, and
usage statistics.
"""
from datetime import datetime
from typing import Any, Dict, Iterable, List
from bson import ObjectId
from loguru import logger

from src.core.base_system import BaseSystem
from src.core.database.manager import DatabaseManager
from src.photocat.errors import NotFoundError
from src.photocat.models.file_record import FileRecord
from src.photocat.models.folder import Folder, subtree_query
from src.photocat.models.keyword import Keyword

UNTAGGED_QUERY = {"$or": [{"keywords": {"$exists": False}}, {"keywords": {"$size": 0}}]}


def normalize(raw: str) -> str:
    """Lower-case and trim a keyword."""
    return raw.strip().lower()


class KeywordManager(BaseSystem):
    """
    Keyword management service.

    Features:
    - Keyword upsert by normalized value
    - Atomic, idempotent attachment to files (count bumped once per file)
    - Folder tagging, direct files or the whole subtree
    - Statistics for untagged files
    """

    depends_on = [DatabaseManager]

    async def initialize(self) -> None:
        logger.info("KeywordManager initializing")
        await super().initialize()
        logger.info("KeywordManager ready")

    async def shutdown(self) -> None:
        logger.info("KeywordManager shutting down")
        await super().shutdown()

    def _require(self, raw: str) -> str:
        value = normalize(raw)
        if not value:
            raise ValueError("Keyword must not be blank")
        return value

    async def get_or_create(self, value: str) -> Keyword:
        """Upsert a keyword by its normalized value; new keywords start at count 0."""
        return await Keyword.find_one_and_update(
            {"value": value},
            {"$setOnInsert": {"count": 0, "created_at": datetime.now()}},
            upsert=True,
        )

    async def _attach_to_file(self, file_id: ObjectId, keyword_id: ObjectId) -> bool:
        # The $ne guard makes the add and the count bump happen at most once per file
        modified = await FileRecord.update_one(
            {"_id": file_id, "keywords": {"$ne": keyword_id}},
            {"$addToSet": {"keywords": keyword_id}},
        )
        if modified:
            await Keyword.update_one({"_id": keyword_id}, {"$inc": {"count": 1}})
        return bool(modified)

    async def attach_keyword(self, file_path: str, raw: str) -> Keyword:
        """
        Attach a keyword to one file.

        Args:
            file_path: File catalog path
            raw: Keyword as typed

        Returns:
            The keyword with its current count

        Raises:
            ValueError: blank keyword
            NotFoundError: no file with that path
        """
        value = self._require(raw)
        record = await FileRecord.find_one({"path": file_path})
        if record is None:
            raise NotFoundError("File", file_path)

        keyword = await self.get_or_create(value)
        if await self._attach_to_file(record.id, keyword.id):
            logger.debug(f"Keyword '{value}' attached to {file_path}")
        return await Keyword.get(keyword.id)

    async def tag_folder(self, folder_path: str, raw: str) -> Dict[str, Any]:
        """
        Attach a keyword to a folder and to the files directly inside it.

        Returns:
            Dict with keyword and files_tagged (newly tagged files)

        Raises:
            ValueError: blank keyword
            NotFoundError: no folder with that path
        """
        value = self._require(raw)
        if await Folder.find_one({"path": folder_path}) is None:
            raise NotFoundError("Folder", folder_path)

        keyword = await self.get_or_create(value)
        await Folder.update_many({"path": folder_path}, {"$addToSet": {"keywords": keyword.id}})

        tagged = 0
        for record in await FileRecord.find({"folder_path": folder_path}):
            if await self._attach_to_file(record.id, keyword.id):
                tagged += 1

        logger.info(f"Tagged folder {folder_path} with '{value}' ({tagged} files)")
        return {"keyword": value, "files_tagged": tagged}

    async def propagate_to_subtree(self, folder_path: str, raws: Iterable[str]) -> Dict[str, Any]:
        """
        Attach keywords to a folder and every file at or below it.

        Blank keywords are ignored.

        Returns:
            Dict with keywords (normalized values) and files_tagged
            (file/keyword pairs newly created)

        Raises:
            NotFoundError: nothing in the catalog at or below `folder_path`
        """
        values = list(dict.fromkeys(v for v in (normalize(r) for r in raws) if v))
        files = await FileRecord.find(subtree_query("folder_path", folder_path))
        if not files and await Folder.count_documents({"path": folder_path}) == 0:
            raise NotFoundError("Folder", folder_path)

        tagged = 0
        for value in values:
            keyword = await self.get_or_create(value)
            await Folder.update_many({"path": folder_path}, {"$addToSet": {"keywords": keyword.id}})
            for record in files:
                if await self._attach_to_file(record.id, keyword.id):
                    tagged += 1

        logger.info(f"Propagated {values} under {folder_path} ({tagged} new file tags)")
        return {"keywords": values, "files_tagged": tagged}

    async def bulk_register(self, raws: Iterable[str]) -> int:
        """
        Create keywords without attaching them. Counts are untouched.

        Returns:
            Number of distinct non-blank values processed
        """
        values = list(dict.fromkeys(v for v in (normalize(r) for r in raws) if v))
        now = datetime.now()
        for value in values:
            await Keyword.update_one(
                {"value": value},
                {"$setOnInsert": {"count": 0, "created_at": now}},
                upsert=True,
            )
        logger.info(f"Registered {len(values)} keywords")
        return len(values)

    async def list_keywords(self) -> List[Keyword]:
        return await Keyword.find({}, sort=[("value", 1)])

    async def get_file_keywords(self, file_path: str) -> List[str]:
        record = await FileRecord.find_one({"path": file_path})
        if record is None:
            raise NotFoundError("File", file_path)
        if not record.keywords:
            return []
        keywords = await Keyword.find({"_id": {"$in": list(record.keywords)}}, sort=[("value", 1)])
        return [k.value for k in keywords]

    async def total_keywords(self) -> int:
        return await Keyword.count_documents()

    async def files_without_keywords(self) -> int:
        return await FileRecord.count_documents(UNTAGGED_QUERY)

    async def get_stats(self) -> Dict[str, int]:
        return {
            "total_keywords": await self.total_keywords(),
            "files_without_keywords": await self.files_without_keywords(),
        }
