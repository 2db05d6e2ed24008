"""
PhotoCat - Folder Model

One record per catalogued directory, keyed by its logical path.
"""
import re
from datetime import datetime
from typing import Any, Dict, List, Optional
from bson import ObjectId

from src.core.database.orm import CollectionRecord, Field

ROOT_PARENT = "/"


def parent_of(path: str) -> str:
    """Parent logical path; "/" for top-level folders."""
    head, sep, _ = path.rpartition("/")
    return head if sep and head else ROOT_PARENT


def name_of(path: str) -> str:
    return path.rpartition("/")[2]


def subtree_query(field_name: str, path: str) -> Dict[str, Any]:
    """Match `path` itself or anything nested under it on `field_name`."""
    return {"$or": [
        {field_name: path},
        {field_name: {"$regex": f"^{re.escape(path)}/"}},
    ]}


class Folder(CollectionRecord, table="folders"):
    """
    Catalogued directory.

    `path` is indexed but not unique: legacy catalogs can hold duplicate
    rows, which MaintenanceService.cleanup_duplicate_folders removes.
    """
    path: str = Field(default="", index=True)
    name: str = Field(default="")
    parent_path: str = Field(default=ROOT_PARENT, index=True)

    # Keyword ObjectIds
    keywords: List[ObjectId] = Field(default_factory=list)

    created_at: Optional[datetime] = Field(default=None)

    def __str__(self) -> str:
        return f"Folder: {self.path}"
