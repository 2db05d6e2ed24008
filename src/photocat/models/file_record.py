"""
PhotoCat - File Model

Catalogued image file. `size` is the change fingerprint: a different size
on the next sync regenerates the thumbnail and refreshes the record.
"""
from datetime import datetime
from typing import List, Optional
from bson import ObjectId

from src.core.database.orm import CollectionRecord, Field


class FileRecord(CollectionRecord, table="files"):
    """
    Catalogued image.

    `path` is relative to the library root, or absolute for files imported
    from an external location. `folder_path` is always the logical folder.
    """
    path: str = Field(default="", unique=True)
    filename: str = Field(default="")
    folder_path: str = Field(default="", index=True)
    extension: str = Field(default="")
    size: int = Field(default=0)

    # Relative to the library root, e.g. "thumbnails/cat_1a2b3c4d5e6f.jpg"
    thumbnail_path: str = Field(default="")

    # Keyword ObjectIds
    keywords: List[ObjectId] = Field(default_factory=list, index=True)

    created_at: Optional[datetime] = Field(default=None)
    updated_at: Optional[datetime] = Field(default=None)

    def __str__(self) -> str:
        return f"File: {self.path} ({self.size} bytes)"
