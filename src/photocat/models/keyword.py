"""
PhotoCat - Keyword Model
"""
from datetime import datetime
from typing import Optional

from src.core.database.orm import CollectionRecord, Field


class Keyword(CollectionRecord, table="keywords"):
    """
    Normalized keyword with a usage counter.

    `count` only grows: it is bumped the first time a file references the
    keyword and never decremented.
    """
    value: str = Field(default="", unique=True)
    count: int = Field(default=0)
    created_at: Optional[datetime] = Field(default=None)

    def __str__(self) -> str:
        return f"Keyword: {self.value} ({self.count})"
