from .orm import CollectionRecord, Field
from .manager import DatabaseManager

__all__ = ["CollectionRecord", "Field", "DatabaseManager"]
