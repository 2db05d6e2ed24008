"""
PhotoCat - Catalog Models
"""
from src.photocat.models.folder import Folder
from src.photocat.models.file_record import FileRecord
from src.photocat.models.keyword import Keyword

__all__ = ["Folder", "FileRecord", "Keyword"]
