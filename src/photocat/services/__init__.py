"""
PhotoCat Services.

FSService is the entry point for catalog reads, folder removal and
directory browsing; MaintenanceService repairs and resets the catalog.
"""
from .fs_service import FSService
from .maintenance_service import MaintenanceService
from .folder_tree import FolderNode, build_folder_tree

__all__ = ["FSService", "MaintenanceService", "FolderNode", "build_folder_tree"]
