"""
PhotoCat - Photo Catalog Engine

Indexes a directory tree of images into a MongoDB catalog.

Features:
- Recursive discovery that prunes image-less subtrees
- Incremental sync with size-based change detection
- JPEG thumbnails with a fixed size cap
- Folder tree rebuilt from flat path records
- Keyword catalog with usage counts, search and autocomplete

Note: Uses lazy imports to avoid circular dependencies.
Direct imports: from src.photocat.models import FileRecord
"""

__version__ = "0.1.0"

_lazy_imports = {
    # Models
    "Folder": "src.photocat.models.folder",
    "FileRecord": "src.photocat.models.file_record",
    "Keyword": "src.photocat.models.keyword",

    # Services
    "SyncService": "src.photocat.discovery.service",
    "SyncReport": "src.photocat.discovery.service",
    "ThumbnailService": "src.photocat.thumbnails.service",
    "FSService": "src.photocat.services.fs_service",
    "MaintenanceService": "src.photocat.services.maintenance_service",
    "KeywordManager": "src.photocat.tags.manager",
    "SearchService": "src.photocat.search.service",

    # Building blocks
    "DirectoryWalker": "src.photocat.discovery.scanner",
    "CatalogWriter": "src.photocat.discovery.sync",
    "build_folder_tree": "src.photocat.services.folder_tree",
    "build_locator": "src.photocat.engine_bootstrap",
    "running_engine": "src.photocat.engine_bootstrap",
}

__all__ = list(_lazy_imports.keys())


def __getattr__(name):
    if name in _lazy_imports:
        import importlib
        module = importlib.import_module(_lazy_imports[name])
        return getattr(module, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
