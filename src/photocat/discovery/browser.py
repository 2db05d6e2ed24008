"""
PhotoCat - Directory Browser

Lists a directory for picking sync targets.
"""
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, List

from src.photocat.library import is_hidden, same_name


@dataclass
class DirectoryEntry:
    name: str
    path: str
    is_directory: bool

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def list_directory(directory: str, thumbnails_dir_name: str = "thumbnails",
                   directories_only: bool = False) -> List[DirectoryEntry]:
    """
    List one directory (blocking).

    Hidden entries and the thumbnails directory are left out. Directories
    come first, then files, each group ordered by name.

    Raises:
        OSError: directory unreadable
    """
    entries: List[DirectoryEntry] = []
    with os.scandir(directory) as it:
        for entry in it:
            if is_hidden(entry.name):
                continue
            try:
                is_dir = entry.is_dir()
            except OSError:
                continue
            if is_dir and same_name(entry.name, thumbnails_dir_name):
                continue
            if directories_only and not is_dir:
                continue
            entries.append(DirectoryEntry(entry.name, Path(entry.path).as_posix(), is_dir))

    entries.sort(key=lambda e: (not e.is_directory, e.name.casefold(), e.name))
    return entries
