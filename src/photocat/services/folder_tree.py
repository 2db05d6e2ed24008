"""
PhotoCat - Folder Tree Builder

Rebuilds the folder hierarchy from flat Folder records.
"""
import locale
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List
from loguru import logger

from src.photocat.models.folder import ROOT_PARENT


@dataclass
class FolderNode:
    id: str
    name: str
    path: str
    children: List["FolderNode"] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "path": self.path,
            "children": [child.to_dict() for child in self.children],
        }


def name_sort_key(name: str) -> str:
    """Locale-aware, case-insensitive collation key."""
    return locale.strxfrm(name.casefold())


def _sort_level(nodes: List[FolderNode]) -> None:
    nodes.sort(key=lambda node: name_sort_key(node.name))
    for node in nodes:
        _sort_level(node.children)


def build_folder_tree(folders: Iterable) -> List[FolderNode]:
    """
    Build the folder forest.

    Two passes over the records sorted by path: the first creates one node
    per distinct path, the second attaches each node to its parent. Nodes
    whose parent is missing are promoted to the top level. Every level is
    sorted by name.

    Args:
        folders: Records exposing id, name, path and parent_path

    Returns:
        Top-level nodes
    """
    records = sorted(folders, key=lambda f: f.path)

    nodes: Dict[str, FolderNode] = {}
    parents: Dict[str, str] = {}
    for folder in records:
        if folder.path in nodes:
            # Duplicate rows for one path collapse into the first node
            continue
        nodes[folder.path] = FolderNode(id=str(folder.id), name=folder.name, path=folder.path)
        parents[folder.path] = folder.parent_path or ROOT_PARENT

    roots: List[FolderNode] = []
    for path, node in nodes.items():
        parent_path = parents[path]
        if parent_path == ROOT_PARENT:
            roots.append(node)
            continue
        parent = nodes.get(parent_path)
        if parent is None:
            logger.warning(f"Folder {path} has no parent record ({parent_path}), placing at top level")
            roots.append(node)
        else:
            parent.children.append(node)

    _sort_level(roots)
    return roots
