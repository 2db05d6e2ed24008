"""
PhotoCat - Library Paths

Resolution of the configured library root and the paths derived from it.
"""
from pathlib import Path
from typing import Optional

from src.photocat.errors import ConfigurationError


def resolve_root(config) -> Path:
    """
    Resolve the configured library root.

    Raises:
        ConfigurationError: root unset or not an existing directory
    """
    root_path = config.data.library.root_path
    if not root_path:
        raise ConfigurationError("Library root is not configured (set library.root_path or PHOTOS_ROOT)")
    root = Path(root_path).expanduser().resolve()
    if not root.is_dir():
        raise ConfigurationError(f"Library root does not exist: {root}")
    return root


def thumbnails_dir(config, root: Optional[Path] = None) -> Path:
    root = root or resolve_root(config)
    return root / config.data.library.thumbnails_dir_name


def is_within(path: Path, root: Path) -> bool:
    try:
        path.relative_to(root)
        return True
    except ValueError:
        return False


def relative_logical_path(path: Path, root: Path) -> str:
    """Posix path of `path` relative to `root`; "" for the root itself."""
    rel = path.relative_to(root).as_posix()
    return "" if rel == "." else rel


def is_hidden(name: str) -> bool:
    return name.startswith(".")


def same_name(a: str, b: str) -> bool:
    """Case-insensitive name comparison."""
    return a.casefold() == b.casefold()
