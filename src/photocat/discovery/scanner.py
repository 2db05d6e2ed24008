"""
PhotoCat - Directory Walker

Depth-first traversal of a photo tree that only descends into directories
whose subtree holds at least one supported image.
"""
import asyncio
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import AsyncIterator, Callable, List, Tuple, TypeVar, Union
from loguru import logger

from src.photocat.discovery.classifier import extension_of, is_raw, is_supported_image
from src.photocat.errors import ScanError, ScanPermissionError, ScanTimeoutError
from src.photocat.library import same_name

R = TypeVar("R")


@dataclass
class ImageEntry:
    """Supported image found in a directory."""
    disk_path: str
    filename: str
    size: int
    modified_time: float = 0.0

    @property
    def extension(self) -> str:
        return extension_of(self.filename).lstrip(".")


@dataclass
class DirectoryListing:
    """
    One qualifying directory and the images directly inside it.

    `logical_path` is "" for the library root, which has no Folder record.
    """
    disk_path: str
    logical_path: str
    files: List[ImageEntry] = field(default_factory=list)

    @property
    def is_root(self) -> bool:
        return self.logical_path == ""


@dataclass
class WalkError:
    """A subtree that could not be read; its siblings are still walked."""
    path: str
    reason: str


WalkItem = Union[DirectoryListing, WalkError]


class DirectoryWalker:
    """
    Walks a photo tree.

    Every filesystem call runs in a worker thread under a timeout, so a hung
    network mount surfaces as a ScanTimeoutError instead of stalling the loop.
    """

    def __init__(self, thumbnails_dir_name: str = "thumbnails",
                 io_timeout: float = 10.0, probe_timeout: float = 120.0):
        """
        Args:
            thumbnails_dir_name: Reserved directory never descended into
            io_timeout: Seconds allowed for listing one directory
            probe_timeout: Seconds allowed for probing one subtree for images
        """
        self.thumbnails_dir_name = thumbnails_dir_name
        self.io_timeout = io_timeout
        self.probe_timeout = probe_timeout

    def _is_reserved(self, name: str) -> bool:
        return same_name(name, self.thumbnails_dir_name)

    def list_entries(self, directory: str) -> Tuple[List[Tuple[str, str]], List[ImageEntry]]:
        """
        List one directory (blocking).

        Returns:
            (subdirectories as (name, path) pairs, supported images), both by name

        Raises:
            OSError: directory unreadable
        """
        subdirs: List[Tuple[str, str]] = []
        files: List[ImageEntry] = []

        with os.scandir(directory) as entries:
            for entry in entries:
                try:
                    if entry.is_dir(follow_symlinks=False):
                        if not self._is_reserved(entry.name):
                            subdirs.append((entry.name, Path(entry.path).as_posix()))
                    elif entry.is_file(follow_symlinks=False):
                        if is_supported_image(entry.name):
                            stat = entry.stat(follow_symlinks=False)
                            files.append(ImageEntry(
                                disk_path=Path(entry.path).as_posix(),
                                filename=entry.name,
                                size=stat.st_size,
                                modified_time=stat.st_mtime,
                            ))
                        elif is_raw(entry.name):
                            logger.debug(f"Skipping RAW file: {entry.path}")
                except OSError as e:
                    logger.warning(f"Cannot access {entry.path}: {e}")

        subdirs.sort(key=lambda item: item[0])
        files.sort(key=lambda item: item.filename)
        return subdirs, files

    def has_qualifying_images(self, directory: str) -> bool:
        """
        True when `directory` or any descendant holds a supported image (blocking).

        An unreadable descendant counts as qualifying so the walk reaches it
        and reports the failure; an unreadable `directory` raises OSError.
        """
        return self._probe(directory, top=True)

    def _probe(self, directory: str, top: bool) -> bool:
        try:
            with os.scandir(directory) as it:
                entries = list(it)
        except OSError as e:
            if top:
                raise
            logger.warning(f"Cannot scan directory {directory}: {e}")
            return True

        subdirs = []
        for entry in entries:
            try:
                if entry.is_file(follow_symlinks=False) and is_supported_image(entry.name):
                    return True
                if entry.is_dir(follow_symlinks=False) and not self._is_reserved(entry.name):
                    subdirs.append(entry.path)
            except OSError as e:
                logger.warning(f"Cannot access {entry.path}: {e}")

        return any(self._probe(path, top=False) for path in subdirs)

    async def _run(self, func: Callable[[str], R], path: str, timeout: float) -> R:
        try:
            return await asyncio.wait_for(asyncio.to_thread(func, path), timeout)
        except asyncio.TimeoutError:
            raise ScanTimeoutError(path, timeout)
        except PermissionError:
            raise ScanPermissionError(path)
        except OSError as e:
            raise ScanError(path, e.strerror or str(e))

    async def walk(self, directory: str, logical_path: str = "") -> AsyncIterator[WalkItem]:
        """
        Walk a tree depth-first, parents before children.

        The start directory is always listed when it is the library root
        (`logical_path` ""); any other start directory is listed only if it
        qualifies. Subtrees that fail are yielded as WalkError.

        Args:
            directory: Directory on disk to start from
            logical_path: Catalog path of `directory`

        Yields:
            DirectoryListing or WalkError items

        Raises:
            ScanError: the start directory itself is unreadable
        """
        directory = Path(directory).as_posix()
        if logical_path:
            qualifies = await self._run(self.has_qualifying_images, directory, self.probe_timeout)
            if not qualifies:
                logger.info(f"No images under {directory}, nothing to walk")
                return

        subdirs, files = await self._run(self.list_entries, directory, self.io_timeout)
        yield DirectoryListing(directory, logical_path, files)

        async for item in self._walk_children(logical_path, subdirs):
            yield item

    async def _walk_children(self, logical_path: str, subdirs: List[Tuple[str, str]]) -> AsyncIterator[WalkItem]:
        for name, child in subdirs:
            child_logical = f"{logical_path}/{name}" if logical_path else name
            try:
                qualifies = await self._run(self.has_qualifying_images, child, self.probe_timeout)
                if not qualifies:
                    logger.debug(f"Pruned image-less subtree: {child}")
                    continue
                child_subdirs, child_files = await self._run(self.list_entries, child, self.io_timeout)
            except ScanError as e:
                logger.warning(f"Skipping subtree {e.path}: {e.reason}")
                yield WalkError(e.path, e.reason)
                continue

            yield DirectoryListing(child, child_logical, child_files)
            async for item in self._walk_children(child_logical, child_subdirs):
                yield item
