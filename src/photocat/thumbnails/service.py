"""
PhotoCat - Thumbnail Service

Derives one JPEG preview per catalogued image into the library's
thumbnails directory.
"""
import asyncio
import os
from hashlib import md5
from pathlib import Path
from typing import Optional, Tuple
from loguru import logger
from PIL import Image

from src.core.base_system import BaseSystem
from src.photocat.library import resolve_root, thumbnails_dir, is_within


def fit_size(width: int, height: int, max_width: int, max_height: int) -> Tuple[int, int]:
    """
    Target size for a source image.

    Width leads: the width is capped at `max_width` and the height follows
    the aspect ratio; if that height exceeds `max_height` the height is
    capped instead and the width follows. Images are never enlarged.

    Args:
        width: Source width in pixels
        height: Source height in pixels
        max_width: Width cap
        max_height: Height cap

    Returns:
        (width, height) of the thumbnail
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid image size {width}x{height}")

    ratio = width / height
    target_w = min(max_width, width)
    target_h = round(target_w / ratio)
    if target_h > max_height:
        target_h = max_height
        target_w = round(max_height * ratio)
    return max(1, target_w), max(1, target_h)


class ThumbnailService(BaseSystem):
    """
    Thumbnail generation.

    Features:
    - Width-led size cap (600x800 by default), no enlargement
    - JPEG output at configurable quality
    - Grey placeholder when the source cannot be decoded
    - Collision-free names: source stem plus a hash of the catalog key
    """

    async def initialize(self) -> None:
        logger.info("ThumbnailService initializing")
        settings = self.config.data.thumbnail
        self.max_width = settings.max_width
        self.max_height = settings.max_height
        self.quality = settings.quality
        self.extension = "jpg"
        await super().initialize()
        logger.info(f"ThumbnailService ready (max {self.max_width}x{self.max_height}, quality {self.quality})")

    async def shutdown(self) -> None:
        logger.info("ThumbnailService shutting down")
        await super().shutdown()

    @property
    def cache_path(self) -> Path:
        return thumbnails_dir(self.config)

    def thumbnail_name(self, source_path: str, key: str) -> str:
        """
        File name for the thumbnail of `source_path`.

        Args:
            source_path: Image on disk
            key: Catalog key of the image (its unique File path)
        """
        stem = Path(source_path).stem
        digest = md5(key.encode("utf-8")).hexdigest()[:12]
        return f"{stem}_{digest}.{self.extension}"

    def generate(self, source_path: str, key: str, dest_dir: Optional[str] = None) -> str:
        """
        Write the thumbnail for one image (blocking).

        Decode failures are logged and replaced by a placeholder image.

        Args:
            source_path: Image on disk
            key: Catalog key used to namespace the file name
            dest_dir: Target directory, defaults to the library thumbnails dir

        Returns:
            Thumbnail path relative to the library root
            (absolute when `dest_dir` lies outside the root)
        """
        root = resolve_root(self.config)
        target_dir = Path(dest_dir) if dest_dir else thumbnails_dir(self.config, root)
        target_dir.mkdir(parents=True, exist_ok=True)

        target = target_dir / self.thumbnail_name(source_path, key)
        try:
            self._generate_impl(Path(source_path), target)
        except Exception as e:
            logger.warning(f"Cannot decode {source_path}, writing placeholder: {e}")
            self._placeholder_impl(target)

        target = target.resolve()
        if is_within(target, root):
            return target.relative_to(root).as_posix()
        return target.as_posix()

    async def generate_async(self, source_path: str, key: str, dest_dir: Optional[str] = None) -> str:
        """Run generate() in a worker thread."""
        return await asyncio.to_thread(self.generate, source_path, key, dest_dir)

    def _generate_impl(self, source_path: Path, target: Path) -> None:
        with Image.open(source_path) as img:
            img.load()
            # Flatten onto white for JPEG
            if img.mode in ("RGBA", "LA", "P"):
                if img.mode == "P":
                    img = img.convert("RGBA")
                background = Image.new("RGB", img.size, (255, 255, 255))
                background.paste(img, mask=img.split()[-1])
                img = background
            elif img.mode != "RGB":
                img = img.convert("RGB")

            size = fit_size(img.width, img.height, self.max_width, self.max_height)
            if size != img.size:
                img = img.resize(size, Image.Resampling.LANCZOS)
            img.save(target, format="JPEG", quality=self.quality)

    def _placeholder_impl(self, target: Path) -> None:
        settings = self.config.data.thumbnail
        gray = settings.placeholder_gray
        placeholder = Image.new(
            "RGB",
            (settings.placeholder_width, settings.placeholder_height),
            (gray, gray, gray),
        )
        placeholder.save(target, format="JPEG", quality=self.quality)

    def remove(self, thumbnail_path: str) -> bool:
        """
        Delete a thumbnail given the path stored on its File record.

        Returns:
            True if a file was removed
        """
        if not thumbnail_path:
            return False
        path = Path(thumbnail_path)
        if not path.is_absolute():
            path = resolve_root(self.config) / path
        try:
            os.remove(path)
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning(f"Failed to remove thumbnail {path}: {e}")
            return False
