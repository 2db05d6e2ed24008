"""
PhotoCat - Image Classifier

Decides which files are catalogued. Matching is by extension only and is
case-insensitive.
"""
import os

SUPPORTED_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif"})

# Camera RAW formats are recognised so they can be skipped on purpose
RAW_EXTENSIONS = frozenset({
    ".raw", ".arw", ".cr2", ".cr3", ".crw", ".dcr", ".dng", ".erf",
    ".kdc", ".mef", ".mos", ".mrw", ".nef", ".nrw", ".orf", ".pef",
    ".raf", ".rw2", ".rwl", ".sr2", ".srf", ".srw", ".x3f",
})


def extension_of(filename: str) -> str:
    """Lower-cased extension including the dot, "" when there is none."""
    return os.path.splitext(filename)[1].lower()


def is_supported_image(filename: str) -> bool:
    return extension_of(filename) in SUPPORTED_EXTENSIONS


def is_raw(filename: str) -> bool:
    return extension_of(filename) in RAW_EXTENSIONS
