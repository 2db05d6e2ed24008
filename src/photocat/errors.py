"""
PhotoCat - Errors

Typed failures raised by the engine. Callers catch PhotoCatError to handle
every engine failure in one place.
"""


class PhotoCatError(Exception):
    """Base class for engine errors."""


class ConfigurationError(PhotoCatError):
    """Library root missing, unset, or not a directory."""


class ScanError(PhotoCatError):
    """A directory could not be read during a walk."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"{reason}: {path}")


class ScanPermissionError(ScanError):
    def __init__(self, path: str):
        super().__init__(path, "permission denied")


class ScanTimeoutError(ScanError):
    def __init__(self, path: str, timeout: float):
        self.timeout = timeout
        super().__init__(path, f"timed out after {timeout:g}s")


class NotFoundError(PhotoCatError):
    """No catalog record matches the given key."""

    def __init__(self, kind: str, key: str):
        self.kind = kind
        self.key = key
        super().__init__(f"{kind} not found: {key}")


class SyncInProgressError(PhotoCatError):
    """A sync for the same root is already running."""

    def __init__(self, root: str):
        self.root = root
        super().__init__(f"Sync already in progress for {root}")
