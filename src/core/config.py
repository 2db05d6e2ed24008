from typing import Any, Optional
import json
import os
from pydantic import BaseModel, Field
from loguru import logger
from .events import Signal

ENV_PHOTOS_ROOT = "PHOTOS_ROOT"
ENV_MONGODB_URI = "MONGODB_URI"


# --- Settings Models ---
class GeneralSettings(BaseModel):
    debug_mode: bool = False
    log_dir: str = "logs"


class MongoSettings(BaseModel):
    host: str = 'localhost'
    port: int = 27017
    database_name: str = "photocat"
    # Full connection string; takes precedence over host/port when set
    uri: Optional[str] = None


class LibrarySettings(BaseModel):
    root_path: Optional[str] = None
    thumbnails_dir_name: str = "thumbnails"
    browse_outside_root: bool = False


class ThumbnailSettings(BaseModel):
    max_width: int = 600
    max_height: int = 800
    quality: int = 80
    placeholder_width: int = 600
    placeholder_height: int = 400
    placeholder_gray: int = 200


class SyncSettings(BaseModel):
    thumbnail_workers: int = 4
    # Seconds
    io_timeout: float = 10.0
    probe_timeout: float = 120.0
    thumbnail_timeout: float = 30.0
    poll_interval: float = 30.0


class AppConfig(BaseModel):
    general: GeneralSettings = Field(default_factory=GeneralSettings)
    mongo: MongoSettings = Field(default_factory=MongoSettings)
    library: LibrarySettings = Field(default_factory=LibrarySettings)
    thumbnail: ThumbnailSettings = Field(default_factory=ThumbnailSettings)
    sync: SyncSettings = Field(default_factory=SyncSettings)


# --- Manager ---
class ConfigManager:
    """
    Manages application configuration with persistence and reactivity.

    Values come from the config file (JSON or TOML); PHOTOS_ROOT and
    MONGODB_URI environment variables override the file without being
    written back to it.
    """
    def __init__(self, filepath: str = "config.json", use_env: bool = True):
        self.filepath = filepath
        self._data = AppConfig()
        self.on_changed = Signal("ConfigChanged")
        self._load()
        if use_env:
            self._apply_env()

    @property
    def data(self) -> AppConfig:
        return self._data

    def update(self, section: str, key: str, value: Any):
        """Update a setting, validate via Pydantic, autosave, and emit change event."""
        if not hasattr(self._data, section):
            raise ValueError(f"Invalid section: {section}")

        section_obj = getattr(self._data, section)
        if not hasattr(section_obj, key):
            raise ValueError(f"Invalid key: {key} in section {section}")

        raw = section_obj.model_dump()
        raw[key] = value
        validated = type(section_obj).model_validate(raw)
        setattr(self._data, section, validated)
        self._save()
        self.on_changed.emit(section, key, getattr(validated, key))

    def get(self, section: str, key: str) -> Any:
        section_obj = getattr(self._data, section)
        return getattr(section_obj, key)

    def _apply_env(self):
        root = os.environ.get(ENV_PHOTOS_ROOT)
        if root:
            self._data.library.root_path = root
            logger.debug(f"Library root taken from {ENV_PHOTOS_ROOT}: {root}")
        uri = os.environ.get(ENV_MONGODB_URI)
        if uri:
            self._data.mongo.uri = uri
            logger.debug(f"Mongo URI taken from {ENV_MONGODB_URI}")

    def _load(self):
        """Load settings from JSON or TOML file if present; otherwise write defaults."""
        if os.path.isfile(self.filepath):
            try:
                if self.filepath.endswith('.toml'):
                    import tomllib
                    with open(self.filepath, "rb") as f:
                        raw = tomllib.load(f)
                else:
                    with open(self.filepath, "r", encoding="utf-8") as f:
                        raw = json.load(f)
                self._data = AppConfig.model_validate(raw)
            except Exception as e:
                logger.error(f"Failed to load config from {self.filepath}: {e}")
                self._save()
        else:
            self._save()

    def _save(self):
        """Persist current config. TOML files are treated as read-only."""
        if self.filepath.endswith('.toml'):
            return
        try:
            dirname = os.path.dirname(self.filepath)
            if dirname:
                os.makedirs(dirname, exist_ok=True)
            with open(self.filepath, "w", encoding="utf-8") as f:
                json.dump(self._data.model_dump(), f, indent=4)
        except OSError as e:
            logger.error(f"Failed to save config to {self.filepath}: {e}")
