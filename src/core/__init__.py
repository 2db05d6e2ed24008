"""
Core - Engine Infrastructure.

Provides the pieces every PhotoCat system is built on:
- ServiceLocator: system registry with dependency-ordered startup
- BaseSystem: abstract lifecycle for systems
- ConfigManager: pydantic configuration with persistence
- Signal: synchronous observer

Usage:
    from src.core import ConfigManager, ServiceLocator

    locator = ServiceLocator(ConfigManager("config.json"))
    locator.register_system(MyService)
    await locator.start_all()
"""
from .base_system import BaseSystem
from .locator import ServiceLocator
from .config import (
    ConfigManager,
    AppConfig,
    GeneralSettings,
    MongoSettings,
    LibrarySettings,
    ThumbnailSettings,
    SyncSettings,
)
from .events import Signal

__all__ = [
    "BaseSystem",
    "ServiceLocator",
    "ConfigManager",
    "AppConfig",
    "GeneralSettings",
    "MongoSettings",
    "LibrarySettings",
    "ThumbnailSettings",
    "SyncSettings",
    "Signal",
]
