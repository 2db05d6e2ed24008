"""
Engine Bootstrap Logic.

Builds the ServiceLocator holding every PhotoCat system.
"""
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Type
from loguru import logger

from src.core.base_system import BaseSystem
from src.core.config import ConfigManager
from src.core.database.manager import DatabaseManager
from src.core.locator import ServiceLocator
from src.photocat.discovery.service import SyncService
from src.photocat.search.service import SearchService
from src.photocat.services.fs_service import FSService
from src.photocat.services.maintenance_service import MaintenanceService
from src.photocat.tags.manager import KeywordManager
from src.photocat.thumbnails.service import ThumbnailService

ENGINE_SYSTEMS: List[Type[BaseSystem]] = [
    DatabaseManager,
    ThumbnailService,
    MaintenanceService,
    KeywordManager,
    SearchService,
    FSService,
    SyncService,
]


def build_locator(config: ConfigManager, client=None) -> ServiceLocator:
    """
    Register all engine systems on a fresh locator.

    Args:
        config: Loaded configuration
        client: Optional pre-built Mongo client (e.g. an in-memory one)
    """
    locator = ServiceLocator(config)
    for system_cls in ENGINE_SYSTEMS:
        locator.register_system(system_cls)
    if client is not None:
        locator.get_system(DatabaseManager).attach(client)
    return locator


@asynccontextmanager
async def running_engine(config: ConfigManager, client=None) -> AsyncIterator[ServiceLocator]:
    """Start the engine for the duration of the block."""
    locator = build_locator(config, client)
    await locator.start_all()
    logger.info("PhotoCat engine started")
    try:
        yield locator
    finally:
        await locator.stop_all()
