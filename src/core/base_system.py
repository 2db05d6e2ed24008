from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, List, Type

if TYPE_CHECKING:
    from .locator import ServiceLocator
    from .config import ConfigManager


class BaseSystem(ABC):
    """
    Abstract Base Class for all engine systems (database, sync, search...).

    Systems receive the locator and config at construction and never reach for
    module-level state. Dependencies are declared with `depends_on` so the
    locator can start them in order:

        class SearchService(BaseSystem):
            depends_on = [DatabaseManager]
    """
    depends_on: List[Type['BaseSystem']] = []

    def __init__(self, locator: 'ServiceLocator', config: 'ConfigManager'):
        self.locator = locator
        self.config = config
        self._is_ready = False

    @abstractmethod
    async def initialize(self):
        """
        Async initialization logic (e.g. database connections).
        Called by the ServiceLocator during startup; subclasses call super() last.
        """
        self._is_ready = True

    @abstractmethod
    async def shutdown(self):
        """Cleanup logic (e.g. closing connections)."""
        self._is_ready = False

    @property
    def is_ready(self) -> bool:
        return self._is_ready

    async def __aenter__(self):
        if not self._is_ready:
            await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._is_ready:
            await self.shutdown()
