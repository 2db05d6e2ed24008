import inspect
from typing import Optional
from pymongo import AsyncMongoClient
from loguru import logger

from src.core.base_system import BaseSystem
from src.core.database.orm import CollectionRecord, DbRecordMeta


class DatabaseManager(BaseSystem):
    """
    Owns the Mongo client and binds record classes to its database.

    A client can be attached before startup (tests pass an in-memory
    client); otherwise one is created from the `mongo` config section.
    """
    def __init__(self, locator, config):
        super().__init__(locator, config)
        self.client = None
        self.db = None
        self._owns_client = False

    def attach(self, client, database_name: Optional[str] = None):
        """Use an externally created client instead of connecting on initialize()."""
        name = database_name or self.config.data.mongo.database_name
        self.client = client
        self.db = client[name]
        self._owns_client = False

    def _connection_url(self) -> str:
        settings = self.config.data.mongo
        if settings.uri:
            return settings.uri
        return f"mongodb://{settings.host}:{settings.port}"

    async def initialize(self):
        settings = self.config.data.mongo
        if self.db is None:
            connection_url = self._connection_url()
            try:
                self.client = AsyncMongoClient(connection_url)
                await self.client.admin.command("ping")
            except Exception as e:
                logger.error(f"Failed to connect to MongoDB: {e}")
                raise
            self.db = self.client[settings.database_name]
            self._owns_client = True
            logger.info(f"Connected to MongoDB (Async): {settings.database_name}")

        CollectionRecord.bind(self.db)
        await self.ensure_indexes()
        await super().initialize()

    async def ensure_indexes(self):
        for record_cls in DbRecordMeta._registry.values():
            if record_cls._collection_name:
                await record_cls.ensure_indexes()

    async def shutdown(self):
        CollectionRecord.bind(None)
        if self._owns_client and self.client is not None:
            result = self.client.close()
            if inspect.isawaitable(result):
                await result
            logger.info("MongoDB connection closed")
        self.client = None
        self.db = None
        await super().shutdown()
