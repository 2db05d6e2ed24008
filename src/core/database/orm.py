import inspect
from typing import Any, Callable, Dict, List, Optional, Tuple, Type, TypeVar, Union
from bson import ObjectId
from pymongo import ReturnDocument
from loguru import logger
from src.core.events import Signal

T = TypeVar('T', bound='CollectionRecord')

SortSpec = List[Tuple[str, int]]


class Field:
    """
    Descriptor for a persisted record field.

    Usage:
        class Keyword(CollectionRecord, table="keywords"):
            value: str = Field(default="", index=True, unique=True)
            tags: List[str] = Field(default_factory=list)
    """
    def __init__(self, default: Any = None, default_factory: Optional[Callable[[], Any]] = None,
                 index: bool = False, unique: bool = False):
        self.name: Optional[str] = None
        self.default = default
        self.default_factory = default_factory
        self.index = index or unique
        self.unique = unique

    def __set_name__(self, owner, name):
        self.name = name

    def make_default(self) -> Any:
        if self.default_factory is not None:
            return self.default_factory()
        return self.default

    def __get__(self, instance, owner):
        if instance is None:
            return self
        # Materialize defaults so in-place mutation of lists/dicts is kept
        if self.name not in instance._data_cache:
            instance._data_cache[self.name] = self.make_default()
        return instance._data_cache[self.name]

    def __set__(self, instance, value):
        instance.set_field_val(self.name, value)


class DbRecordMeta(type):
    """Metaclass harvesting Field descriptors and the `table=` collection name."""
    _registry: Dict[str, Type['CollectionRecord']] = {}

    def __new__(cls, name, bases, namespace, **kwargs):
        new_class = super().__new__(cls, name, bases, namespace)

        table = kwargs.get('table')
        if table:
            new_class._collection_name = table

        fields: Dict[str, Field] = {}
        for base in reversed(new_class.__mro__[1:]):
            fields.update(getattr(base, '_fields', {}))
        for key, value in namespace.items():
            if isinstance(value, Field):
                fields[key] = value
        new_class._fields = fields

        cls._registry[name] = new_class
        return new_class


class CollectionRecord(metaclass=DbRecordMeta):
    """
    Lightweight async active-record over a Mongo collection.

    The database handle is bound once by DatabaseManager; every query goes
    through the classmethods below so callers never touch raw collections.
    """
    _collection_name: Optional[str] = None
    _fields: Dict[str, Field] = {}
    _database = None

    def __init__(self, oid: Union[str, ObjectId] = None, **kwargs):
        if oid is None:
            oid = ObjectId()
        self._id = ObjectId(oid)

        # Emits (self, field_name, new_value)
        self.on_change = Signal(f"Change-{self._id}")
        self._data_cache: Dict[str, Any] = {}

        for key, value in kwargs.items():
            if key == '_id':
                continue
            self._data_cache[key] = value

    @property
    def id(self) -> ObjectId:
        return self._id

    def get_field_val(self, name: str, default: Any = None):
        return self._data_cache.get(name, default)

    def set_field_val(self, name: str, value: Any):
        old_value = self._data_cache.get(name)
        if name not in self._data_cache or old_value != value:
            self._data_cache[name] = value
            self.on_change.emit(self, name, value)

    def to_dict(self) -> Dict[str, Any]:
        """Serializes to a MongoDB-ready dict."""
        out: Dict[str, Any] = {'_id': self._id}
        for name, field in self._fields.items():
            if name in self._data_cache:
                out[name] = self._data_cache[name]
            else:
                out[name] = field.make_default()
        for key, value in self._data_cache.items():
            if key not in self._fields:
                out[key] = value
        return out

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} id={self._id}>"

    # --- Binding ---

    @classmethod
    def bind(cls, database) -> None:
        """Attach all record classes to a database handle (None detaches)."""
        CollectionRecord._database = database

    @classmethod
    def get_collection(cls):
        if not cls._collection_name:
            raise ValueError(f"Class {cls.__name__} must pass table='name' in its class definition")
        if CollectionRecord._database is None:
            raise RuntimeError("Database not bound. Start DatabaseManager first.")
        return CollectionRecord._database[cls._collection_name]

    @classmethod
    async def ensure_indexes(cls):
        """Creates the indexes declared on Fields."""
        coll = cls.get_collection()

        for name, field in cls._fields.items():
            if field.index:
                logger.debug(f"Ensuring index {cls.__name__}.{name} (unique={field.unique})")
                await coll.create_index([(name, 1)], unique=field.unique)

    # --- Queries ---

    @classmethod
    def _instantiate_from_data(cls: Type[T], data: Dict) -> T:
        return cls(oid=data['_id'], **data)

    @classmethod
    async def get(cls: Type[T], oid: Union[str, ObjectId]) -> Optional[T]:
        if isinstance(oid, str):
            oid = ObjectId(oid)
        data = await cls.get_collection().find_one({"_id": oid})
        return cls._instantiate_from_data(data) if data else None

    @classmethod
    async def find(cls: Type[T], query: Optional[Dict] = None, sort: Optional[SortSpec] = None,
                   limit: int = 0, skip: int = 0) -> List[T]:
        """
        Find records matching a query.

        Args:
            query: Mongo filter (None matches everything)
            sort: List of (field, direction) pairs
            limit: Maximum records, 0 for no limit
            skip: Records to skip

        Returns:
            List of records in cursor order
        """
        kwargs: Dict[str, Any] = {}
        if sort:
            kwargs['sort'] = sort
        if limit:
            kwargs['limit'] = limit
        if skip:
            kwargs['skip'] = skip

        cursor = cls.get_collection().find(query or {}, **kwargs)
        results = []
        async for doc in cursor:
            results.append(cls._instantiate_from_data(doc))
        return results

    @classmethod
    async def find_one(cls: Type[T], query: Dict) -> Optional[T]:
        data = await cls.get_collection().find_one(query)
        return cls._instantiate_from_data(data) if data else None

    @classmethod
    async def count_documents(cls, query: Optional[Dict] = None) -> int:
        return await cls.get_collection().count_documents(query or {})

    @classmethod
    async def find_one_and_update(cls: Type[T], query: Dict, update: Dict,
                                  upsert: bool = False) -> Optional[T]:
        """Atomically update one document and return it as it is after the update."""
        data = await cls.get_collection().find_one_and_update(
            query, update, upsert=upsert, return_document=ReturnDocument.AFTER
        )
        return cls._instantiate_from_data(data) if data else None

    @classmethod
    async def update_one(cls, query: Dict, update: Dict, upsert: bool = False) -> int:
        """Returns the number of documents modified (0 or 1)."""
        result = await cls.get_collection().update_one(query, update, upsert=upsert)
        return result.modified_count

    @classmethod
    async def update_many(cls, query: Dict, update: Dict) -> int:
        result = await cls.get_collection().update_many(query, update)
        return result.modified_count

    @classmethod
    async def delete_many(cls, query: Dict) -> int:
        result = await cls.get_collection().delete_many(query)
        return result.deleted_count

    @classmethod
    async def aggregate(cls, pipeline: List[Dict]) -> List[Dict]:
        """Run an aggregation pipeline and return raw documents."""
        cursor = cls.get_collection().aggregate(pipeline)
        # AsyncCollection.aggregate is a coroutine; some drivers return the cursor directly
        if inspect.isawaitable(cursor):
            cursor = await cursor
        results = []
        async for doc in cursor:
            results.append(doc)
        return results

    # --- Instance persistence ---

    async def save(self):
        await self.get_collection().replace_one({'_id': self._id}, self.to_dict(), upsert=True)

    async def delete(self):
        await self.get_collection().delete_one({'_id': self._id})
