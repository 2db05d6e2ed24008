import pytest
import pytest_asyncio
from pathlib import Path
from unittest.mock import MagicMock
from mongomock_motor import AsyncMongoMockClient
from PIL import Image

from src.core.config import AppConfig, ConfigManager
from src.core.database.orm import CollectionRecord
from src.photocat.models import FileRecord, Folder, Keyword


def make_image(path: Path, size=(1200, 900), color=(10, 120, 200)) -> Path:
    """Write a solid-colour image; the format follows the extension."""
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", size, color).save(path)
    return path


@pytest.fixture
def image_factory():
    return make_image


@pytest.fixture
def library_root(tmp_path):
    root = tmp_path / "photos"
    root.mkdir()
    return root


@pytest.fixture
def mock_locator():
    return MagicMock()


@pytest.fixture
def mock_config(library_root):
    """Config double exposing a real AppConfig pointed at the temp library."""
    config = MagicMock()
    config.data = AppConfig()
    config.data.library.root_path = str(library_root)
    return config


@pytest.fixture
def config_manager(tmp_path, library_root):
    config = ConfigManager(str(tmp_path / "config.json"), use_env=False)
    config.update("library", "root_path", str(library_root))
    return config


@pytest_asyncio.fixture
async def db():
    """In-memory async Mongo bound to all record classes."""
    client = AsyncMongoMockClient()
    database = client["photocat_test"]
    CollectionRecord.bind(database)
    for record_cls in (Folder, FileRecord, Keyword):
        await record_cls.ensure_indexes()
    yield database
    CollectionRecord.bind(None)


@pytest_asyncio.fixture
async def engine(config_manager):
    """Fully started engine on an in-memory Mongo."""
    from src.photocat.engine_bootstrap import running_engine

    async with running_engine(config_manager, client=AsyncMongoMockClient()) as locator:
        yield locator
