"""
PhotoCat - Maintenance Service Tests
"""
import pytest
from bson import ObjectId

from src.photocat.models import FileRecord, Folder, Keyword
from src.photocat.services.maintenance_service import MaintenanceService


@pytest.fixture
def maintenance(mock_locator, mock_config):
    return MaintenanceService(mock_locator, mock_config)


async def seed():
    await Folder(path="a", name="a", parent_path="/").save()
    await Folder(path="a/b", name="b", parent_path="a").save()
    await FileRecord(path="a/1.jpg", filename="1.jpg", folder_path="a", size=1).save()
    await Keyword(value="beach", count=1).save()


class TestDuplicateCleanup:

    @pytest.mark.asyncio
    async def test_keeps_oldest_record_per_path(self, db, maintenance):
        first, second, third = sorted(ObjectId() for _ in range(3))
        await Folder(second, path="a", name="a", parent_path="/").save()
        await Folder(first, path="a", name="a", parent_path="/").save()
        await Folder(third, path="a", name="a", parent_path="/").save()
        await Folder(path="b", name="b", parent_path="/").save()

        assert await maintenance.cleanup_duplicate_folders() == 2

        remaining = await Folder.find({"path": "a"})
        assert [f.id for f in remaining] == [first]
        assert await Folder.count_documents() == 2

    @pytest.mark.asyncio
    async def test_clean_catalog_is_untouched(self, db, maintenance):
        await seed()

        assert await maintenance.cleanup_duplicate_folders() == 0
        assert await Folder.count_documents() == 2


class TestResets:

    @pytest.mark.asyncio
    async def test_clear_catalog_keeps_keywords(self, db, maintenance):
        await seed()

        result = await maintenance.clear_catalog()

        assert result == {"folders_deleted": 2, "files_deleted": 1}
        assert await Keyword.count_documents() == 1

    @pytest.mark.asyncio
    async def test_purge_removes_everything(self, db, maintenance, library_root):
        await seed()
        thumbs = library_root / "thumbnails"
        thumbs.mkdir()
        (thumbs / "x_0123456789ab.jpg").write_bytes(b"jpg")

        result = await maintenance.purge_all()

        assert result["folders_deleted"] == 2
        assert result["files_deleted"] == 1
        assert result["keywords_deleted"] == 1
        assert result["thumbnails_removed"] is True
        assert result["errors"] == []
        assert not thumbs.exists()
        assert await Keyword.count_documents() == 0

    @pytest.mark.asyncio
    async def test_purge_without_root_reports_error(self, db, maintenance, mock_config):
        await seed()
        mock_config.data.library.root_path = None

        result = await maintenance.purge_all()

        assert result["files_deleted"] == 1
        assert result["thumbnails_removed"] is False
        assert len(result["errors"]) == 1
