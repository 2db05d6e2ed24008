"""
PhotoCat - Filesystem Service Tests

Catalog reads, folder removal and directory browsing against a synced
library.
"""
import pytest
import pytest_asyncio

from src.photocat.discovery.service import SyncService
from src.photocat.errors import NotFoundError, ScanPermissionError
from src.photocat.models import FileRecord, Folder
from src.photocat.services.fs_service import FSService


@pytest_asyncio.fixture
async def synced(engine, library_root, image_factory):
    """
    photos/
        cover.jpg
        Trips/2020/b.jpg
        Trips/2020/a.png
        Trips/2021/c.jpg
        family/d.jpg
        notes.txt
    """
    image_factory(library_root / "cover.jpg", size=(40, 30))
    image_factory(library_root / "Trips" / "2020" / "b.jpg", size=(40, 30))
    image_factory(library_root / "Trips" / "2020" / "a.png", size=(40, 30))
    image_factory(library_root / "Trips" / "2021" / "c.jpg", size=(40, 30))
    image_factory(library_root / "family" / "d.jpg", size=(40, 30))
    (library_root / "notes.txt").write_text("x")
    await engine.get_system(SyncService).sync()
    return engine.get_system(FSService)


class TestCatalogReads:

    @pytest.mark.asyncio
    async def test_folder_tree(self, synced):
        tree = await synced.get_folder_tree()

        assert [n.name for n in tree] == ["family", "Trips"]
        assert [n.path for n in tree[1].children] == ["Trips/2020", "Trips/2021"]

    @pytest.mark.asyncio
    async def test_list_folder_files(self, synced):
        files = await synced.list_folder_files("Trips/2020")

        assert [f.filename for f in files] == ["a.png", "b.jpg"]
        assert [f.filename for f in await synced.list_folder_files("")] == ["cover.jpg"]

    @pytest.mark.asyncio
    async def test_list_files_paginates(self, synced):
        page = await synced.list_files(limit=2, skip=1)

        assert [f.filename for f in page] == ["b.jpg", "c.jpg"]

    @pytest.mark.asyncio
    async def test_lookups(self, synced):
        assert (await synced.get_file("family/d.jpg")).folder_path == "family"
        assert (await synced.get_folder("Trips/2021")).parent_path == "Trips"
        with pytest.raises(NotFoundError):
            await synced.get_file("family/zzz.jpg")
        with pytest.raises(NotFoundError):
            await synced.get_folder("nowhere")


class TestRemoveFolder:

    @pytest.mark.asyncio
    async def test_removes_subtree_and_disk(self, synced, library_root):
        thumb = library_root / (await synced.get_file("Trips/2020/b.jpg")).thumbnail_path

        stats = await synced.remove_folder("Trips")

        assert stats["files_deleted"] == 3
        assert stats["folders_deleted"] == 3
        assert stats["thumbnails_removed"] == 3
        assert stats["disk_removed"] is True
        assert not (library_root / "Trips").exists()
        assert not thumb.exists()
        assert await Folder.count_documents() == 1
        assert await FileRecord.count_documents() == 2

    @pytest.mark.asyncio
    async def test_keep_files_on_disk(self, synced, library_root):
        stats = await synced.remove_folder("Trips/2021", delete_from_disk=False)

        assert stats["disk_removed"] is False
        assert (library_root / "Trips" / "2021" / "c.jpg").exists()
        assert await Folder.count_documents({"path": "Trips/2021"}) == 0

    @pytest.mark.asyncio
    async def test_external_import_stays_on_disk(self, synced, tmp_path, image_factory):
        card = tmp_path / "card"
        image_factory(card / "DCIM" / "x.jpg", size=(40, 30))
        sync = synced.locator.get_system(SyncService)
        await sync.sync(str(card), external=True)

        stats = await synced.remove_folder("card")

        assert stats["files_deleted"] == 1
        assert stats["disk_removed"] is False
        assert (card / "DCIM" / "x.jpg").exists()

    @pytest.mark.asyncio
    async def test_unknown_folder(self, synced):
        with pytest.raises(NotFoundError):
            await synced.remove_folder("nowhere")

    @pytest.mark.asyncio
    async def test_library_root_cannot_be_removed(self, synced, library_root):
        with pytest.raises(NotFoundError):
            await synced.remove_folder("/")

        assert (await synced.get_file("cover.jpg")).folder_path == ""
        assert (library_root / "cover.jpg").exists()


class TestBrowse:

    @pytest.mark.asyncio
    async def test_root_listing(self, synced, library_root):
        (library_root / ".cache").mkdir()
        (library_root / ".DS_Store").write_bytes(b"")

        entries = await synced.list_directory()

        assert [(e.name, e.is_directory) for e in entries] == [
            ("family", True),
            ("Trips", True),
            ("cover.jpg", False),
            ("notes.txt", False),
        ]

    @pytest.mark.asyncio
    async def test_directories_only_relative_path(self, synced, library_root):
        entries = await synced.list_directory("Trips", directories_only=True)

        assert [e.name for e in entries] == ["2020", "2021"]
        assert entries[0].path == (library_root / "Trips" / "2020").resolve().as_posix()

    @pytest.mark.asyncio
    async def test_outside_root_falls_back(self, synced, tmp_path):
        entries = await synced.list_directory(str(tmp_path))

        assert "cover.jpg" in [e.name for e in entries]

    @pytest.mark.asyncio
    async def test_outside_root_allowed_by_config(self, synced, tmp_path, config_manager):
        (tmp_path / "other").mkdir()
        config_manager.data.library.browse_outside_root = True

        entries = await synced.list_directory(str(tmp_path / "other"))

        assert entries == []

    @pytest.mark.asyncio
    async def test_missing_and_unreadable(self, synced, monkeypatch):
        with pytest.raises(NotFoundError):
            await synced.list_directory("does-not-exist")

        def denied(*args, **kwargs):
            raise PermissionError(13, "Permission denied")

        monkeypatch.setattr("src.photocat.services.fs_service.list_directory", denied)
        with pytest.raises(ScanPermissionError):
            await synced.list_directory("family")
