"""
PhotoCat - Sync Tests

Catalog writer behaviour and end-to-end syncs on an in-memory database.
"""
import asyncio
import os
import pytest
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

from src.photocat.discovery.scanner import ImageEntry
from src.photocat.discovery.service import SyncService
from src.photocat.discovery.sync import ADDED, UNCHANGED, UPDATED, CatalogWriter
from src.photocat.errors import ConfigurationError, NotFoundError, SyncInProgressError
from src.photocat.models import FileRecord, Folder
from src.photocat.services.maintenance_service import MaintenanceService


def thumb_path(root: Path, record: FileRecord) -> Path:
    return root / record.thumbnail_path


class TestCatalogWriter:

    @pytest.mark.asyncio
    async def test_ensure_folder_creates_ancestors_once(self, db):
        writer = CatalogWriter(MagicMock())

        assert await writer.ensure_folder("a/b/c") == 3
        assert await writer.ensure_folder("a/b/d") == 1

        folders = {f.path: f for f in await Folder.find({})}
        assert set(folders) == {"a", "a/b", "a/b/c", "a/b/d"}
        assert folders["a"].parent_path == "/"
        assert folders["a/b/c"].parent_path == "a/b"
        assert folders["a/b/c"].name == "c"

    @pytest.mark.asyncio
    async def test_upsert_folder_is_idempotent(self, db):
        writer = CatalogWriter(MagicMock())
        first = await writer.upsert_folder("trips")
        second = await writer.upsert_folder("trips")

        assert first.id == second.id
        assert await Folder.count_documents() == 1

    @pytest.mark.asyncio
    async def test_sync_file_change_detection(self, db):
        thumbnails = MagicMock()
        thumbnails.generate_async = AsyncMock(return_value="thumbnails/p_abc.jpg")
        writer = CatalogWriter(thumbnails)
        entry = ImageEntry(disk_path="/lib/a/p.jpg", filename="p.jpg", size=100)

        assert await writer.sync_file(entry, "a/p.jpg", "a") == ADDED
        assert await writer.sync_file(entry, "a/p.jpg", "a") == UNCHANGED
        entry.size = 150
        assert await writer.sync_file(entry, "a/p.jpg", "a") == UPDATED

        assert thumbnails.generate_async.await_count == 2
        record = await FileRecord.find_one({"path": "a/p.jpg"})
        assert record.size == 150
        assert record.extension == "jpg"
        assert record.keywords == []

    @pytest.mark.asyncio
    async def test_upsert_file_keeps_keywords(self, db):
        writer = CatalogWriter(MagicMock())
        record = await writer.upsert_file("p.jpg", "p.jpg", "", 1, "jpg", "")
        await FileRecord.update_one({"_id": record.id}, {"$push": {"keywords": "k"}})

        again = await writer.upsert_file("p.jpg", "p.jpg", "", 2, "jpg", "")

        assert again.keywords == ["k"]
        assert again.size == 2

    @pytest.mark.asyncio
    async def test_remove_folder_cascades_by_prefix(self, db):
        thumbnails = MagicMock()
        thumbnails.remove.return_value = True
        writer = CatalogWriter(thumbnails)
        for path in ["a", "a/b", "a/b/c", "a/bc"]:
            await writer.ensure_folder(path)
        await writer.upsert_file("a/b/1.jpg", "1.jpg", "a/b", 1, "jpg", "thumbnails/1.jpg")
        await writer.upsert_file("a/b/c/2.jpg", "2.jpg", "a/b/c", 1, "jpg", "thumbnails/2.jpg")
        await writer.upsert_file("a/bc/3.jpg", "3.jpg", "a/bc", 1, "jpg", "thumbnails/3.jpg")

        stats = await writer.remove_folder("a/b")

        assert stats["files_deleted"] == 2
        assert stats["folders_deleted"] == 2
        assert stats["thumbnails_removed"] == 2
        assert sorted(f.path for f in await Folder.find({})) == ["a", "a/bc"]
        assert [f.path for f in await FileRecord.find({})] == ["a/bc/3.jpg"]

    @pytest.mark.asyncio
    async def test_remove_unknown_folder_raises(self, db):
        with pytest.raises(NotFoundError):
            await CatalogWriter(MagicMock()).remove_folder("nowhere")

    @pytest.mark.asyncio
    async def test_remove_root_is_refused(self, db):
        writer = CatalogWriter(MagicMock())
        await writer.upsert_file("top.jpg", "top.jpg", "", 1, "jpg", "")

        for path in ["", "/"]:
            with pytest.raises(NotFoundError):
                await writer.remove_folder(path)

        assert await FileRecord.count_documents() == 1


@pytest.fixture
def library(library_root, image_factory):
    image_factory(library_root / "top.jpg", size=(64, 48))
    image_factory(library_root / "trips" / "2020" / "beach.jpg", size=(1200, 900))
    image_factory(library_root / "trips" / "2020" / "sunset.png", size=(900, 1800))
    image_factory(library_root / "trips" / "2021" / "deep" / "hike.gif", size=(64, 48))
    (library_root / "raw" / "nested").mkdir(parents=True)
    (library_root / "raw" / "nested" / "shot.nef").write_bytes(b"raw")
    return library_root


class TestSyncService:

    @pytest.mark.asyncio
    async def test_sync_builds_catalog(self, engine, library):
        report = await engine.get_system(SyncService).sync()

        assert report.success
        assert report.files_added == 4
        assert report.thumbnails_generated == 4

        folders = sorted(f.path for f in await Folder.find({}))
        assert folders == ["trips", "trips/2020", "trips/2021", "trips/2021/deep"]

        files = {f.path: f for f in await FileRecord.find({})}
        assert set(files) == {
            "top.jpg",
            "trips/2020/beach.jpg",
            "trips/2020/sunset.png",
            "trips/2021/deep/hike.gif",
        }
        assert files["top.jpg"].folder_path == ""
        assert files["trips/2021/deep/hike.gif"].folder_path == "trips/2021/deep"
        for record in files.values():
            assert thumb_path(library, record).exists()

    @pytest.mark.asyncio
    async def test_second_sync_writes_nothing(self, engine, library):
        sync = engine.get_system(SyncService)
        await sync.sync()
        records = await FileRecord.find({})
        for record in records:
            os.utime(thumb_path(library, record), (0, 0))

        report = await sync.sync()

        assert report.files_added == 0
        assert report.files_updated == 0
        assert report.files_unchanged == 4
        assert report.thumbnails_generated == 0
        for record in records:
            assert thumb_path(library, record).stat().st_mtime == 0
        assert await Folder.count_documents() == 4

    @pytest.mark.asyncio
    async def test_changed_size_regenerates_thumbnail(self, engine, library, image_factory):
        sync = engine.get_system(SyncService)
        await sync.sync()
        record = await FileRecord.find_one({"path": "trips/2020/beach.jpg"})
        os.utime(thumb_path(library, record), (0, 0))

        image_factory(library / "trips" / "2020" / "beach.jpg", size=(1600, 1200), color=(1, 2, 3))
        report = await sync.sync()

        assert report.files_updated == 1
        assert report.files_unchanged == 3
        updated = await FileRecord.find_one({"path": "trips/2020/beach.jpg"})
        assert updated.size == (library / "trips" / "2020" / "beach.jpg").stat().st_size
        assert thumb_path(library, updated).stat().st_mtime > 0

    @pytest.mark.asyncio
    async def test_subdirectory_sync_uses_root_relative_paths(self, engine, library):
        report = await engine.get_system(SyncService).sync(str(library / "trips" / "2021"))

        assert report.files_added == 1
        assert sorted(f.path for f in await Folder.find({})) == ["trips", "trips/2021", "trips/2021/deep"]
        assert (await FileRecord.find_one({})).path == "trips/2021/deep/hike.gif"

    @pytest.mark.asyncio
    async def test_external_import(self, engine, library, tmp_path, image_factory):
        external = tmp_path / "card" / "DCIM"
        image_factory(external / "100CANON" / "img.jpg", size=(64, 48))

        report = await engine.get_system(SyncService).sync(str(external), external=True)

        assert report.files_added == 1
        assert sorted(f.path for f in await Folder.find({})) == ["DCIM", "DCIM/100CANON"]
        record = await FileRecord.find_one({})
        assert record.path == (external / "100CANON" / "img.jpg").resolve().as_posix()
        assert record.folder_path == "DCIM/100CANON"
        assert record.thumbnail_path.startswith("thumbnails/")

    @pytest.mark.asyncio
    async def test_full_resync_clears_stale_folders(self, engine, library):
        sync = engine.get_system(SyncService)
        await Folder(path="gone", name="gone", parent_path="/").save()

        await sync.sync()
        assert await Folder.count_documents({"path": "gone"}) == 1

        await sync.sync(full_resync=True)
        assert await Folder.count_documents({"path": "gone"}) == 0
        assert await Folder.count_documents() == 4

    @pytest.mark.asyncio
    async def test_outside_root_requires_external(self, engine, library, tmp_path):
        (tmp_path / "elsewhere").mkdir()
        with pytest.raises(ConfigurationError):
            await engine.get_system(SyncService).sync(str(tmp_path / "elsewhere"))

    @pytest.mark.asyncio
    async def test_overlapping_sync_is_rejected(self, engine, library):
        sync = engine.get_system(SyncService)
        key = library.resolve().as_posix()

        async with sync._lock_for(key):
            assert sync.is_running(str(library))
            with pytest.raises(SyncInProgressError):
                await sync.sync()

    @pytest.mark.asyncio
    async def test_library_and_subtree_syncs_exclude_each_other(self, engine, library):
        sync = engine.get_system(SyncService)

        results = await asyncio.gather(
            sync.sync(full_resync=True),
            sync.sync(str(library / "trips")),
            return_exceptions=True,
        )

        assert results[0].success
        assert isinstance(results[1], SyncInProgressError)

        results = await asyncio.gather(
            sync.sync(str(library / "trips" / "2020")),
            sync.sync(),
            return_exceptions=True,
        )

        assert results[0].success
        assert isinstance(results[1], SyncInProgressError)
        assert not sync.is_running()

    @pytest.mark.asyncio
    async def test_cancel_stops_between_directories(self, engine, library, monkeypatch):
        sync = engine.get_system(SyncService)
        original = sync._sync_directory

        async def sync_then_cancel(writer, listing, absolute, report):
            await original(writer, listing, absolute, report)
            sync.cancel()

        monkeypatch.setattr(sync, "_sync_directory", sync_then_cancel)
        report = await sync.sync()

        assert report.cancelled
        assert not report.success
        assert report.files_added == 1
        assert not sync.is_running()

    @pytest.mark.asyncio
    async def test_unreadable_subtree_is_reported(self, engine, library, monkeypatch):
        sync = engine.get_system(SyncService)
        original = sync.walker.list_entries

        def list_entries(directory):
            if directory.endswith("/trips/2020"):
                raise PermissionError(13, "Permission denied")
            return original(directory)

        monkeypatch.setattr(sync.walker, "list_entries", list_entries)
        report = await sync.sync()

        assert not report.success
        assert [e.reason for e in report.errors] == ["permission denied"]
        assert report.errors[0].path.endswith("/trips/2020")
        assert "trips/2021/deep" in report.synced_subtrees
        assert await FileRecord.count_documents({"folder_path": "trips/2020"}) == 0
        assert await FileRecord.count_documents() == 2

    @pytest.mark.asyncio
    async def test_unreadable_dir_below_imageless_parent_fails_sync(self, engine, library, image_factory, monkeypatch):
        image_factory(library / "outer" / "locked" / "x.jpg", size=(40, 30))
        original = os.scandir

        def scandir(path="."):
            if str(path).endswith("/outer/locked"):
                raise PermissionError(13, "Permission denied")
            return original(path)

        monkeypatch.setattr(os, "scandir", scandir)
        report = await engine.get_system(SyncService).sync()

        assert not report.success
        assert [e.reason for e in report.errors] == ["permission denied"]
        assert report.errors[0].path.endswith("/outer/locked")
        assert await FileRecord.count_documents() == 4

    @pytest.mark.asyncio
    async def test_thumbnail_timeout_leaves_record_for_retry(self, engine, library, monkeypatch):
        sync = engine.get_system(SyncService)
        sync.thumbnail_timeout = 0.01

        async def slow(*args, **kwargs):
            await asyncio.sleep(1)

        monkeypatch.setattr(sync.thumbnails, "generate_async", slow)
        report = await sync.sync()

        assert len(report.errors) == 4
        assert all("timed out" in e.reason for e in report.errors)
        assert await FileRecord.count_documents() == 0

    @pytest.mark.asyncio
    async def test_check_for_changes_removes_duplicates(self, engine, library):
        sync = engine.get_system(SyncService)
        await sync.sync()
        await Folder(path="trips", name="trips", parent_path="/").save()

        result = await sync.check_for_changes()

        assert result["success"]
        assert result["duplicates_removed"] == 1
        assert await Folder.count_documents({"path": "trips"}) == 1

    @pytest.mark.asyncio
    async def test_check_for_changes_reports_bad_root(self, engine, library, config_manager, tmp_path):
        config_manager.data.library.root_path = str(tmp_path / "missing")

        result = await engine.get_system(SyncService).check_for_changes()

        assert result["success"] is False
        assert "does not exist" in result["error"]

    @pytest.mark.asyncio
    async def test_poll_runs_until_stopped(self, engine, library, monkeypatch):
        sync = engine.get_system(SyncService)
        stop = asyncio.Event()

        async def check():
            stop.set()
            return {"success": True}

        monkeypatch.setattr(sync, "check_for_changes", check)
        assert await sync.poll(interval=0.01, stop_event=stop) == 1

    @pytest.mark.asyncio
    async def test_engine_registers_maintenance_dependency(self, engine):
        assert engine.get_system(MaintenanceService).is_ready
