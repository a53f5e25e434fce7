import pytest

from application import cache_groups
from application.dto import UploadCompletedEvent
from application.services.cache_maintenance import CacheMaintenanceService
from application.services.upload_reconciler import UploadReconciler
from domain.media_object import new_media_id


def _event(media_id=None, size=7, url="https://cdn.test/videos/x.webm"):
    media_id = media_id or new_media_id()
    return UploadCompletedEvent(
        id=media_id,
        storage_key=f"videos/{media_id}.webm",
        filename="x.webm",
        content_type="video/webm",
        size_bytes=size,
        public_url=url,
    )


@pytest.mark.asyncio
async def test_positive_check_is_cached_and_reused(reconciler, blob_store, group_cache):
    blob_store.objects["videos/k.webm"] = (b"1", "video/webm")

    assert await reconciler.verify_exists("videos/k.webm") is True
    assert await reconciler.verify_exists("videos/k.webm") is True

    assert blob_store.head_calls == 1
    assert await group_cache.get(cache_groups.EXISTENCE_CHECKS, "videos/k.webm") is True


@pytest.mark.asyncio
async def test_negative_check_is_never_cached(reconciler, blob_store, group_cache):
    assert await reconciler.verify_exists("videos/missing.webm") is False
    assert await reconciler.verify_exists("videos/missing.webm") is False

    assert blob_store.head_calls == 2
    assert await group_cache.list_group(cache_groups.EXISTENCE_CHECKS) == []


@pytest.mark.asyncio
async def test_check_failure_reads_as_missing(reconciler, blob_store, group_cache):
    blob_store.fail_head = True

    assert await reconciler.verify_exists("videos/k.webm") is False
    assert False not in await group_cache.list_group(cache_groups.EXISTENCE_CHECKS)


@pytest.mark.asyncio
async def test_handle_reasserts_record_and_cache(reconciler, blob_store, media_repository, group_cache):
    event = _event()
    blob_store.objects[event.storage_key] = (b"1234567", "video/webm")
    await group_cache.set(cache_groups.LIST_RESULTS, "list:50", {"items": [], "count": 0})

    await reconciler.handle(event)

    row = media_repository.rows[event.id]
    assert row.is_complete and row.size_bytes == 7
    assert (await group_cache.get(cache_groups.OBJECTS_BY_ID, event.id))["storage_key"] == event.storage_key
    assert await group_cache.get(cache_groups.LIST_RESULTS, "list:50") is None


@pytest.mark.asyncio
async def test_handle_is_idempotent(reconciler, blob_store, media_repository):
    event = _event()
    blob_store.objects[event.storage_key] = (b"1234567", "video/webm")

    await reconciler.handle(event)
    created_at = media_repository.rows[event.id].created_at
    await reconciler.handle(event)

    assert len(media_repository.rows) == 1
    assert media_repository.rows[event.id].created_at == created_at


@pytest.mark.asyncio
async def test_handle_continues_when_blob_missing(reconciler, media_repository):
    event = _event()

    await reconciler.handle(event)

    assert event.id in media_repository.rows


@pytest.mark.asyncio
async def test_handle_swallows_store_failures(reconciler, media_repository):
    media_repository.fail = True

    # Must not raise to the delivery mechanism.
    await reconciler.handle(_event())


@pytest.mark.asyncio
async def test_handle_survives_cache_outage(uow_factory, blob_store, failing_cache, media_repository):
    reconciler = UploadReconciler(uow_factory=uow_factory, storage=blob_store, cache=failing_cache)
    event = _event()

    await reconciler.handle(event)

    assert event.id in media_repository.rows


@pytest.mark.asyncio
async def test_maintenance_reports_group_sizes(media_service, group_cache):
    uploaded = await media_service.upload_direct(data=b"abc", filename="a.webm", content_type="video/webm")
    await media_service.request_upload_grant(filename="b.webm", content_type="video/webm")
    await media_service.list_media(50)

    stats = await CacheMaintenanceService(group_cache, media_service=media_service).run()

    assert stats.groups[cache_groups.OBJECTS_BY_ID] == 1
    assert stats.groups[cache_groups.PENDING_UPLOADS] == 1
    assert stats.groups[cache_groups.LIST_RESULTS] == 1
    assert stats.reaped == 0
    # Diagnostics only: nothing was evicted.
    assert await group_cache.get(cache_groups.OBJECTS_BY_ID, uploaded.id) is not None


@pytest.mark.asyncio
async def test_maintenance_never_raises(failing_cache):
    stats = await CacheMaintenanceService(failing_cache).run()

    assert all(count == 0 for count in stats.groups.values())
