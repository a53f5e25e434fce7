from datetime import timedelta

import pytest

from application import cache_groups
from application.services.media_object_service import MediaObjectApplicationService
from domain.common.exceptions import (
    DomainValidationException,
    InvalidMediaIdException,
    MediaObjectNotFoundException,
    MetadataStoreException,
)
from domain.media_object import new_media_id


async def _upload(service, name="a.webm", data=b"0123456789"):
    return await service.upload_direct(data=data, filename=name, content_type="video/webm")


@pytest.mark.asyncio
async def test_get_cold_and_warm_return_same_record(media_service, group_cache):
    uploaded = await _upload(media_service)
    await group_cache.clear_group(cache_groups.OBJECTS_BY_ID)

    cold = await media_service.get_media(uploaded.id)
    warm = await media_service.get_media(uploaded.id)

    assert cold == warm
    assert cold.size_bytes == 10
    assert cold.content_type == "video/webm"
    assert cold.public_url


@pytest.mark.asyncio
async def test_get_serves_from_cache_without_store(media_service, media_repository):
    uploaded = await _upload(media_service)
    media_repository.fail = True

    media = await media_service.get_media(uploaded.id)

    assert media.id == uploaded.id


@pytest.mark.asyncio
async def test_get_unknown_id_is_not_cached(media_service, group_cache):
    missing = new_media_id()

    with pytest.raises(MediaObjectNotFoundException):
        await media_service.get_media(missing)
    assert await group_cache.get(cache_groups.OBJECTS_BY_ID, missing) is None


@pytest.mark.asyncio
async def test_get_rejects_malformed_id(media_service):
    with pytest.raises(InvalidMediaIdException):
        await media_service.get_media("not-a-uuid")


@pytest.mark.asyncio
async def test_get_accepts_equivalent_id_spellings(media_service, media_repository):
    uploaded = await _upload(media_service)

    for spelling in (uploaded.id.upper(), uploaded.id.replace("-", ""), "{" + uploaded.id + "}"):
        media = await media_service.get_media(spelling)
        assert media.id == uploaded.id

    deleted = await media_service.delete_media(uploaded.id.upper())
    assert deleted.deleted is True
    assert uploaded.id not in media_repository.rows


@pytest.mark.asyncio
async def test_invalid_cache_entry_falls_back_to_store(media_service, group_cache):
    uploaded = await _upload(media_service)
    await group_cache.set(cache_groups.OBJECTS_BY_ID, uploaded.id, {"garbage": True})

    media = await media_service.get_media(uploaded.id)

    assert media.id == uploaded.id
    assert (await group_cache.get(cache_groups.OBJECTS_BY_ID, uploaded.id))["id"] == uploaded.id


@pytest.mark.asyncio
async def test_list_is_newest_first_and_cached_per_page_size(media_service, media_repository, group_cache):
    first = await _upload(media_service, "first.webm")
    second = await _upload(media_service, "second.webm")
    media_repository.rows[first.id].created_at -= timedelta(seconds=5)

    listing = await media_service.list_media(50)

    assert [item.id for item in listing.items] == [second.id, first.id]
    assert await group_cache.get(cache_groups.LIST_RESULTS, "list:50") is not None
    assert await group_cache.get(cache_groups.LIST_RESULTS, "list:1") is None


@pytest.mark.asyncio
async def test_list_default_page_size(media_service, group_cache):
    await _upload(media_service)

    await media_service.list_media()

    assert await group_cache.get(cache_groups.LIST_RESULTS, "list:50") is not None


@pytest.mark.asyncio
async def test_list_rejects_bad_page_size(media_service):
    with pytest.raises(DomainValidationException):
        await media_service.list_media(0)
    with pytest.raises(DomainValidationException):
        await media_service.list_media(10_000)


@pytest.mark.asyncio
async def test_upload_invalidates_previously_cached_list(media_service):
    await _upload(media_service, "one.webm")
    before = await media_service.list_media(50)
    assert before.count == 1

    await _upload(media_service, "two.webm")
    after = await media_service.list_media(50)

    assert after.count == 2


@pytest.mark.asyncio
async def test_grant_invalidates_previously_cached_list(media_service):
    assert (await media_service.list_media(50)).count == 0

    await media_service.request_upload_grant(filename="b.webm", content_type="video/webm")

    assert (await media_service.list_media(50)).count == 1


@pytest.mark.asyncio
async def test_delete_then_get_is_not_found_even_when_warm(media_service, group_cache):
    uploaded = await _upload(media_service)
    await media_service.get_media(uploaded.id)
    await media_service.list_media(50)

    result = await media_service.delete_media(uploaded.id)

    assert result.deleted is True
    with pytest.raises(MediaObjectNotFoundException):
        await media_service.get_media(uploaded.id)
    assert (await media_service.list_media(50)).count == 0


@pytest.mark.asyncio
async def test_delete_missing_leaves_cache_alone(media_service, group_cache):
    await _upload(media_service)
    await media_service.list_media(50)

    with pytest.raises(MediaObjectNotFoundException):
        await media_service.delete_media(new_media_id())

    assert await group_cache.get(cache_groups.LIST_RESULTS, "list:50") is not None


@pytest.mark.asyncio
async def test_delete_surfaces_metadata_failure(media_service, media_repository):
    uploaded = await _upload(media_service)
    media_repository.fail = True

    with pytest.raises(MetadataStoreException):
        await media_service.delete_media(uploaded.id)


@pytest.mark.asyncio
async def test_cache_outage_never_fails_reads_or_writes(uow_factory, blob_store, failing_cache, publisher):
    service = MediaObjectApplicationService(
        uow_factory=uow_factory,
        storage=blob_store,
        cache=failing_cache,
        publisher=publisher,
    )

    uploaded = await _upload(service)
    grant = await service.request_upload_grant(filename="b.webm", content_type="video/webm")
    media = await service.get_media(uploaded.id)
    listing = await service.list_media(50)
    deleted = await service.delete_media(uploaded.id)

    assert media.size_bytes == 10
    assert listing.count == 2
    assert deleted.deleted
    assert len(publisher.events) == 1
    assert failing_cache.calls > 0
    with pytest.raises(MediaObjectNotFoundException):
        await service.get_pending_grant(grant.id)
