"""Pytest bootstrap configuration.

Environment variables are set before anything imports ``core.config`` so the
settings object points at a throwaway SQLite file and local blob directory.
"""
import os
import tempfile
from datetime import datetime, timedelta, timezone
from typing import Optional

_TMP_DIR = tempfile.mkdtemp(prefix="media-vault-tests-")

os.environ["DATABASE__URL"] = f"sqlite+aiosqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ["STORAGE__TYPE"] = "local"
os.environ["STORAGE__LOCAL_BASE_PATH"] = os.path.join(_TMP_DIR, "blobs")
os.environ["STORAGE__PUBLIC_BASE_URL"] = "http://cdn.test/media"
os.environ["EVENTS__BACKEND"] = "memory"
os.environ["ENVIRONMENT"] = "testing"
os.environ["DEBUG"] = "false"
os.environ.pop("REDIS__URL", None)

import pytest  # noqa: E402

from application.ports.storage import StoredObject, UploadGrant  # noqa: E402
from application.services.media_object_service import MediaObjectApplicationService  # noqa: E402
from application.services.upload_reconciler import UploadReconciler  # noqa: E402
from domain.common.exceptions import BlobStoreUnavailableException, MetadataStoreException  # noqa: E402
from domain.common.unit_of_work import AbstractUnitOfWork  # noqa: E402
from domain.media_object import MediaObject, MediaObjectRepository  # noqa: E402
from infrastructure.cache import InMemoryGroupCache  # noqa: E402


class FakeBlobStore:
    """Dict-backed blob store with switchable failures."""

    def __init__(self):
        self.objects: dict[str, tuple[bytes, str]] = {}
        self.head_calls = 0
        self.fail_put = False
        self.fail_head = False

    async def put(self, data: bytes, key: str, content_type: str) -> str:
        if self.fail_put:
            raise BlobStoreUnavailableException("put", "blob store down")
        self.objects[key] = (data, content_type)
        return await self.public_url(key)

    async def head_exists(self, key: str) -> bool:
        self.head_calls += 1
        if self.fail_head:
            raise BlobStoreUnavailableException("head", "blob store down")
        return key in self.objects

    async def head(self, key: str) -> Optional[StoredObject]:
        if self.fail_head:
            raise BlobStoreUnavailableException("head", "blob store down")
        if key not in self.objects:
            return None
        data, content_type = self.objects[key]
        return StoredObject(key=key, size=len(data), content_type=content_type)

    async def issue_grant(self, key: str, content_type: str) -> UploadGrant:
        return UploadGrant(
            url=f"https://blob.test/{key}?signature=abc",
            expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
            headers={"Content-Type": content_type},
        )

    async def public_url(self, key: str) -> str:
        return f"https://cdn.test/{key}"


class InMemoryMediaRepository(MediaObjectRepository):
    """Mirrors the SQL upsert rules: id, storage_key and created_at stick."""

    def __init__(self):
        self.rows: dict[str, MediaObject] = {}
        self.fail = False

    def _check(self, op: str) -> None:
        if self.fail:
            raise MetadataStoreException(op, "metadata store down")

    @staticmethod
    def _copy(media: MediaObject) -> MediaObject:
        return MediaObject(**media.to_dict())

    async def upsert(self, media: MediaObject) -> MediaObject:
        self._check("upsert")
        existing = self.rows.get(media.id)
        if existing is None:
            self.rows[media.id] = self._copy(media)
        else:
            existing.filename = media.filename
            existing.content_type = media.content_type
            if media.size_bytes > 0:
                existing.size_bytes = media.size_bytes
            if media.public_url:
                existing.public_url = media.public_url
        return self._copy(self.rows[media.id])

    async def get_by_id(self, media_id: str) -> Optional[MediaObject]:
        self._check("get_by_id")
        row = self.rows.get(media_id)
        return self._copy(row) if row else None

    async def list_recent(self, limit: int) -> list[MediaObject]:
        self._check("list_recent")
        ordered = sorted(self.rows.values(), key=lambda m: (m.created_at, m.id), reverse=True)
        return [self._copy(m) for m in ordered[:limit]]

    async def delete_by_id(self, media_id: str) -> bool:
        self._check("delete_by_id")
        return self.rows.pop(media_id, None) is not None

    async def delete_provisional_by_id(self, media_id: str, cutoff: datetime) -> bool:
        self._check("delete_provisional_by_id")
        row = self.rows.get(media_id)
        if row is None or not row.is_provisional or row.created_at >= cutoff:
            return False
        del self.rows[media_id]
        return True

    async def list_provisional_before(self, cutoff: datetime, limit: int = 100) -> list[MediaObject]:
        self._check("list_provisional_before")
        stale = [m for m in self.rows.values() if m.is_provisional and m.created_at < cutoff]
        stale.sort(key=lambda m: m.created_at)
        return [self._copy(m) for m in stale[:limit]]


class FakeUnitOfWork(AbstractUnitOfWork):
    def __init__(self, repository: InMemoryMediaRepository, *, readonly: bool = False):
        super().__init__(readonly=readonly)
        self.media_object_repository = repository

    async def commit(self) -> None:
        self._committed = True

    async def rollback(self) -> None:
        self._committed = False


class FailingCache:
    """Every operation raises, like a Redis that went away."""

    def __init__(self):
        self.calls = 0

    async def _boom(self, *args, **kwargs):
        self.calls += 1
        raise ConnectionError("cache unavailable")

    get = set = delete = clear_group = list_group = _boom


class RecordingPublisher:
    def __init__(self, fail: bool = False):
        self.events = []
        self.fail = fail

    async def publish(self, event) -> None:
        if self.fail:
            raise RuntimeError("broker unavailable")
        self.events.append(event)


@pytest.fixture
def blob_store() -> FakeBlobStore:
    return FakeBlobStore()


@pytest.fixture
def media_repository() -> InMemoryMediaRepository:
    return InMemoryMediaRepository()


@pytest.fixture
def uow_factory(media_repository):
    def _factory(*, readonly: bool = False) -> FakeUnitOfWork:
        return FakeUnitOfWork(media_repository, readonly=readonly)

    return _factory


@pytest.fixture
def group_cache() -> InMemoryGroupCache:
    return InMemoryGroupCache(default_ttl=0)


@pytest.fixture
def failing_cache() -> FailingCache:
    return FailingCache()


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def failing_publisher() -> RecordingPublisher:
    return RecordingPublisher(fail=True)


@pytest.fixture
def media_service(uow_factory, blob_store, group_cache, publisher) -> MediaObjectApplicationService:
    return MediaObjectApplicationService(
        uow_factory=uow_factory,
        storage=blob_store,
        cache=group_cache,
        publisher=publisher,
    )


@pytest.fixture
def reconciler(uow_factory, blob_store, group_cache) -> UploadReconciler:
    return UploadReconciler(uow_factory=uow_factory, storage=blob_store, cache=group_cache)
