import pytest
from botocore.exceptions import ClientError

from domain.common.exceptions import BlobStoreUnavailableException
from infrastructure.adapters.storage_port import BlobStorePortAdapter
from infrastructure.external.storage import (
    NotFoundError,
    PermissionDeniedError,
    StorageConfig,
    TransientError,
    ValidationError,
)
from infrastructure.external.storage.providers.local import LocalProvider
from infrastructure.external.storage.providers.s3 import S3Provider


def _client_error(code: str, operation: str = "HeadObject") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class StubS3Client:
    """Synchronous boto3-shaped client holding objects in a dict."""

    def __init__(self):
        self.objects: dict[str, dict] = {}
        self.fail_with: str | None = None
        self.fail_times = 0
        self.calls = 0
        self.presign_calls: list[dict] = []

    def _maybe_fail(self):
        self.calls += 1
        if self.fail_times > 0:
            self.fail_times -= 1
            raise _client_error("SlowDown")
        if self.fail_with:
            raise _client_error(self.fail_with)

    def put_object(self, Bucket, Key, Body, **extra):
        self._maybe_fail()
        self.objects[Key] = {"Body": Body, **extra}
        return {"ETag": '"abc123"'}

    def head_object(self, Bucket, Key):
        self._maybe_fail()
        if Key not in self.objects:
            raise _client_error("404")
        obj = self.objects[Key]
        return {"ContentLength": len(obj["Body"]), "ContentType": obj.get("ContentType"), "ETag": '"abc123"'}

    def generate_presigned_url(self, ClientMethod, Params, ExpiresIn):
        self._maybe_fail()
        self.presign_calls.append({"method": ClientMethod, "params": Params, "expires": ExpiresIn})
        return f"https://signed.test/{Params['Key']}?op={ClientMethod}"

    def head_bucket(self, Bucket):
        self._maybe_fail()
        return {}


@pytest.fixture
def s3_client():
    return StubS3Client()


@pytest.fixture
def s3_provider(s3_client):
    config = StorageConfig(type="s3", bucket="media", region="eu-west-1", max_retry_attempts=1)
    return S3Provider(s3_client, config)


@pytest.mark.asyncio
async def test_s3_upload_and_head(s3_provider, s3_client):
    result = await s3_provider.upload(b"12345", "videos/a.webm", content_type="video/webm")

    assert result.etag == "abc123"
    assert result.url is None
    assert s3_client.objects["videos/a.webm"]["ContentType"] == "video/webm"

    head = await s3_provider.head("videos/a.webm")
    assert head.size == 5
    assert await s3_provider.exists("videos/a.webm") is True
    assert await s3_provider.exists("videos/missing.webm") is False


@pytest.mark.asyncio
async def test_s3_errors_are_mapped(s3_provider, s3_client):
    with pytest.raises(NotFoundError):
        await s3_provider.head("videos/missing.webm")

    s3_client.fail_with = "AccessDenied"
    with pytest.raises(PermissionDeniedError):
        await s3_provider.head("videos/a.webm")

    s3_client.fail_with = "SlowDown"
    with pytest.raises(TransientError):
        await s3_provider.upload(b"x", "videos/a.webm")

    assert await s3_provider.health_check() is False


@pytest.mark.asyncio
async def test_s3_put_grant_signs_content_type(s3_provider, s3_client):
    grant = await s3_provider.generate_presigned_url(
        "videos/a.webm", expires_in=900, method="PUT", content_type="video/webm"
    )

    assert grant.method == "PUT"
    assert grant.headers == {"Content-Type": "video/webm"}
    assert s3_client.presign_calls[0]["params"]["ContentType"] == "video/webm"
    assert (grant.expires_at - grant.issued_at).total_seconds() == 900


def test_s3_public_url_variants(s3_client):
    private = S3Provider(s3_client, StorageConfig(type="s3", bucket="media"))
    public = S3Provider(s3_client, StorageConfig(type="s3", bucket="media", region="eu-west-1", s3_acl="public-read"))
    cdn = S3Provider(s3_client, StorageConfig(type="s3", bucket="media", public_base_url="https://cdn.test/"))

    assert private.public_url("videos/a.webm") is None
    assert public.public_url("videos/a.webm") == "https://media.s3.eu-west-1.amazonaws.com/videos/a.webm"
    assert cdn.public_url("videos/a.webm") == "https://cdn.test/videos/a.webm"


@pytest.mark.asyncio
async def test_adapter_falls_back_to_presigned_get_for_private_bucket(s3_provider):
    adapter = BlobStorePortAdapter(s3_provider, grant_expires_in=60)

    url = await adapter.put(b"abc", "videos/a.webm", "video/webm")

    assert url == "https://signed.test/videos/a.webm?op=get_object"


@pytest.mark.asyncio
async def test_adapter_head_and_error_translation(s3_provider, s3_client):
    adapter = BlobStorePortAdapter(s3_provider)

    assert await adapter.head("videos/missing.webm") is None

    s3_client.fail_with = "InternalError"
    with pytest.raises(BlobStoreUnavailableException):
        await adapter.head("videos/a.webm")
    with pytest.raises(BlobStoreUnavailableException):
        await adapter.issue_grant("videos/a.webm", "video/webm")


@pytest.mark.asyncio
async def test_local_provider_keeps_content_type_sidecar(tmp_path):
    provider = LocalProvider(StorageConfig(local_base_path=str(tmp_path), public_base_url="http://cdn.test/m"))

    result = await provider.upload(b"abcd", "videos/x.webm", content_type="video/webm")
    head = await provider.head("videos/x.webm")

    assert result.url == "http://cdn.test/m/videos/x.webm"
    assert head.size == 4
    assert head.content_type == "video/webm"
    with pytest.raises(NotFoundError):
        await provider.head("videos/none.webm")


def test_local_provider_rejects_path_traversal(tmp_path):
    provider = LocalProvider(StorageConfig(local_base_path=str(tmp_path / "root")))

    with pytest.raises(ValidationError):
        provider.public_url("../../etc/passwd")


@pytest.mark.asyncio
async def test_s3_transient_errors_are_retried(s3_client):
    provider = S3Provider(
        s3_client,
        StorageConfig(type="s3", bucket="media", max_retry_attempts=3, retry_backoff=0),
    )
    s3_client.fail_times = 2

    result = await provider.upload(b"abc", "videos/r.webm", content_type="video/webm")

    assert result.size == 3
    assert s3_client.calls == 3


@pytest.mark.asyncio
async def test_s3_permanent_errors_are_not_retried(s3_client):
    provider = S3Provider(
        s3_client,
        StorageConfig(type="s3", bucket="media", max_retry_attempts=3, retry_backoff=0),
    )
    s3_client.fail_with = "AccessDenied"

    with pytest.raises(PermissionDeniedError):
        await provider.head("videos/a.webm")
    assert s3_client.calls == 1
