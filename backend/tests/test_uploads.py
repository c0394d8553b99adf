import re

import pytest

from app.schemas import UploadRequest
from app.services.sniffing import SniffResult
from app.services.uploads import UploadService

from conftest import JPEG_BYTES, PNG_BYTES, StaticSniffer


class FailingStorage:
    def __init__(self, fail_on: str) -> None:
        self.fail_on = fail_on

    async def object_exists(self, bucket, key):
        if self.fail_on == "head":
            raise ConnectionError("head timed out")
        return False

    async def put_object(self, bucket, key, data, content_type, acl="public-read"):
        raise PermissionError("Access Denied")


def _jpeg_request(**headers):
    base = {"soju-username": "alice", "content-type": "image/jpeg"}
    base.update(headers)
    return UploadRequest(headers=base, body=JPEG_BYTES)


@pytest.mark.asyncio
async def test_successful_upload_writes_public_object(upload_config, storage):
    service = UploadService(upload_config, storage=storage, sniffer=StaticSniffer())
    response = await service.handle(
        _jpeg_request(**{"content-disposition": 'attachment; filename="cat.jpg"'})
    )

    assert response.status_code == 201
    url = response.headers["location"]
    assert response.body == f"SUCCESS: {url}"
    assert re.fullmatch(r"https://test-bucket\.s3\.amazonaws\.com/cat-[0-9a-f]{8}\.jpg", url)

    [(bucket, key)] = storage.objects.keys()
    assert bucket == "test-bucket"
    assert url.endswith(f"/{key}")
    stored = storage.objects[(bucket, key)]
    assert stored == {"data": JPEG_BYTES, "content_type": "image/jpeg", "acl": "public-read"}


@pytest.mark.asyncio
async def test_cdn_domain_overrides_bucket_domain(upload_config, storage):
    config = upload_config.model_copy(update={"cdn_domain": "cdn.example.com"})
    service = UploadService(config, storage=storage, sniffer=StaticSniffer())
    response = await service.handle(_jpeg_request())
    assert response.headers["location"].startswith("https://cdn.example.com/upload-")


@pytest.mark.asyncio
async def test_sniffed_type_is_stored(upload_config, storage):
    sniffer = StaticSniffer(SniffResult(mime="image/png", extension="png"))
    service = UploadService(upload_config, storage=storage, sniffer=sniffer)
    response = await service.handle(
        UploadRequest(
            headers={"soju-username": "bob", "content-type": "application/octet-stream"},
            body=PNG_BYTES,
        )
    )
    assert response.status_code == 201
    [stored] = storage.objects.values()
    assert stored["content_type"] == "image/png"


@pytest.mark.asyncio
async def test_rejection_skips_storage(upload_config, storage):
    service = UploadService(upload_config, storage=storage, sniffer=StaticSniffer())
    response = await service.handle(_jpeg_request(**{"soju-username": "mallory"}))
    assert response.status_code == 403
    assert response.body == "ERR: Invalid username"
    assert response.headers is None
    assert storage.probes == []
    assert storage.objects == {}


@pytest.mark.asyncio
async def test_exhausted_allocation_is_an_application_error(upload_config, storage):
    storage.occupied_probes = 3
    service = UploadService(upload_config, storage=storage, sniffer=StaticSniffer())
    response = await service.handle(_jpeg_request())
    assert response.status_code == 500
    assert response.body == "ERR: Application error: Could not generate a unique filename"
    assert storage.objects == {}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("fail_on", "message"),
    [("head", "head timed out"), ("put", "Access Denied")],
)
async def test_storage_failures_are_reported(upload_config, fail_on, message):
    service = UploadService(upload_config, storage=FailingStorage(fail_on), sniffer=StaticSniffer())
    response = await service.handle(_jpeg_request())
    assert response.status_code == 500
    assert response.body == f"ERR: Application error: {message}"


def test_lambda_payload_shape():
    from app.schemas import UploadResponse

    assert UploadResponse.error(413, "File too large").to_lambda() == {
        "statusCode": 413,
        "body": "ERR: File too large",
    }
    assert UploadResponse.created("https://x/y.png").to_lambda() == {
        "statusCode": 201,
        "body": "SUCCESS: https://x/y.png",
        "headers": {"location": "https://x/y.png"},
    }
