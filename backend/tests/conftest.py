import os
import sys
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

# Ensure project root is on sys.path
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app import handler as handler_module
from app.core.config import UploadConfig, get_settings
from app.services import storage as storage_service
from app.services.sniffing import SniffResult
from app.services.uploads import UploadService

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00\x00\x00\rIHDR" + b"\x00" * 64
JPEG_BYTES = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00" + b"\x00" * 64


class InMemoryStorage:
    """Blob store fake keeping objects in a dict keyed by (bucket, key)."""

    def __init__(self) -> None:
        self.objects: dict[tuple[str, str], dict] = {}
        self.probes: list[tuple[str, str]] = []
        self.occupied_probes = 0

    async def object_exists(self, bucket: str, key: str) -> bool:
        self.probes.append((bucket, key))
        if self.occupied_probes > 0:
            self.occupied_probes -= 1
            return True
        return (bucket, key) in self.objects

    async def put_object(self, bucket, key, data, content_type, acl="public-read"):
        self.objects[(bucket, key)] = {
            "data": data,
            "content_type": content_type,
            "acl": acl,
        }


class StaticSniffer:
    def __init__(self, result: SniffResult | None = None) -> None:
        self.result = result
        self.calls = 0

    def detect(self, data: bytes) -> SniffResult | None:
        self.calls += 1
        return self.result


@pytest.fixture(scope="session", autouse=True)
def configure_environment():
    os.environ["ENV"] = "test"
    os.environ["USERNAME_ALLOW_LIST"] = "alice,bob"
    os.environ["S3_BUCKET"] = "test-bucket"
    os.environ["S3_ACCESS_KEY"] = "test"
    os.environ["S3_SECRET_KEY"] = "test"
    os.environ["S3_REGION"] = "us-east-1"
    os.environ["STORAGE_BACKEND"] = "s3"
    os.environ.pop("CDN_DOMAIN", None)
    get_settings.cache_clear()
    storage_service.reset_storage_service()
    handler_module.reset_upload_service()


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def upload_config() -> UploadConfig:
    return UploadConfig(allowed_usernames=frozenset({"alice", "bob"}), bucket="test-bucket")


@pytest.fixture
def app_instance(configure_environment, storage):
    from app.main import create_app

    app = create_app()

    # Setup state for tests, mimicking lifespan events
    app.state.upload_service = UploadService(
        UploadConfig.from_settings(get_settings()), storage=storage
    )
    return app


@pytest_asyncio.fixture
async def client(app_instance):
    transport = ASGITransport(app=app_instance)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
