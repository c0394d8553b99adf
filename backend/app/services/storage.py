import asyncio
import logging
from pathlib import Path
from typing import Final, Protocol

import boto3
from botocore.client import Config
from botocore.exceptions import ClientError

from app.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES: Final[frozenset[str]] = frozenset({"404", "NoSuchKey", "NotFound"})


class BlobStore(Protocol):
    async def object_exists(self, bucket: str, key: str) -> bool: ...

    async def put_object(
        self,
        bucket: str,
        key: str,
        data: bytes,
        content_type: str,
        acl: str = "public-read",
    ) -> None: ...


class StorageService:
    """Default S3-compatible storage backend."""

    scheme: Final[str] = "s3"

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        session = boto3.session.Session()
        self.client = session.client(
            "s3",
            endpoint_url=str(self.settings.s3_endpoint) if self.settings.s3_endpoint else None,
            aws_access_key_id=self.settings.s3_access_key,
            aws_secret_access_key=self.settings.s3_secret_key,
            region_name=self.settings.s3_region,
            config=Config(signature_version="s3v4"),
        )
        self.bucket = self.settings.s3_bucket

    async def object_exists(self, bucket: str, key: str) -> bool:
        def _head() -> bool:
            try:
                self.client.head_object(Bucket=bucket, Key=key)
            except ClientError as exc:
                code = str(exc.response.get("Error", {}).get("Code", ""))
                if code in _NOT_FOUND_CODES:
                    return False
                raise
            return True

        return await asyncio.to_thread(_head)

    async def put_object(
        self,
        bucket: str,
        key: str,
        data: bytes,
        content_type: str,
        acl: str = "public-read",
    ) -> None:
        def _upload() -> None:
            self.client.put_object(
                Bucket=bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
                ACL=acl,
            )

        await asyncio.to_thread(_upload)


class LocalStorageService:
    """Local filesystem storage intended for development use.

    Buckets map to sub-directories of ``LOCAL_STORAGE_DIR``; the ACL is ignored.
    """

    scheme: Final[str] = "local"

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self.bucket = self.settings.s3_bucket
        self.base_path = Path(self.settings.local_storage_dir).resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _key_path(self, bucket: str, key: str) -> Path:
        # Prevent directory traversal by resolving inside base path
        candidate = self.base_path.joinpath(bucket, *Path(key).parts).resolve()
        if not candidate.is_relative_to(self.base_path / bucket):
            raise ValueError("Invalid storage key")
        return candidate

    async def object_exists(self, bucket: str, key: str) -> bool:
        return self._key_path(bucket, key).exists()

    async def put_object(
        self,
        bucket: str,
        key: str,
        data: bytes,
        content_type: str,
        acl: str = "public-read",
    ) -> None:
        target = self._key_path(bucket, key)
        target.parent.mkdir(parents=True, exist_ok=True)

        def _write() -> None:
            target.write_bytes(data)

        await asyncio.to_thread(_write)
        logger.debug("Stored %s (%s, %d bytes) at %s", key, content_type, len(data), target)


_storage_service: StorageService | LocalStorageService | None = None


def get_storage_service() -> StorageService | LocalStorageService:
    global _storage_service
    if _storage_service is None:
        settings = get_settings()
        if settings.storage_backend == "local":
            _storage_service = LocalStorageService()
        else:
            _storage_service = StorageService()
    return _storage_service


def reset_storage_service() -> None:
    global _storage_service
    _storage_service = None
