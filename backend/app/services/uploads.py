import logging

from app.core.config import UploadConfig
from app.schemas.upload import Rejected, UploadRequest, UploadResponse
from app.services.keys import allocate_unique_key
from app.services.sniffing import ContentSniffer, get_content_sniffer
from app.services.storage import BlobStore, get_storage_service
from app.services.validation import validate_request

logger = logging.getLogger(__name__)


class UploadService:
    """Runs one upload request through validation, key allocation and storage."""

    def __init__(
        self,
        config: UploadConfig,
        storage: BlobStore | None = None,
        sniffer: ContentSniffer | None = None,
    ) -> None:
        self.config = config
        self.storage = storage or get_storage_service()
        self.sniffer = sniffer or get_content_sniffer()

    async def handle(self, request: UploadRequest) -> UploadResponse:
        try:
            decision = validate_request(request, self.config, self.sniffer)
            if isinstance(decision, Rejected):
                logger.info("Upload rejected (%d): %s", decision.status_code, decision.message)
                return UploadResponse.error(decision.status_code, decision.message)

            file = decision.file
            bucket = self.config.bucket
            key = await allocate_unique_key(
                file.filename, bucket, self.storage, attempts=self.config.key_attempts
            )

            logger.info("Uploading %s to %s as %s...", file.filename, bucket, key)
            await self.storage.put_object(
                bucket, key, file.content, file.content_type, acl="public-read"
            )
        except Exception as exc:
            logger.exception("Upload failed")
            return UploadResponse.error(500, f"Application error: {exc}")

        return UploadResponse.created(self.config.public_url(key))
