"""AWS Lambda entry point for API Gateway HTTP API (payload v2) events."""

import asyncio
import logging
from typing import Any

from app.core.config import UploadConfig, get_settings
from app.schemas import UploadRequest
from app.services.uploads import UploadService

logger = logging.getLogger(__name__)

_upload_service: UploadService | None = None


def get_upload_service() -> UploadService:
    global _upload_service
    if _upload_service is None:
        settings = get_settings()
        logging.getLogger("app").setLevel(settings.log_level.upper())
        _upload_service = UploadService(UploadConfig.from_settings(settings))
    return _upload_service


def reset_upload_service() -> None:
    global _upload_service
    _upload_service = None


def request_from_event(event: dict[str, Any]) -> UploadRequest:
    return UploadRequest(
        headers=event.get("headers") or {},
        body=event.get("body"),
        is_base64_encoded=bool(event.get("isBase64Encoded", False)),
    )


def handler(event: dict[str, Any], context: Any = None) -> dict[str, Any]:
    request_id = (event.get("requestContext") or {}).get("requestId")
    logger.debug("Handling upload request %s", request_id)
    response = asyncio.run(get_upload_service().handle(request_from_event(event)))
    return response.to_lambda()
