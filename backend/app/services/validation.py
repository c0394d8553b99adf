"""Validation of inbound upload requests.

Every gate runs in a fixed order and the first failure wins; nothing here
touches storage.
"""

import base64
import binascii
import logging
import mimetypes
import re
import time
from pathlib import PurePosixPath

import filetype

from app.core.config import UploadConfig
from app.schemas.upload import Accepted, InboundFile, Rejected, UploadDecision, UploadRequest
from app.services.sniffing import ContentSniffer

logger = logging.getLogger(__name__)

FALLBACK_CONTENT_TYPE = "application/octet-stream"
FALLBACK_EXTENSION = "bin"
GENERIC_CONTENT_TYPES = frozenset({FALLBACK_CONTENT_TYPE, "application/x-www-form-urlencoded"})

USERNAME_HEADER = "soju-username"

# Allowed types that mimetypes does not know on every platform.
_EXTENSION_OVERRIDES = {
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/x-m4a": "m4a",
    "audio/mp4": "m4a",
    "audio/webm": "weba",
    "audio/flac": "flac",
    "audio/x-flac": "flac",
    "audio/aac": "aac",
    "audio/ogg": "ogg",
    "image/heic": "heic",
    "image/heif": "heif",
    "image/avif": "avif",
    "image/webp": "webp",
    "image/jpeg": "jpg",
    "video/x-matroska": "mkv",
    "video/webm": "webm",
    "text/markdown": "md",
    "application/epub+zip": "epub",
    "application/rtf": "rtf",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "docx",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": "xlsx",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation": "pptx",
    "application/vnd.oasis.opendocument.text": "odt",
}

_FILENAME_RE = re.compile(r'filename\s*=\s*(?:"(?P<quoted>[^"]*)"|(?P<bare>[^;\s]+))', re.IGNORECASE)


def _sanitize_filename(filename: str) -> str:
    name = PurePosixPath(filename.replace("\\", "/")).name
    if name in {".", ".."}:
        return ""
    return re.sub(r"[^A-Za-z0-9._-]+", "_", name)


def extension_for(media_type: str) -> str:
    if media_type in _EXTENSION_OVERRIDES:
        return _EXTENSION_OVERRIDES[media_type]
    guessed = mimetypes.guess_extension(media_type)
    if guessed:
        return guessed.lstrip(".")
    kind = filetype.get_type(mime=media_type)
    if kind is not None:
        return kind.extension
    return FALLBACK_EXTENSION


def decode_body(body: str | bytes, is_base64_encoded: bool) -> bytes:
    if is_base64_encoded:
        # line-wrapped base64 is accepted
        if isinstance(body, str):
            body = "".join(body.split())
        else:
            body = b"".join(bytes(body).split())
        return base64.b64decode(body, validate=True)
    if isinstance(body, str):
        return body.encode("utf-8")
    return bytes(body)


def resolve_content_type(
    declared: str | None, content: bytes, sniffer: ContentSniffer
) -> tuple[str, str]:
    media_type = (declared or "").split(";", 1)[0].strip().lower()
    if media_type and media_type not in GENERIC_CONTENT_TYPES:
        return media_type, extension_for(media_type)

    sniffed = sniffer.detect(content)
    if sniffed is None:
        return FALLBACK_CONTENT_TYPE, FALLBACK_EXTENSION
    return sniffed.mime, sniffed.extension


def filename_from_disposition(disposition: str | None) -> str | None:
    if not disposition:
        return None
    match = _FILENAME_RE.search(disposition)
    if match is None:
        return None
    raw = match.group("quoted") if match.group("quoted") is not None else match.group("bare")
    return _sanitize_filename(raw) or None


def default_filename(extension: str) -> str:
    return f"upload-{int(time.time() * 1000)}.{extension}"


def validate_request(
    request: UploadRequest, config: UploadConfig, sniffer: ContentSniffer
) -> UploadDecision:
    if not request.body:
        return Rejected(status_code=400, message="Missing body")

    try:
        content = decode_body(request.body, request.is_base64_encoded)
    except (binascii.Error, ValueError):
        return Rejected(status_code=400, message="Malformed body")
    if not content:
        return Rejected(status_code=400, message="Missing body")
    if len(content) > config.max_upload_bytes:
        return Rejected(status_code=413, message="File too large")

    content_type, extension = resolve_content_type(
        request.header("content-type"), content, sniffer
    )
    filename = filename_from_disposition(request.header("content-disposition"))
    if filename is None:
        filename = default_filename(extension)

    username = request.header(USERNAME_HEADER)
    if username is None:
        return Rejected(status_code=400, message="Missing `username`")
    if username not in config.allowed_usernames:
        return Rejected(status_code=403, message="Invalid username")

    if content_type not in config.allowed_content_types:
        return Rejected(status_code=400, message=f"Content type {content_type} is not allowed")

    return Accepted(
        file=InboundFile(filename=filename, content_type=content_type, content=content),
        username=username,
    )
