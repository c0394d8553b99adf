import logging
import secrets

from app.services.storage import BlobStore

logger = logging.getLogger(__name__)

DEFAULT_ATTEMPTS = 3


class KeyAllocationError(RuntimeError):
    """Raised when no free storage key could be found."""


def filename_with_random_suffix(filename: str) -> str:
    """Return ``<stem>-<8 hex>.<ext>``, or ``<stem>-<8 hex>`` without an extension."""
    suffix = secrets.token_hex(4)
    stem, dot, ext = filename.rpartition(".")
    if not dot:
        return f"{filename}-{suffix}"
    if not ext:
        return f"{stem}-{suffix}"
    return f"{stem}-{suffix}.{ext}"


async def allocate_unique_key(
    filename: str,
    bucket: str,
    storage: BlobStore,
    attempts: int = DEFAULT_ATTEMPTS,
) -> str:
    # Probe and write are not atomic; a concurrent writer may still take the key.
    for attempt in range(1, attempts + 1):
        candidate = filename_with_random_suffix(filename)
        if not await storage.object_exists(bucket, candidate):
            return candidate
        logger.debug(
            "Key %s already taken in %s (attempt %d/%d)", candidate, bucket, attempt, attempts
        )
    raise KeyAllocationError("Could not generate a unique filename")
