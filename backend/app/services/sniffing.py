import logging
from typing import NamedTuple, Protocol

import filetype

logger = logging.getLogger(__name__)


class SniffResult(NamedTuple):
    mime: str
    extension: str


class ContentSniffer(Protocol):
    def detect(self, data: bytes) -> SniffResult | None: ...


class FiletypeSniffer:
    """Infers the MIME type from magic numbers in the leading bytes."""

    def detect(self, data: bytes) -> SniffResult | None:
        if not data:
            return None
        try:
            kind = filetype.guess(bytes(data))
        except (TypeError, ValueError, IndexError):
            logger.debug("Content sniffing failed on %d bytes", len(data), exc_info=True)
            return None
        if kind is None:
            return None
        return SniffResult(mime=kind.mime, extension=kind.extension)


_sniffer: ContentSniffer | None = None


def get_content_sniffer() -> ContentSniffer:
    global _sniffer
    if _sniffer is None:
        _sniffer = FiletypeSniffer()
    return _sniffer
