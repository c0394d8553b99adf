from app.schemas.upload import (
    Accepted,
    InboundFile,
    Rejected,
    UploadDecision,
    UploadRequest,
    UploadResponse,
)

__all__ = [
    "UploadRequest",
    "InboundFile",
    "Accepted",
    "Rejected",
    "UploadDecision",
    "UploadResponse",
]
