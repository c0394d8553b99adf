from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator


class UploadRequest(BaseModel):
    """Parsed inbound request as handed over by the dispatcher."""

    headers: dict[str, str] = Field(default_factory=dict)
    body: str | bytes | None = None
    is_base64_encoded: bool = False

    @field_validator("headers", mode="before")
    @classmethod
    def _lower_case_headers(cls, value: Any) -> dict[str, str]:
        if value is None:
            return {}
        return {str(name).lower(): val for name, val in dict(value).items() if val is not None}

    def header(self, name: str) -> str | None:
        return self.headers.get(name.lower())


class InboundFile(BaseModel):
    filename: str = Field(..., min_length=1)
    content_type: str
    content: bytes = Field(..., min_length=1)


class Accepted(BaseModel):
    file: InboundFile
    username: str


class Rejected(BaseModel):
    status_code: Literal[400, 403, 413]
    message: str


UploadDecision = Accepted | Rejected


class UploadResponse(BaseModel):
    status_code: int
    body: str
    headers: dict[str, str] | None = None

    @classmethod
    def error(cls, status_code: int, message: str) -> "UploadResponse":
        return cls(status_code=status_code, body=f"ERR: {message}")

    @classmethod
    def created(cls, url: str) -> "UploadResponse":
        return cls(status_code=201, body=f"SUCCESS: {url}", headers={"location": url})

    def to_lambda(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"statusCode": self.status_code, "body": self.body}
        if self.headers:
            payload["headers"] = dict(self.headers)
        return payload
