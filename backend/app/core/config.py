from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, HttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict

MAX_UPLOAD_BYTES = 50 * 1024 * 1024

DEFAULT_ALLOWED_CONTENT_TYPES = frozenset(
    {
        # documents
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "application/vnd.ms-excel",
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        "application/vnd.ms-powerpoint",
        "application/vnd.openxmlformats-officedocument.presentationml.presentation",
        "application/vnd.oasis.opendocument.text",
        "application/rtf",
        "application/epub+zip",
        # audio
        "audio/mpeg",
        "audio/mp4",
        "audio/x-m4a",
        "audio/aac",
        "audio/ogg",
        "audio/wav",
        "audio/x-wav",
        "audio/flac",
        "audio/x-flac",
        "audio/webm",
        # images
        "image/jpeg",
        "image/png",
        "image/gif",
        "image/webp",
        "image/heic",
        "image/heif",
        "image/avif",
        "image/bmp",
        "image/tiff",
        "image/svg+xml",
        # video
        "video/mp4",
        "video/quicktime",
        "video/webm",
        "video/x-matroska",
        "video/mpeg",
        # text
        "text/plain",
        "text/markdown",
        "text/csv",
    }
)


def _split_csv(value: str) -> frozenset[str]:
    return frozenset(item.strip() for item in value.split(",") if item.strip())


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        protected_namespaces=(),
    )

    env: Literal["local", "prod", "test"] = Field(default="local", alias="ENV")
    debug: bool = Field(default=True, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    username_allow_list: str = Field(default="", alias="USERNAME_ALLOW_LIST")
    cdn_domain: str | None = Field(default=None, alias="CDN_DOMAIN")
    allowed_content_types: str = Field(default="", alias="ALLOWED_CONTENT_TYPES")
    max_upload_bytes: int = Field(default=MAX_UPLOAD_BYTES, alias="MAX_UPLOAD_BYTES")
    key_allocation_attempts: int = Field(default=3, ge=1, alias="KEY_ALLOCATION_ATTEMPTS")

    storage_backend: Literal["s3", "local"] = Field(default="s3", alias="STORAGE_BACKEND")
    local_storage_dir: str = Field(default="./storage", alias="LOCAL_STORAGE_DIR")

    s3_endpoint: HttpUrl | None = Field(default=None, alias="S3_ENDPOINT_URL")
    s3_access_key: str | None = Field(default=None, alias="S3_ACCESS_KEY")
    s3_secret_key: str | None = Field(default=None, alias="S3_SECRET_KEY")
    s3_region: str | None = Field(default=None, alias="S3_REGION")
    s3_bucket: str = Field(default="soju-uploads", alias="S3_BUCKET")


class UploadConfig(BaseModel):
    """Policy and placement settings handed to the upload pipeline."""

    model_config = ConfigDict(frozen=True)

    allowed_usernames: frozenset[str] = frozenset()
    allowed_content_types: frozenset[str] = DEFAULT_ALLOWED_CONTENT_TYPES
    max_upload_bytes: int = MAX_UPLOAD_BYTES
    bucket: str
    cdn_domain: str | None = None
    key_attempts: int = 3

    @classmethod
    def from_settings(cls, settings: Settings) -> "UploadConfig":
        content_types = _split_csv(settings.allowed_content_types.lower())
        return cls(
            allowed_usernames=_split_csv(settings.username_allow_list),
            allowed_content_types=content_types or DEFAULT_ALLOWED_CONTENT_TYPES,
            max_upload_bytes=settings.max_upload_bytes,
            bucket=settings.s3_bucket,
            cdn_domain=settings.cdn_domain or None,
            key_attempts=settings.key_allocation_attempts,
        )

    @property
    def public_domain(self) -> str:
        return self.cdn_domain or f"{self.bucket}.s3.amazonaws.com"

    def public_url(self, key: str) -> str:
        return f"https://{self.public_domain}/{key}"


@lru_cache
def get_settings() -> Settings:
    return Settings()
