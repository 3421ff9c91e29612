"""
Object storage for uploaded documents and images.

The API never proxies file bytes: browsers upload and download directly
against S3 using presigned URLs.
"""
from __future__ import annotations

import re
import time
from dataclasses import dataclass, field
from typing import Optional, Protocol

import boto3
from botocore.config import Config

from coalition.core.config import settings

ALLOWED_EXTENSIONS = {"pdf", "doc", "docx", "jpg", "jpeg", "png", "gif", "txt", "webp"}
IMAGE_EXTENSIONS = {"jpg", "jpeg", "png", "gif", "webp"}
ALLOWED_MIME_TYPES = {
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/gif",
    "image/webp",
    "text/plain",
}
ALLOWED_FOLDERS = ("announcements", "blogs", "alerts", "emails", "pages")
PUBLIC_DOWNLOAD_PREFIXES = ("announcements/", "blogs/", "alerts/")
MAX_FILE_NAME_LENGTH = 255

UPLOAD_URL_EXPIRY = 600
DOWNLOAD_URL_EXPIRY = 600
PUBLIC_IMAGE_EXPIRY = 60 * 60 * 24

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9._-]")


class UploadValidationError(ValueError):
    """The requested upload is not allowed."""


class StorageClient(Protocol):
    """Defines the operations the API needs from object storage."""

    def presign_get(self, key: str, expires_in: int = DOWNLOAD_URL_EXPIRY) -> str:
        ...

    def presign_put(self, key: str, content_type: str, expires_in: int = UPLOAD_URL_EXPIRY) -> str:
        ...

    def delete(self, key: str) -> None:
        ...


@dataclass
class InMemoryStorageClient:
    """Test double for storage interactions."""

    base_url: str = "https://storage.example.com"
    deleted: list = field(default_factory=list)

    def presign_get(self, key: str, expires_in: int = DOWNLOAD_URL_EXPIRY) -> str:
        return f"{self.base_url}/{key}?op=get&expires={expires_in}"

    def presign_put(self, key: str, content_type: str, expires_in: int = UPLOAD_URL_EXPIRY) -> str:
        return f"{self.base_url}/{key}?op=put&type={content_type}&expires={expires_in}"

    def delete(self, key: str) -> None:
        self.deleted.append(key)


@dataclass
class S3StorageClient:
    """AWS S3 client for a single bucket."""

    bucket: str
    region: str
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None

    def __post_init__(self):
        self._client = boto3.client(
            "s3",
            region_name=self.region,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            config=Config(signature_version="s3v4"),
        )

    def presign_get(self, key: str, expires_in: int = DOWNLOAD_URL_EXPIRY) -> str:
        return self._client.generate_presigned_url(
            ClientMethod="get_object",
            Params={"Bucket": self.bucket, "Key": key},
            ExpiresIn=expires_in,
        )

    def presign_put(self, key: str, content_type: str, expires_in: int = UPLOAD_URL_EXPIRY) -> str:
        return self._client.generate_presigned_url(
            ClientMethod="put_object",
            Params={"Bucket": self.bucket, "Key": key, "ContentType": content_type},
            ExpiresIn=expires_in,
        )

    def delete(self, key: str) -> None:
        self._client.delete_object(Bucket=self.bucket, Key=key)


_storage: Optional[StorageClient] = None


def get_storage() -> Optional[StorageClient]:
    """Return the configured storage client, or None when no bucket is set."""
    global _storage
    if _storage is None and settings.AWS_S3_BUCKET_NAME:
        _storage = S3StorageClient(
            bucket=settings.AWS_S3_BUCKET_NAME,
            region=settings.AWS_REGION,
            access_key_id=settings.AWS_ACCESS_KEY_ID,
            secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
        )
    return _storage


def set_storage(client: Optional[StorageClient]) -> None:
    global _storage
    _storage = client


def file_extension(name: str) -> str:
    return name.rsplit(".", 1)[-1].lower() if "." in name else ""


def sanitize_file_name(name: str) -> str:
    return _UNSAFE_CHARS.sub("_", name)


def is_allowed_folder(folder: str) -> bool:
    """Known top-level folders and any path beneath them."""
    folder = folder.strip("/")
    if ".." in folder.split("/"):
        return False
    return any(folder == root or folder.startswith(f"{root}/") for root in ALLOWED_FOLDERS)


def build_upload_key(
    file_name: str,
    file_type: str,
    folder: Optional[str] = None,
    resource_id: Optional[str] = None,
    now_ms: Optional[int] = None
) -> str:
    """Validate an upload request and return its object key."""
    if not file_name or not file_type:
        raise UploadValidationError("file_name and file_type are required")
    if len(file_name) > MAX_FILE_NAME_LENGTH:
        raise UploadValidationError("File name is too long")
    if file_extension(file_name) not in ALLOWED_EXTENSIONS:
        raise UploadValidationError(
            f"File type not allowed. Allowed extensions: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
        )
    if file_type not in ALLOWED_MIME_TYPES:
        raise UploadValidationError("Invalid file type")

    if folder:
        if not is_allowed_folder(folder):
            raise UploadValidationError(f"Invalid folder. Allowed: {', '.join(ALLOWED_FOLDERS)}")
        prefix = folder.strip("/")
    else:
        prefix = "uploads"
    if resource_id:
        prefix = f"{prefix}/{sanitize_file_name(resource_id)}"

    timestamp = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"{prefix}/{timestamp}-{sanitize_file_name(file_name)}"


def is_image_key(key: str) -> bool:
    return file_extension(key) in IMAGE_EXTENSIONS


def is_public_download_key(key: str) -> bool:
    return key.startswith(PUBLIC_DOWNLOAD_PREFIXES) and ".." not in key
