"""Object storage for admin product images.

``ObjectStorage`` is the port; ``S3Storage`` talks to AWS S3 through
boto3 and ``InMemoryStorage`` keeps objects in a dict for development
and tests.  ``get_storage()`` / ``set_storage()`` swap the active
implementation.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple

import boto3
import structlog
from botocore.exceptions import BotoCoreError, ClientError
from django.conf import settings

from modules.core.exceptions import UpstreamError
from modules.products.exceptions import InvalidUpload

logger = structlog.get_logger(__name__)

ALLOWED_CONTENT_TYPES = frozenset(
    {"image/jpeg", "image/jpg", "image/png", "image/webp", "image/gif"}
)


def validate_image(name: str, content_type: str, size: int, max_bytes: int) -> None:
    if content_type not in ALLOWED_CONTENT_TYPES:
        raise InvalidUpload(
            "Only JPEG, PNG, WebP and GIF images are allowed.",
            details=[{"attr": "image", "detail": content_type}],
        )
    if size > max_bytes:
        raise InvalidUpload(
            f"Image exceeds the {max_bytes // (1024 * 1024)}MB limit.",
            details=[{"attr": "image", "detail": name}],
        )


def _object_key(folder: str, name: str) -> str:
    safe_name = name.replace(" ", "-")
    return f"{folder.strip('/')}/{int(time.time() * 1000)}-{safe_name}"


class ObjectStorage(ABC):
    """Abstract object storage interface."""

    @abstractmethod
    def upload(self, data: bytes, name: str, content_type: str, folder: str = "products") -> str:
        """Store ``data`` and return its public URL."""

    @abstractmethod
    def delete(self, url: str) -> None:
        """Remove the object behind a public URL."""


class S3Storage(ObjectStorage):
    def __init__(
        self,
        bucket: str,
        region: str,
        public_base_url: str = "",
        client=None,
    ) -> None:
        self.bucket = bucket
        self.region = region
        self.public_base_url = (
            public_base_url.rstrip("/")
            or f"https://{bucket}.s3.{region}.amazonaws.com"
        )
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client("s3", region_name=self.region)
        return self._client

    def _key_from_url(self, url: str) -> str:
        prefix = f"{self.public_base_url}/"
        if not url.startswith(prefix):
            raise InvalidUpload("URL does not belong to the product image bucket.")
        return url[len(prefix):]

    def upload(self, data: bytes, name: str, content_type: str, folder: str = "products") -> str:
        key = _object_key(folder, name)
        try:
            self.client.put_object(
                Bucket=self.bucket, Key=key, Body=data, ContentType=content_type
            )
        except (BotoCoreError, ClientError) as exc:
            logger.error("storage.upload_failed", key=key, error=str(exc))
            raise UpstreamError("Failed to upload image.") from exc
        logger.info("storage.uploaded", key=key, size=len(data))
        return f"{self.public_base_url}/{key}"

    def delete(self, url: str) -> None:
        key = self._key_from_url(url)
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as exc:
            logger.error("storage.delete_failed", key=key, error=str(exc))
            raise UpstreamError("Failed to delete image.") from exc
        logger.info("storage.deleted", key=key)


class InMemoryStorage(ObjectStorage):
    """Keeps uploaded objects in memory; URLs use the ``memory://`` scheme."""

    base_url = "memory://storage"

    def __init__(self) -> None:
        self.objects: Dict[str, Tuple[bytes, str]] = {}

    def upload(self, data: bytes, name: str, content_type: str, folder: str = "products") -> str:
        key = _object_key(folder, name)
        while key in self.objects:
            key = f"{key}-1"
        self.objects[key] = (data, content_type)
        return f"{self.base_url}/{key}"

    def delete(self, url: str) -> None:
        key = url.removeprefix(f"{self.base_url}/")
        if self.objects.pop(key, None) is None:
            raise InvalidUpload("Image not found in storage.")


_current_storage: Optional[ObjectStorage] = None


def get_storage() -> ObjectStorage:
    """Return the active storage, building it from settings on first use."""
    global _current_storage
    if _current_storage is None:
        if settings.OBJECT_STORAGE_KIND == "memory":
            _current_storage = InMemoryStorage()
        else:
            _current_storage = S3Storage(
                bucket=settings.S3_BUCKET_NAME,
                region=settings.AWS_REGION,
                public_base_url=settings.S3_PUBLIC_BASE_URL,
            )
    return _current_storage


def set_storage(storage: ObjectStorage) -> None:
    global _current_storage
    _current_storage = storage


def reset_storage() -> None:
    global _current_storage
    _current_storage = None
