"""
Object storage client (S3-compatible, e.g. Cloudflare R2) using boto3.

Public URL layout:
    <S3_PUBLIC_BASE_URL>/<key>
Key layout:
    <kind>/<YYYY>/<MM>/<uuid>-<filename>

boto3 is blocking, so every call runs in a worker thread.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .settings import Settings

logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    pass


def _normalize_base_url(base_url: str) -> str:
    return (base_url or "").strip().rstrip("/")


class ObjectStorage:
    def __init__(self, settings: Settings, *, client: Any | None = None) -> None:
        self._settings = settings
        self._client = client

    @property
    def bucket(self) -> str:
        return self._settings.s3_bucket

    @property
    def public_base_url(self) -> str:
        return _normalize_base_url(self._settings.s3_public_base_url)

    def _build_client(self) -> Any:
        settings = self._settings
        if not settings.s3_bucket or not settings.s3_endpoint:
            raise StorageError("Object storage is not configured (S3_BUCKET / S3_ENDPOINT).")
        return boto3.client(
            "s3",
            region_name=settings.s3_region,
            endpoint_url=settings.s3_endpoint,
            aws_access_key_id=settings.s3_access_key_id or None,
            aws_secret_access_key=settings.s3_secret_access_key or None,
            config=Config(
                connect_timeout=settings.s3_connect_timeout_s,
                read_timeout=settings.s3_read_timeout_s,
                retries={"max_attempts": 1},
            ),
        )

    def ensure_ready(self) -> Any:
        if self._client is None:
            self._client = self._build_client()
        return self._client

    def build_key(self, kind: str, filename: str, *, now: datetime | None = None) -> str:
        d = now or datetime.now(timezone.utc)
        return f"{kind}/{d.year:04d}/{d.month:02d}/{uuid4()}-{filename}"

    def public_url(self, key: str) -> str:
        return f"{self.public_base_url}/{key.lstrip('/')}"

    def key_from_public_url(self, url: str | None) -> str | None:
        """
        Return the object key for a URL we issued, or None for foreign URLs.
        """
        base = self.public_base_url
        raw = (url or "").strip()
        if not base or not raw.startswith(base + "/"):
            return None
        key = raw[len(base):].lstrip("/")
        return key or None

    async def put(
        self,
        key: str,
        body: bytes,
        *,
        content_type: str,
        cache_control: str | None = None,
    ) -> str:
        params: dict[str, Any] = {
            "Bucket": self.bucket,
            "Key": key,
            "Body": body,
            "ContentType": content_type,
        }
        if cache_control:
            params["CacheControl"] = cache_control

        client = self.ensure_ready()
        try:
            await asyncio.to_thread(client.put_object, **params)
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"put_object failed for key={key}: {exc}") from exc

        logger.info("object_stored bucket=%s key=%s bytes=%s", self.bucket, key, len(body))
        return self.public_url(key)

    async def delete(self, key: str) -> None:
        client = self.ensure_ready()
        try:
            await asyncio.to_thread(client.delete_object, Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"delete_object failed for key={key}: {exc}") from exc

        logger.info("object_deleted bucket=%s key=%s", self.bucket, key)
