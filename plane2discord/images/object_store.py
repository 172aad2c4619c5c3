"""S3-compatible object store used to re-host images."""

from contextlib import AsyncExitStack
from types import TracebackType
from typing import Any

import aioboto3
from aiobotocore.config import AioConfig
from botocore.exceptions import BotoCoreError, ClientError

from plane2discord.core.logging import get_logger
from plane2discord.shared.exceptions import ImageUploadError

logger = get_logger(__name__)


class S3ObjectStore:
    """Public-read object uploads to an S3-compatible bucket.

    Uses path-style addressing, so the public URL of an object is always
    ``{endpoint}/{bucket}/{key}``.
    """

    def __init__(
        self,
        bucket: str,
        endpoint: str,
        region: str,
        access_key_id: str,
        secret_access_key: str,
        timeout_seconds: float = 15.0,
    ) -> None:
        self.bucket = bucket
        self.endpoint = endpoint.rstrip("/")
        self.region = region
        self._access_key_id = access_key_id
        self._secret_access_key = secret_access_key
        self._config = AioConfig(
            s3={"addressing_style": "path"},
            connect_timeout=timeout_seconds,
            read_timeout=timeout_seconds,
            retries={"max_attempts": 1},
        )
        self._stack: AsyncExitStack | None = None
        self.client: Any = None

    async def __aenter__(self) -> "S3ObjectStore":
        """Open the S3 client for the lifetime of the process."""
        self._stack = AsyncExitStack()
        session = aioboto3.Session()
        self.client = await self._stack.enter_async_context(
            session.client(
                "s3",
                region_name=self.region,
                endpoint_url=self.endpoint,
                aws_access_key_id=self._access_key_id,
                aws_secret_access_key=self._secret_access_key,
                config=self._config,
            )
        )
        logger.info("object_store.client.opened", bucket=self.bucket, endpoint=self.endpoint)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._stack:
            await self._stack.aclose()
            self._stack = None
            self.client = None
            logger.info("object_store.client.closed")

    def public_url(self, key: str) -> str:
        """Public URL of an object in the bucket."""
        return f"{self.endpoint}/{self.bucket}/{key}"

    async def put(self, key: str, data: bytes, content_type: str) -> str:
        """Upload bytes as a public-read object.

        Args:
            key: Object key
            data: Object body
            content_type: MIME type to store with the object

        Returns:
            Public URL of the uploaded object

        Raises:
            ImageUploadError: If the store rejects the write or is unreachable
        """
        if self.client is None:
            raise ImageUploadError("Object store client not initialized")

        try:
            await self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
                ContentLength=len(data),
                ACL="public-read",
            )
        except (ClientError, BotoCoreError, OSError) as e:
            logger.error("object_store.put.failed", key=key, error=str(e))
            raise ImageUploadError(f"Failed to upload {key}: {e}") from e

        logger.info("object_store.put.success", key=key, size=len(data))
        return self.public_url(key)
