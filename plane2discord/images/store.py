"""Content-addressed image re-hosting.

Each distinct image (by SHA-256 of its bytes, not by URL) is uploaded to the
object store once; later occurrences reuse the recorded URL.
"""

import asyncio
import hashlib
import uuid
from typing import TYPE_CHECKING

import aiohttp

from plane2discord.core.logging import get_logger
from plane2discord.shared.exceptions import DatabaseError, ImageFetchError

if TYPE_CHECKING:
    from plane2discord.core.database import DatabaseClient
    from plane2discord.images.object_store import S3ObjectStore

logger = get_logger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"

# Largest image accepted for re-hosting
MAX_IMAGE_BYTES = 10 * 1024 * 1024
READ_CHUNK_BYTES = 64 * 1024

MIME_EXTENSIONS: dict[str, str] = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "image/svg+xml": ".svg",
    "image/avif": ".avif",
}


def extension_for(content_type: str) -> str:
    """File extension for a MIME type, or "" when unrecognized.

    Parameters such as ``; charset=binary`` are ignored.
    """
    mime = content_type.split(";", 1)[0].strip().lower()
    return MIME_EXTENSIONS.get(mime, "")


def content_digest(data: bytes) -> str:
    """Hex SHA-256 of image bytes (the cache key)."""
    return hashlib.sha256(data).hexdigest()


class ImageStore:
    """Resolve remote image URLs to stable re-hosted URLs.

    Concurrent first sightings of the same image are not serialized: both
    may upload, and the cache keeps whichever URL was recorded first.

    Attributes:
        cache: Durable digest -> URL mapping
        object_store: Destination for uploads
        session: HTTP session used to download source images
    """

    def __init__(
        self,
        cache: "DatabaseClient",
        object_store: "S3ObjectStore",
        session: aiohttp.ClientSession,
    ) -> None:
        self.cache = cache
        self.object_store = object_store
        self.session = session

    async def _fetch(self, source_url: str) -> tuple[bytes, str]:
        """Download an image.

        Returns:
            Tuple of (bytes, content type)

        Raises:
            ImageFetchError: On non-2xx status, network error, empty body or an
                image larger than MAX_IMAGE_BYTES
        """
        try:
            async with self.session.get(source_url) as response:
                if not 200 <= response.status < 300:
                    raise ImageFetchError(
                        f"Image download failed (status {response.status}): {source_url}"
                    )
                if response.content_length and response.content_length > MAX_IMAGE_BYTES:
                    raise ImageFetchError(
                        f"Image too large ({response.content_length} bytes): {source_url}"
                    )

                chunks: list[bytes] = []
                size = 0
                async for chunk in response.content.iter_chunked(READ_CHUNK_BYTES):
                    size += len(chunk)
                    if size > MAX_IMAGE_BYTES:
                        raise ImageFetchError(f"Image exceeds {MAX_IMAGE_BYTES} bytes: {source_url}")
                    chunks.append(chunk)
                data = b"".join(chunks)
                content_type = response.headers.get("Content-Type") or DEFAULT_CONTENT_TYPE
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ImageFetchError(f"Image download failed: {e}") from e

        if not data:
            raise ImageFetchError(f"Image download returned no body: {source_url}")
        return data, content_type

    async def resolve(self, source_url: str) -> str:
        """Return the re-hosted URL for an image, uploading it if new.

        Args:
            source_url: Where the image currently lives

        Returns:
            Public URL in the object store

        Raises:
            ImageFetchError: If the source image cannot be downloaded
            ImageUploadError: If the upload fails (nothing is recorded)
        """
        logger.debug("image_store.fetch.started", source_url=source_url)
        data, content_type = await self._fetch(source_url)
        image_hash = content_digest(data)

        try:
            cached_url = await self.cache.get_image_url(image_hash)
        except DatabaseError as e:
            logger.warning("image_store.cache.lookup_failed", image_hash=image_hash[:12], error=str(e))
            cached_url = None

        if cached_url:
            logger.info("image_store.cache.hit", image_hash=image_hash[:12])
            return cached_url

        key = f"{uuid.uuid4()}{extension_for(content_type)}"
        hosted_url = await self.object_store.put(key, data, content_type)

        try:
            # A concurrent upload of the same bytes may have been recorded first
            return await self.cache.save_image_url(image_hash, hosted_url)
        except DatabaseError as e:
            logger.warning(
                "image_store.cache.record_failed",
                image_hash=image_hash[:12],
                hosted_url=hosted_url,
                error=str(e),
            )
            return hosted_url
