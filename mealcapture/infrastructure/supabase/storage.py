"""
Supabase Storage adapter for meal photos.

Images go to `{owner_id}/{timestamp}_{random}.{ext}` in the
configured bucket (default `meal-images`); the public URL is
returned for the meal row.
"""

import asyncio
import uuid
from datetime import datetime
from typing import Callable, Optional

import structlog
from supabase import Client

from mealcapture.domain.shared.errors import UploadError

logger = structlog.get_logger(__name__)

DEFAULT_BUCKET = "meal-images"

_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}


def generate_unique_filename(owner_id: str, content_type: str, now: Optional[datetime] = None) -> str:
    """Generate a unique object path inside the owner's folder."""
    timestamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    random_str = uuid.uuid4().hex[:8]
    ext = _EXTENSIONS.get(content_type.lower(), "jpg")
    return f"{owner_id}/{timestamp}_{random_str}.{ext}"


class SupabaseImageStorage:
    """
    IImageStorage backed by a Supabase Storage bucket.

    The supabase client is synchronous; calls run in the default executor.

    Example:
        >>> storage = SupabaseImageStorage(lambda: get_supabase_client(url, key))
        >>> url = await storage.upload("user_123", jpeg_bytes, "image/jpeg")
    """

    def __init__(self, client_factory: Callable[[], Client], bucket: str = DEFAULT_BUCKET) -> None:
        self._client_factory = client_factory
        self._client: Optional[Client] = None
        self.bucket = bucket

    async def upload(self, owner_id: str, data: bytes, content_type: str) -> str:
        if not owner_id.strip():
            raise UploadError("Owner id is required for upload")
        path = generate_unique_filename(owner_id, content_type)
        loop = asyncio.get_running_loop()
        try:
            public_url = await loop.run_in_executor(None, self._upload_sync, path, data, content_type)
        except Exception as e:
            logger.error("Image upload failed", path=path, bucket=self.bucket, error=str(e))
            raise UploadError(f"Upload failed: {e}") from e

        logger.info(
            "Image uploaded successfully",
            path=path,
            bucket=self.bucket,
            size=len(data),
            url=public_url,
        )
        return public_url

    def _upload_sync(self, path: str, data: bytes, content_type: str) -> str:
        if self._client is None:
            self._client = self._client_factory()
        storage = self._client.storage.from_(self.bucket)
        storage.upload(path=path, file=data, file_options={"content-type": content_type})
        return storage.get_public_url(path)
