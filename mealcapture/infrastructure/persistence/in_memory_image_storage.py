"""In-memory image storage.

IImageStorage for local runs and tests, keyed by the same object
paths the Supabase adapter generates.
"""

from typing import Dict, Optional

from mealcapture.domain.shared.errors import UploadError
from mealcapture.infrastructure.supabase.storage import generate_unique_filename


class InMemoryImageStorage:
    """
    Dictionary-backed image storage.

    Example:
        >>> storage = InMemoryImageStorage()
        >>> url = await storage.upload("user_123", jpeg_bytes, "image/jpeg")
        >>> assert url.startswith("memory://meal-images/user_123/")
    """

    def __init__(self, bucket: str = "meal-images") -> None:
        self.bucket = bucket
        self._objects: Dict[str, bytes] = {}

    async def upload(self, owner_id: str, data: bytes, content_type: str) -> str:
        if not owner_id.strip():
            raise UploadError("Owner id is required for upload")
        path = generate_unique_filename(owner_id, content_type)
        self._objects[path] = bytes(data)
        return f"memory://{self.bucket}/{path}"

    def get(self, url: str) -> Optional[bytes]:
        prefix = f"memory://{self.bucket}/"
        if not url.startswith(prefix):
            return None
        return self._objects.get(url[len(prefix):])

    def count(self) -> int:
        return len(self._objects)
