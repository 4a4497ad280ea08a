"""
Ports (Interfaces) for meal submission collaborators.

Storage of images and persistence of meal rows live outside the
capture pipeline; only these contracts are required of them.
"""

from typing import Protocol, runtime_checkable

from mealcapture.domain.meal.models import MealEntry


@runtime_checkable
class IImageStorage(Protocol):
    """Port for object storage of meal photos."""

    async def upload(self, owner_id: str, data: bytes, content_type: str) -> str:
        """
        Store image bytes under the owner's folder.

        Returns:
            Public URL of the stored image

        Raises:
            UploadError: If the upload fails
        """
        ...


@runtime_checkable
class IMealRepository(Protocol):
    """Port for meal persistence."""

    async def insert(self, entry: MealEntry) -> str:
        """
        Write one meal row.

        Returns:
            Identifier of the stored row

        Raises:
            PersistError: If the write fails
        """
        ...
