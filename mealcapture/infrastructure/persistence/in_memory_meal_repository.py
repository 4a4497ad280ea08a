"""In-memory meal repository implementation.

Provides an in-memory implementation of IMealRepository port for
local runs and tests. Uses a dictionary for storage.
"""

import uuid
from typing import Dict, List, Optional

from mealcapture.domain.meal.models import MealEntry


class InMemoryMealRepository:
    """
    In-memory implementation of IMealRepository port.

    Entries are frozen models, so they are stored as-is.

    Example:
        >>> repository = InMemoryMealRepository()
        >>> meal_id = await repository.insert(entry)
        >>> assert repository.get(meal_id) == entry
    """

    def __init__(self) -> None:
        """Initialize repository with empty storage."""
        self._storage: Dict[str, MealEntry] = {}

    async def insert(self, entry: MealEntry) -> str:
        meal_id = str(uuid.uuid4())
        self._storage[meal_id] = entry
        return meal_id

    def get(self, meal_id: str) -> Optional[MealEntry]:
        return self._storage.get(meal_id)

    def list_by_user(self, user_id: str) -> List[MealEntry]:
        """Entries of one user, in insertion order."""
        return [entry for entry in self._storage.values() if entry.user_id == user_id]

    def count(self) -> int:
        return len(self._storage)

    def clear(self) -> None:
        """Clear all stored meals (testing utility)."""
        self._storage.clear()
