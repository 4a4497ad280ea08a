"""
Supabase meal repository.

Writes meal rows to the `meals` table (configurable) with the
columns user_id, meal_type, calories, protein, carbs, fats,
notes, image_url.
"""

import asyncio
from typing import Any, Callable, Optional

import structlog
from supabase import Client

from mealcapture.domain.meal.models import MealEntry
from mealcapture.domain.shared.errors import PersistError

logger = structlog.get_logger(__name__)

DEFAULT_TABLE = "meals"


class SupabaseMealRepository:
    """IMealRepository backed by a Supabase table."""

    def __init__(self, client_factory: Callable[[], Client], table: str = DEFAULT_TABLE) -> None:
        self._client_factory = client_factory
        self._client: Optional[Client] = None
        self.table = table

    async def insert(self, entry: MealEntry) -> str:
        row = entry.to_row()
        loop = asyncio.get_running_loop()
        try:
            data = await loop.run_in_executor(None, self._insert_sync, row)
        except Exception as e:
            logger.error("Meal insert failed", table=self.table, user_id=entry.user_id, error=str(e))
            raise PersistError(f"Insert into {self.table} failed: {e}") from e

        if not data:
            raise PersistError(f"Insert into {self.table} returned no row")

        meal_id = str(data[0].get("id", ""))
        logger.info("Meal row inserted", table=self.table, meal_id=meal_id, user_id=entry.user_id)
        return meal_id

    def _insert_sync(self, row: dict[str, Any]) -> list[dict[str, Any]]:
        if self._client is None:
            self._client = self._client_factory()
        response = self._client.table(self.table).insert(row).execute()
        return list(response.data or [])
