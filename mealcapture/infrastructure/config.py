"""Configuration utilities for infrastructure layer.

Values come from the environment, optionally seeded from a `.env`
file with python-dotenv.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from mealcapture.infrastructure.openfoodfacts.api_client import DEFAULT_BASE_URL


def _get_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e


@dataclass(frozen=True)
class CaptureSettings:
    """
    Runtime settings for the capture pipeline.

    Example .env:
        OPENAI_API_KEY=sk-...
        DETECTION_API_URL=https://detect.roboflow.com/food-detection/1
        DETECTION_API_KEY=rf_...
        SUPABASE_URL=https://xxx.supabase.co
        SUPABASE_KEY=...
    """

    openai_api_key: Optional[str] = None
    openai_vision_model: str = "gpt-4o-mini"
    detection_api_url: Optional[str] = None
    detection_api_key: Optional[str] = None
    off_base_url: str = DEFAULT_BASE_URL
    http_timeout_seconds: float = 10.0
    http_max_retries: int = 3
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    supabase_bucket: str = "meal-images"
    supabase_meals_table: str = "meals"
    camera_index_environment: int = 0
    camera_index_user: int = 1
    detection_confidence_threshold: float = 0.5
    log_level: str = "INFO"
    log_format: str = "console"

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "CaptureSettings":
        """
        Read settings from the environment.

        Existing environment variables take precedence over `.env`.

        Raises:
            ValueError: If a numeric variable does not parse
        """
        load_dotenv(dotenv_path)
        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            openai_vision_model=os.getenv("OPENAI_VISION_MODEL", "gpt-4o-mini"),
            detection_api_url=os.getenv("DETECTION_API_URL") or None,
            detection_api_key=os.getenv("DETECTION_API_KEY") or None,
            off_base_url=os.getenv("OFF_BASE_URL", DEFAULT_BASE_URL),
            http_timeout_seconds=_get_float("HTTP_TIMEOUT_SECONDS", 10.0),
            http_max_retries=_get_int("HTTP_MAX_RETRIES", 3),
            supabase_url=os.getenv("SUPABASE_URL") or None,
            supabase_key=os.getenv("SUPABASE_KEY") or None,
            supabase_bucket=os.getenv("SUPABASE_BUCKET", "meal-images"),
            supabase_meals_table=os.getenv("SUPABASE_MEALS_TABLE", "meals"),
            camera_index_environment=_get_int("CAMERA_INDEX_ENVIRONMENT", 0),
            camera_index_user=_get_int("CAMERA_INDEX_USER", 1),
            detection_confidence_threshold=_get_float("DETECTION_CONFIDENCE_THRESHOLD", 0.5),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "console"),
        )

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)
