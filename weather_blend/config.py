"""
Configuration for Weather Blend.

Values come from the environment or a .env file (pydantic-settings, field
names matched case-insensitively, e.g. LEARNING_RATE). Coordinates are fixed
per deployment; the learning rate and the cycle cadences are the tunable
knobs.
"""

import logging
from datetime import timedelta
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# Stony Brook, NY
DEFAULT_LATITUDE = 40.9257
DEFAULT_LONGITUDE = -73.1410

DEFAULT_LEARNING_RATE = 0.01


class Settings(BaseSettings):
    """Runtime settings for the engine, the scheduler and the server."""

    latitude: float = Field(DEFAULT_LATITUDE, ge=-90, le=90, allow_inf_nan=False)
    longitude: float = Field(DEFAULT_LONGITUDE, ge=-180, le=180, allow_inf_nan=False)
    learning_rate: float = Field(DEFAULT_LEARNING_RATE, ge=0, allow_inf_nan=False)
    hourly_interval_seconds: int = Field(3600, gt=0)
    weekly_run_hour: int = Field(0, ge=0, le=23)  # local midnight
    weight_history_window_hours: float = Field(3.0, gt=0, allow_inf_nan=False)
    fetch_timeout_seconds: float = Field(15.0, gt=0, allow_inf_nan=False)

    # API keys
    owm_key: Optional[str] = None
    wb_key: Optional[str] = None
    nws_user_agent: str = "weather-blend (contact@example.com)"

    # Server
    host: str = "0.0.0.0"
    port: int = Field(3000, gt=0, le=65535)
    run_scheduler: bool = True
    log_level: str = "INFO"

    # Daily overview published with the forecast (static until an
    # observation source is wired in)
    overview_lowest_temp: float = Field(18.0, allow_inf_nan=False)
    overview_highest_temp: float = Field(28.0, allow_inf_nan=False)
    overview_total_precip: float = Field(5.0, ge=0, allow_inf_nan=False)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_ignore_empty=True,
        extra="ignore",
    )

    @property
    def weight_history_window(self) -> timedelta:
        return timedelta(hours=self.weight_history_window_hours)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the environment and log the effective values."""
        settings = cls()
        logger.info(f"[Settings] Location: ({settings.latitude}, {settings.longitude})")
        logger.info(f"[Settings] Learning rate: {settings.learning_rate}, "
                    f"hourly every {settings.hourly_interval_seconds}s, "
                    f"weekly at {settings.weekly_run_hour:02d}:00")
        if not settings.owm_key:
            logger.warning("[Settings] OWM_KEY not set - OpenWeatherMap will be unavailable")
        if not settings.wb_key:
            logger.warning("[Settings] WB_KEY not set - Weatherbit will be unavailable")
        return settings
