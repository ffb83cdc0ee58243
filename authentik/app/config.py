from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import AnyUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8-sig",
        case_sensitive=False,
        extra="ignore",
    )

    SUPABASE_URL: AnyUrl
    SUPABASE_SERVICE_ROLE_KEY: str
    APP_ENV: str = "local"
    FRONTEND_CORS_ORIGINS: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000"],
    )

    GOOGLE_PLACES_API_KEY: str = ""
    PLACES_SEARCH_RADIUS_METERS: float = 5000.0

    GEMINI_API_KEY: Optional[str] = None
    GEMINI_MODEL: str = "gemini-2.5-flash"
    GEMINI_IMAGE_MODEL: str = "gemini-2.5-flash-image"

    YOUTUBE_API_KEY: Optional[str] = None
    TRANSCRIPT_SERVICE_URL: Optional[str] = None
    TRANSCRIPT_TIMEOUT_SECONDS: float = 30.0

    CACHE_MEMORY_CAPACITY: int = 500
    CACHE_SEARCH_TTL_SECONDS: int = 7 * 24 * 3600
    CACHE_DETAILS_TTL_SECONDS: int = 3 * 24 * 3600
    CACHE_TRANSCRIPT_TTL_SECONDS: int = 7 * 24 * 3600
    CACHE_TRANSCRIPT_MISS_TTL_SECONDS: int = 10 * 60
    CACHE_DURABLE_ENABLED: bool = True

    RETRY_MAX_ATTEMPTS: int = 5
    RETRY_INITIAL_DELAY_SECONDS: float = 2.0
    RETRY_MAX_DELAY_SECONDS: float = 60.0

    PHOTO_MAX_PER_PLACE: int = 3
    PHOTO_VISION_ENABLED: bool = True
    PHOTO_VISION_DELAY_SECONDS: float = 2.0
    PHOTO_ENHANCE: bool = False

    DEFAULT_CREATOR_NAME: str = "Community Suggestion"
    HTTP_TIMEOUT_SECONDS: float = 30.0


@lru_cache
def get_settings() -> Settings:
    return Settings()
