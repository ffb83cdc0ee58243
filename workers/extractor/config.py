# workers/extractor/config.py
"""
Configuration for the extraction CLI.
"""
from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass
class WorkerConfig:
    """Configuration for the extraction CLI."""

    # Pacing between videos in batch mode
    batch_delay_seconds: float = float(os.getenv("BATCH_DELAY_SECONDS", "5"))

    default_creator_name: str = os.getenv("DEFAULT_CREATOR_NAME", "Community Suggestion")

    # Supabase (inherited from env)
    supabase_url: str = os.getenv("SUPABASE_URL", "")
    supabase_key: str = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")

    # External APIs
    places_api_key: str = os.getenv("GOOGLE_PLACES_API_KEY", "")
    gemini_api_key: str = os.getenv("GEMINI_API_KEY", "")

    # R2 Storage (photos are skipped when missing)
    r2_account_id: str = os.getenv("R2_ACCOUNT_ID", "")
    r2_bucket_name: str = os.getenv("R2_BUCKET_NAME", "")

    def validate(self) -> list[str]:
        """Validate configuration and return list of errors."""
        errors = []

        if not self.supabase_url:
            errors.append("SUPABASE_URL is required")
        if not self.supabase_key:
            errors.append("SUPABASE_SERVICE_ROLE_KEY is required")
        if not self.places_api_key:
            errors.append("GOOGLE_PLACES_API_KEY is required")
        if self.batch_delay_seconds < 0:
            errors.append("BATCH_DELAY_SECONDS must not be negative")

        return errors

    @property
    def photos_enabled(self) -> bool:
        return bool(self.r2_account_id and self.r2_bucket_name)


def get_config() -> WorkerConfig:
    """Get worker configuration from environment."""
    return WorkerConfig()
