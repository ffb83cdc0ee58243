# authentik/app/infra/db/base.py
"""
Abstract repositories for the restaurant catalog and the suggestion workflow.
Implementations live next to this module; tests use in-memory stubs.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional

from authentik.app.domain.models import Suggestion, SuggestionStatus


class CatalogRepository(ABC):
    """
    Writes for collections, restaurants and the collection/restaurant link table.

    Implementations:
    - SupabaseCatalogRepository: Postgres via Supabase
    """

    @abstractmethod
    def create_collection(self, data: dict[str, Any]) -> dict[str, Any]:
        """
        Insert a new collection row. Every extraction run creates its own row.

        Args:
            data: Column values (name_vi, description_vi, source_url, tags, ...)

        Returns:
            The inserted row, including its generated id
        """
        pass

    @abstractmethod
    def upsert_restaurant(self, data: dict[str, Any]) -> str:
        """
        Insert a restaurant or update the existing row with the same google_place_id.

        Args:
            data: Column values; must contain google_place_id

        Returns:
            The restaurant id
        """
        pass

    @abstractmethod
    def link_restaurant(
        self,
        collection_id: str,
        restaurant_id: str,
        notes: Optional[str],
        dishes: list[str],
        summary_en: Optional[str] = None,
        summary_vi: Optional[str] = None,
    ) -> None:
        """
        Link a restaurant to a collection. An existing link is updated in place
        (notes, dishes and any non-empty summaries).
        """
        pass

    @abstractmethod
    def update_restaurant_photos(self, restaurant_id: str, photo_urls: list[str]) -> None:
        """Store the uploaded photo URLs on the restaurant row."""
        pass


class SuggestionRepository(ABC):
    """
    Persistence for video suggestions.

    Implementations:
    - SupabaseSuggestionRepository: video_suggestions table via Supabase
    """

    @abstractmethod
    def create_suggestion(self, youtube_url: str, user_id: Optional[str] = None) -> Suggestion:
        """
        Create a suggestion in PENDING status.

        Args:
            youtube_url: Source video URL
            user_id: Submitter, if known

        Returns:
            The created Suggestion
        """
        pass

    @abstractmethod
    def get_suggestion(self, suggestion_id: str) -> Optional[Suggestion]:
        """Returns the suggestion, or None if it does not exist."""
        pass

    @abstractmethod
    def update_status(
        self,
        suggestion_id: str,
        status: SuggestionStatus,
        *,
        result_collection_id: Optional[str] = None,
        logs: Optional[dict[str, Any]] = None,
        clear_logs: bool = False,
    ) -> Suggestion:
        """
        Move a suggestion to a new status.

        Args:
            suggestion_id: The suggestion to update
            status: New status
            result_collection_id: Collection produced by the run (overwrites)
            logs: Structured run logs (overwrites)
            clear_logs: Reset logs and result_collection_id before a rerun

        Returns:
            The updated Suggestion
        """
        pass
