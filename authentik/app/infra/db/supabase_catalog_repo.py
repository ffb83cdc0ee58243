from __future__ import annotations

import logging
import os
from typing import Any, Optional

import httpx
from postgrest.exceptions import APIError
from supabase import Client, create_client

from authentik.app.domain.errors import RepositoryError
from authentik.app.infra.db.base import CatalogRepository

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"
DB_ERRORS = (APIError, httpx.HTTPError, ConnectionError, TimeoutError)


def _create_supabase_client() -> Client:
    url = os.getenv("SUPABASE_URL")
    key = os.getenv("SUPABASE_SERVICE_ROLE_KEY")
    if not url or not key:
        raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY required")
    return create_client(url, key)


class SupabaseCatalogRepository(CatalogRepository):
    COLLECTIONS_TABLE = "collections"
    RESTAURANTS_TABLE = "restaurants"
    LINKS_TABLE = "collection_restaurants"

    def __init__(self, client: Client | None = None):
        self._client = client or _create_supabase_client()
        logger.info("SupabaseCatalogRepository initialized")

    def create_collection(self, data: dict[str, Any]) -> dict[str, Any]:
        try:
            result = self._client.table(self.COLLECTIONS_TABLE).insert(data).execute()
        except DB_ERRORS as error:
            logger.error("Error creating collection: %s", error)
            raise RepositoryError("create_collection", str(error)) from error

        if not result.data:
            raise RepositoryError("create_collection", "insert returned no row")

        row = result.data[0]
        logger.info("Created collection: id=%s, name=%s", row.get("id"), row.get("name_vi"))
        return row

    def _find_restaurant_id(self, google_place_id: str) -> Optional[str]:
        result = (
            self._client.table(self.RESTAURANTS_TABLE)
            .select("id")
            .eq("google_place_id", google_place_id)
            .limit(1)
            .execute()
        )
        return str(result.data[0]["id"]) if result.data else None

    def upsert_restaurant(self, data: dict[str, Any]) -> str:
        place_id = data["google_place_id"]
        try:
            existing_id = self._find_restaurant_id(place_id)

            if existing_id:
                self._client.table(self.RESTAURANTS_TABLE).update(data).eq("id", existing_id).execute()
                logger.info("Updated restaurant: id=%s, place=%s", existing_id, place_id)
                return existing_id

            result = self._client.table(self.RESTAURANTS_TABLE).insert(data).execute()
        except DB_ERRORS as error:
            logger.error("Error importing restaurant %s: %s", place_id, error)
            raise RepositoryError("upsert_restaurant", str(error)) from error

        if not result.data:
            raise RepositoryError("upsert_restaurant", "insert returned no row")

        restaurant_id = str(result.data[0]["id"])
        logger.info("Created restaurant: id=%s, place=%s", restaurant_id, place_id)
        return restaurant_id

    def link_restaurant(
        self,
        collection_id: str,
        restaurant_id: str,
        notes: Optional[str],
        dishes: list[str],
        summary_en: Optional[str] = None,
        summary_vi: Optional[str] = None,
    ) -> None:
        row = {
            "collection_id": collection_id,
            "restaurant_id": restaurant_id,
            "notes": notes,
            "recommended_dishes": dishes or None,
            "ai_summary_en": summary_en,
            "ai_summary_vi": summary_vi,
        }
        try:
            self._client.table(self.LINKS_TABLE).insert(row).execute()
            logger.info("Linked restaurant %s to collection %s", restaurant_id, collection_id)
            return
        except APIError as error:
            if error.code != UNIQUE_VIOLATION:
                logger.error("Error linking restaurant to collection: %s", error)
                raise RepositoryError("link_restaurant", str(error)) from error
        except (httpx.HTTPError, ConnectionError, TimeoutError) as error:
            raise RepositoryError("link_restaurant", str(error)) from error

        update: dict[str, Any] = {"notes": notes, "recommended_dishes": dishes or None}
        if summary_en:
            update["ai_summary_en"] = summary_en
        if summary_vi:
            update["ai_summary_vi"] = summary_vi

        try:
            (
                self._client.table(self.LINKS_TABLE)
                .update(update)
                .eq("collection_id", collection_id)
                .eq("restaurant_id", restaurant_id)
                .execute()
            )
        except DB_ERRORS as error:
            raise RepositoryError("link_restaurant", str(error)) from error
        logger.info("Already linked, updated notes for restaurant %s", restaurant_id)

    def update_restaurant_photos(self, restaurant_id: str, photo_urls: list[str]) -> None:
        try:
            (
                self._client.table(self.RESTAURANTS_TABLE)
                .update({"photos": photo_urls})
                .eq("id", restaurant_id)
                .execute()
            )
        except DB_ERRORS as error:
            raise RepositoryError("update_restaurant_photos", str(error)) from error
        logger.info("Stored %d photo URLs for restaurant %s", len(photo_urls), restaurant_id)
