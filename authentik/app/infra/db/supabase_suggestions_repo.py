from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

import httpx
from postgrest.exceptions import APIError
from supabase import Client

from authentik.app.domain.errors import RepositoryError, SuggestionNotFoundError
from authentik.app.domain.models import Suggestion, SuggestionStatus
from authentik.app.infra.db.base import SuggestionRepository

logger = logging.getLogger(__name__)

DB_ERRORS = (APIError, httpx.HTTPError, ConnectionError, TimeoutError)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _parse_datetime(value: str | datetime | None) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        return None

    try:
        normalized = value.replace("Z", "+00:00") if value.endswith("Z") else value
        return datetime.fromisoformat(normalized)
    except ValueError:
        return None


def _safe_str(value: object) -> str | None:
    return str(value) if value else None


def _row_to_suggestion(row: dict[str, Any]) -> Suggestion:
    logs = row.get("logs")
    return Suggestion(
        id=str(row["id"]),
        youtube_url=str(row["youtube_url"]),
        status=SuggestionStatus(str(row["status"])),
        user_id=_safe_str(row.get("user_id")),
        result_collection_id=_safe_str(row.get("result_collection_id")),
        logs=logs if isinstance(logs, dict) else None,
        created_at=_parse_datetime(row.get("created_at")),
        updated_at=_parse_datetime(row.get("updated_at")),
    )


class SupabaseSuggestionRepository(SuggestionRepository):
    TABLE_NAME = "video_suggestions"

    def __init__(self, client: Client):
        self._client = client
        logger.info("SupabaseSuggestionRepository initialized")

    def create_suggestion(self, youtube_url: str, user_id: Optional[str] = None) -> Suggestion:
        data = {
            "youtube_url": youtube_url,
            "user_id": user_id,
            "status": SuggestionStatus.PENDING.value,
        }
        try:
            result = self._client.table(self.TABLE_NAME).insert(data).execute()
        except DB_ERRORS as error:
            logger.error("Error creating suggestion: %s", error)
            raise RepositoryError("create_suggestion", str(error)) from error

        if not result.data:
            raise RepositoryError("create_suggestion", "insert returned no row")

        suggestion = _row_to_suggestion(result.data[0])
        logger.info("Created suggestion: id=%s, url=%s", suggestion.id, youtube_url)
        return suggestion

    def get_suggestion(self, suggestion_id: str) -> Optional[Suggestion]:
        try:
            result = (
                self._client.table(self.TABLE_NAME)
                .select("*")
                .eq("id", suggestion_id)
                .limit(1)
                .execute()
            )
        except DB_ERRORS as error:
            raise RepositoryError("get_suggestion", str(error)) from error

        return _row_to_suggestion(result.data[0]) if result.data else None

    def update_status(
        self,
        suggestion_id: str,
        status: SuggestionStatus,
        *,
        result_collection_id: Optional[str] = None,
        logs: Optional[dict[str, Any]] = None,
        clear_logs: bool = False,
    ) -> Suggestion:
        update: dict[str, Any] = {
            "status": status.value,
            "updated_at": _now_utc().isoformat(),
        }
        if clear_logs:
            update["logs"] = None
            update["result_collection_id"] = None
        if result_collection_id is not None:
            update["result_collection_id"] = result_collection_id
        if logs is not None:
            update["logs"] = logs

        try:
            result = self._client.table(self.TABLE_NAME).update(update).eq("id", suggestion_id).execute()
        except DB_ERRORS as error:
            logger.error("Error updating suggestion %s: %s", suggestion_id, error)
            raise RepositoryError("update_status", str(error)) from error

        if not result.data:
            raise SuggestionNotFoundError(suggestion_id)

        logger.info("Suggestion %s -> %s", suggestion_id, status.value)
        return _row_to_suggestion(result.data[0])
