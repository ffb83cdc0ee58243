from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

import pytest
from postgrest.exceptions import APIError

from authentik.app.domain.errors import RepositoryError, SuggestionNotFoundError
from authentik.app.domain.models import SuggestionStatus
from authentik.app.infra.db.supabase_cache_store import SupabaseCacheStore
from authentik.app.infra.db.supabase_catalog_repo import SupabaseCatalogRepository
from authentik.app.infra.db.supabase_suggestions_repo import SupabaseSuggestionRepository
from authentik.services.errors import CacheStoreError
from authentik.services.lookup_cache import CacheEntry


@dataclass
class FakeResponse:
    data: list[dict[str, Any]]


class FakeQuery:
    def __init__(self, client: "FakeSupabase", table: str) -> None:
        self.client = client
        self.table = table
        self.op = "select"
        self.payload: Any = None
        self.filters: list[tuple[str, Any]] = []

    def select(self, columns: str) -> "FakeQuery":
        self.op = "select"
        return self

    def insert(self, data: dict[str, Any]) -> "FakeQuery":
        self.op, self.payload = "insert", data
        return self

    def update(self, data: dict[str, Any]) -> "FakeQuery":
        self.op, self.payload = "update", data
        return self

    def upsert(self, data: dict[str, Any], on_conflict: str = "") -> "FakeQuery":
        self.op, self.payload = "upsert", data
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        self.filters.append((column, value))
        return self

    def limit(self, count: int) -> "FakeQuery":
        return self

    def execute(self) -> FakeResponse:
        self.client.calls.append(self)
        key = (self.table, self.op)
        error = self.client.errors.pop(key, None)
        if error is not None:
            raise error
        queue = self.client.responses.get(key) or []
        return FakeResponse(queue.pop(0) if queue else [])


class FakeSupabase:
    def __init__(self) -> None:
        self.calls: list[FakeQuery] = []
        self.responses: dict[tuple[str, str], list[list[dict[str, Any]]]] = {}
        self.errors: dict[tuple[str, str], Exception] = {}

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def respond(self, table: str, op: str, *rows: list[dict[str, Any]]) -> None:
        self.responses.setdefault((table, op), []).extend(rows)

    def ops(self) -> list[tuple[str, str]]:
        return [(call.table, call.op) for call in self.calls]


def _api_error(code: str, message: str = "db error") -> APIError:
    return APIError({"message": message, "code": code, "hint": None, "details": None})


@pytest.fixture
def client() -> FakeSupabase:
    return FakeSupabase()


class TestCatalogRepository:
    def test_create_collection_returns_row(self, client: FakeSupabase) -> None:
        client.respond("collections", "insert", [{"id": "col-1", "name_vi": "Ăn sáng"}])
        repo = SupabaseCatalogRepository(client)

        assert repo.create_collection({"name_vi": "Ăn sáng"})["id"] == "col-1"

    def test_create_collection_error(self, client: FakeSupabase) -> None:
        client.errors[("collections", "insert")] = _api_error("42501", "permission denied")
        repo = SupabaseCatalogRepository(client)

        with pytest.raises(RepositoryError, match="permission denied"):
            repo.create_collection({"name_vi": "Ăn sáng"})

    def test_upsert_inserts_new_place(self, client: FakeSupabase) -> None:
        client.respond("restaurants", "insert", [{"id": 7}])
        repo = SupabaseCatalogRepository(client)

        assert repo.upsert_restaurant({"google_place_id": "p1", "name": "Quán"}) == "7"
        assert client.ops() == [("restaurants", "select"), ("restaurants", "insert")]

    def test_upsert_updates_existing_place(self, client: FakeSupabase) -> None:
        client.respond("restaurants", "select", [{"id": "rest-1"}])
        repo = SupabaseCatalogRepository(client)

        assert repo.upsert_restaurant({"google_place_id": "p1", "name": "Quán"}) == "rest-1"
        update = client.calls[-1]
        assert update.op == "update"
        assert update.filters == [("id", "rest-1")]

    def test_duplicate_link_becomes_update(self, client: FakeSupabase) -> None:
        client.errors[("collection_restaurants", "insert")] = _api_error("23505", "duplicate key")
        repo = SupabaseCatalogRepository(client)

        repo.link_restaurant("col-1", "rest-1", "notes", ["Phở"], summary_en="Good", summary_vi=None)

        update = client.calls[-1]
        assert update.op == "update"
        assert update.payload == {"notes": "notes", "recommended_dishes": ["Phở"], "ai_summary_en": "Good"}
        assert update.filters == [("collection_id", "col-1"), ("restaurant_id", "rest-1")]

    def test_other_link_errors_raise(self, client: FakeSupabase) -> None:
        client.errors[("collection_restaurants", "insert")] = _api_error("23503", "foreign key")
        repo = SupabaseCatalogRepository(client)

        with pytest.raises(RepositoryError):
            repo.link_restaurant("col-1", "rest-1", None, [])
        assert client.ops() == [("collection_restaurants", "insert")]


SUGGESTION_ROW = {
    "id": "sug-1",
    "youtube_url": "https://youtu.be/abc",
    "status": "pending",
    "user_id": None,
    "result_collection_id": None,
    "logs": None,
    "created_at": "2026-01-15T10:00:00Z",
    "updated_at": None,
}


class TestSuggestionRepository:
    def test_create_parses_row(self, client: FakeSupabase) -> None:
        client.respond("video_suggestions", "insert", [SUGGESTION_ROW])
        repo = SupabaseSuggestionRepository(client)

        suggestion = repo.create_suggestion("https://youtu.be/abc")

        assert suggestion.status == SuggestionStatus.PENDING
        assert suggestion.created_at is not None
        assert suggestion.created_at.year == 2026
        assert client.calls[0].payload["status"] == "pending"

    def test_get_missing_returns_none(self, client: FakeSupabase) -> None:
        repo = SupabaseSuggestionRepository(client)

        assert repo.get_suggestion("nope") is None

    def test_clear_logs_resets_previous_run(self, client: FakeSupabase) -> None:
        client.respond("video_suggestions", "update", [{**SUGGESTION_ROW, "status": "processing"}])
        repo = SupabaseSuggestionRepository(client)

        suggestion = repo.update_status("sug-1", SuggestionStatus.PROCESSING, clear_logs=True)

        payload = client.calls[0].payload
        assert payload["logs"] is None
        assert payload["result_collection_id"] is None
        assert suggestion.status == SuggestionStatus.PROCESSING

    def test_update_unknown_id(self, client: FakeSupabase) -> None:
        repo = SupabaseSuggestionRepository(client)

        with pytest.raises(SuggestionNotFoundError):
            repo.update_status("nope", SuggestionStatus.REJECTED)


class TestCacheStore:
    def test_fetch_reads_expiry(self, client: FakeSupabase) -> None:
        client.respond("lookup_cache", "select", [{"key": "k", "value": [1], "expires_at": "2030-01-01T00:00:00+00:00"}])
        store = SupabaseCacheStore(client)

        entry: Optional[CacheEntry] = store.fetch("k")

        assert entry is not None
        assert entry.value == [1]
        assert entry.expires_at > 1.8e9

    def test_naive_expiry_is_read_as_utc(self, client: FakeSupabase) -> None:
        client.respond("lookup_cache", "select", [{"key": "k", "value": [1], "expires_at": "2030-01-01T00:00:00"}])

        entry = SupabaseCacheStore(client).fetch("k")

        assert entry is not None
        assert entry.expires_at == datetime(2030, 1, 1, tzinfo=timezone.utc).timestamp()

    def test_unreadable_expiry_is_a_miss(self, client: FakeSupabase) -> None:
        client.respond("lookup_cache", "select", [{"key": "k", "value": [1], "expires_at": None}])

        assert SupabaseCacheStore(client).fetch("k") is None

    def test_save_errors_are_wrapped(self, client: FakeSupabase) -> None:
        client.errors[("lookup_cache", "upsert")] = _api_error("57014", "timeout")

        with pytest.raises(CacheStoreError):
            SupabaseCacheStore(client).save(CacheEntry(key="k", value=None, expires_at=0.0), "transcript")
