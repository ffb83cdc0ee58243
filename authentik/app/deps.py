# authentik/app/deps.py (process-wide singletons exposed as dependencies)

from __future__ import annotations

import logging
from typing import Optional

import httpx
from supabase import Client, create_client

from authentik.app.config import Settings, get_settings
from authentik.app.domain.errors import StorageError
from authentik.app.infra.db.supabase_cache_store import SupabaseCacheStore
from authentik.app.infra.db.supabase_catalog_repo import SupabaseCatalogRepository
from authentik.app.infra.db.supabase_suggestions_repo import SupabaseSuggestionRepository
from authentik.app.infra.storage.base import StorageProvider
from authentik.app.infra.storage.r2_provider import R2StorageProvider
from authentik.app.services.suggestion_service import SuggestionService
from authentik.services.editorial import EditorialWriter
from authentik.services.extraction_pipeline import ExtractionPipeline
from authentik.services.gemini_client import GeminiClient
from authentik.services.ingest import VideoIngestor
from authentik.services.lookup_cache import LookupCache
from authentik.services.mention_extractor import MentionExtractor
from authentik.services.photo_pipeline import PhotoPipeline
from authentik.services.places import PlacesClient
from authentik.services.retry import RetryPolicy
from authentik.services.transcript import TranscriptClient
from authentik.services.verifier import PlaceVerifier

logger = logging.getLogger(__name__)

_client: Client | None = None
_cache: LookupCache | None = None
_http: httpx.AsyncClient | None = None


def get_supabase() -> Client:
    global _client
    if _client is None:
        settings = get_settings()
        _client = create_client(str(settings.SUPABASE_URL), settings.SUPABASE_SERVICE_ROLE_KEY)
    return _client


def get_lookup_cache() -> LookupCache:
    """One cache per process, shared by every run."""
    global _cache
    if _cache is None:
        settings = get_settings()
        store = SupabaseCacheStore(get_supabase()) if settings.CACHE_DURABLE_ENABLED else None
        _cache = LookupCache(store=store, capacity=settings.CACHE_MEMORY_CAPACITY)
    return _cache


def get_http_client() -> httpx.AsyncClient:
    global _http
    if _http is None:
        _http = httpx.AsyncClient(timeout=get_settings().HTTP_TIMEOUT_SECONDS)
    return _http


async def close_http_client() -> None:
    global _http
    if _http is not None:
        await _http.aclose()
        _http = None


def get_storage() -> Optional[StorageProvider]:
    try:
        return R2StorageProvider()
    except StorageError as e:
        logger.warning("Object storage unavailable, photos disabled: %s", e)
        return None


def build_pipeline(
    settings: Settings,
    http: httpx.AsyncClient,
    cache: LookupCache,
    catalog: Optional[SupabaseCatalogRepository] = None,
    storage: Optional[StorageProvider] = None,
) -> ExtractionPipeline:
    retry_policy = RetryPolicy(
        max_attempts=settings.RETRY_MAX_ATTEMPTS,
        initial_delay=settings.RETRY_INITIAL_DELAY_SECONDS,
        max_delay=settings.RETRY_MAX_DELAY_SECONDS,
    )

    gemini = None
    if settings.GEMINI_API_KEY:
        gemini = GeminiClient(
            settings.GEMINI_API_KEY,
            model_name=settings.GEMINI_MODEL,
            image_model_name=settings.GEMINI_IMAGE_MODEL,
        )
    else:
        logger.warning("GEMINI_API_KEY not set: regex-only extraction, no editorial, heuristic photos")

    places = PlacesClient(settings.GOOGLE_PLACES_API_KEY, http, settings.PLACES_SEARCH_RADIUS_METERS)
    transcripts = TranscriptClient(
        settings.TRANSCRIPT_SERVICE_URL,
        http,
        cache=cache,
        timeout_seconds=settings.TRANSCRIPT_TIMEOUT_SECONDS,
        positive_ttl=settings.CACHE_TRANSCRIPT_TTL_SECONDS,
        negative_ttl=settings.CACHE_TRANSCRIPT_MISS_TTL_SECONDS,
    )
    ingestor = VideoIngestor(
        http,
        transcripts,
        MentionExtractor(gemini, retry_policy),
        youtube_api_key=settings.YOUTUBE_API_KEY,
    )
    verifier = PlaceVerifier(
        places,
        cache,
        search_ttl=settings.CACHE_SEARCH_TTL_SECONDS,
        details_ttl=settings.CACHE_DETAILS_TTL_SECONDS,
    )

    photos = None
    if storage is not None:
        photos = PhotoPipeline(
            places,
            storage,
            http,
            gemini=gemini if settings.PHOTO_VISION_ENABLED else None,
            retry_policy=retry_policy,
            delay_seconds=settings.PHOTO_VISION_DELAY_SECONDS,
            enhance=settings.PHOTO_ENHANCE,
            max_photos=settings.PHOTO_MAX_PER_PLACE,
        )

    return ExtractionPipeline(
        ingestor,
        verifier,
        catalog=catalog,
        photos=photos,
        editorial=EditorialWriter(gemini, retry_policy) if gemini else None,
    )


def get_extraction_pipeline() -> ExtractionPipeline:
    settings = get_settings()
    return build_pipeline(
        settings,
        get_http_client(),
        get_lookup_cache(),
        catalog=SupabaseCatalogRepository(get_supabase()),
        storage=get_storage(),
    )


def get_suggestion_service() -> SuggestionService:
    return SuggestionService(
        SupabaseSuggestionRepository(get_supabase()),
        get_extraction_pipeline,
        creator_name=get_settings().DEFAULT_CREATOR_NAME,
    )
