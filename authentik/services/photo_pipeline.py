"""
Photo selection and enhancement for verified places.

Selection uses a vision model when one is configured and a size/aspect
heuristic otherwise. Vision and enhancement calls run one at a time with a
fixed delay between them.
"""
from __future__ import annotations

import asyncio
import json
import logging
import re
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

import httpx
from google.genai.errors import APIError as GeminiAPIError
from starlette.concurrency import run_in_threadpool

from authentik.app.domain.errors import StorageError
from authentik.app.infra.storage.base import StorageProvider
from authentik.services.errors import RetryExhaustedError
from authentik.services.gemini_client import GeminiClient, prompt_path
from authentik.services.places import PlacesClient
from authentik.services.retry import RetryPolicy, retry_async
from authentik.services.slugify import short_place_id
from authentik.services.types import PhotoCategory, PhotoRef, VerifiedPlace

logger = logging.getLogger(__name__)

ANALYSIS_PROMPT = prompt_path("photo_analysis.txt")
ENHANCEMENT_PROMPT = prompt_path("photo_enhancement.txt")

MAX_ANALYZED_PHOTOS = 10
ANALYSIS_WIDTH = 400
FINAL_WIDTH = 800
DEFAULT_MAX_PHOTOS = 3
JSON_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")

FOOD_CATEGORIES = {"food_closeup", "food_table"}


@dataclass
class PhotoCandidate:
    photo_reference: str
    url: str
    category: PhotoCategory
    score: float
    width: int = 0
    height: int = 0
    description: Optional[str] = None


@dataclass
class PhotoAnalysis:
    is_food: bool = False
    food_score: float = 0
    quality_score: float = 0
    category: str = "other"
    description: str = ""

    @property
    def photo_category(self) -> PhotoCategory:
        if self.category in FOOD_CATEGORIES:
            return "food"
        if self.category in ("interior", "exterior"):
            return self.category  # type: ignore[return-value]
        return "unknown"


@dataclass
class PhotoResult:
    url: str
    storage_key: str
    category: PhotoCategory
    enhanced: bool


def score_photo(width: int, height: int) -> tuple[float, PhotoCategory]:
    score = 50.0
    category: PhotoCategory = "unknown"

    if width > 0 and height > 0:
        ratio = width / height
        if ratio <= 1.0:
            score += 20
            category = "food"
        elif ratio <= 1.8:
            score += 5
        else:
            score -= 40
            category = "exterior"

    if width > 5000:
        score -= 20
    elif 0 < width < 500:
        score -= 20

    return score, category


def rank_photos_heuristic(
    photos: list[PhotoRef],
    url_for: Callable[[str], str],
    max_photos: int = DEFAULT_MAX_PHOTOS,
) -> list[PhotoCandidate]:
    candidates = []
    for photo in photos:
        score, category = score_photo(photo.width, photo.height)
        candidates.append(
            PhotoCandidate(
                photo_reference=photo.photo_reference,
                url=url_for(photo.photo_reference),
                category=category,
                score=score,
                width=photo.width,
                height=photo.height,
            )
        )
    candidates.sort(key=lambda c: c.score, reverse=True)
    return candidates[:max_photos]


def parse_photo_analysis(text: str) -> Optional[PhotoAnalysis]:
    match = JSON_OBJECT_PATTERN.search(text or "")
    if not match:
        return None
    try:
        data = json.loads(match.group(0))
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None

    def _number(value: object) -> float:
        return float(value) if isinstance(value, (int, float)) and not isinstance(value, bool) else 0.0

    return PhotoAnalysis(
        is_food=data.get("isFood") is True,
        food_score=_number(data.get("foodScore")),
        quality_score=_number(data.get("qualityScore")),
        category=str(data.get("category") or "other"),
        description=str(data.get("description") or ""),
    )


def rank_analyzed_photos(
    analyzed: list[tuple[PhotoRef, Optional[PhotoAnalysis]]],
    url_for: Callable[[str], str],
    max_photos: int = DEFAULT_MAX_PHOTOS,
) -> list[PhotoCandidate]:
    """Food photos by food+quality first; the best non-food photos fill any gap."""
    food = [item for item in analyzed if item[1] is not None and item[1].is_food]
    food.sort(key=lambda item: item[1].food_score + item[1].quality_score, reverse=True)

    ranked = list(food)
    if len(ranked) < max_photos:
        others = [item for item in analyzed if item[1] is None or not item[1].is_food]
        others.sort(key=lambda item: item[1].quality_score if item[1] else 0, reverse=True)
        ranked.extend(others)

    candidates = []
    for photo, analysis in ranked[:max_photos]:
        candidates.append(
            PhotoCandidate(
                photo_reference=photo.photo_reference,
                url=url_for(photo.photo_reference),
                category=analysis.photo_category if analysis else "unknown",
                score=(analysis.food_score + analysis.quality_score) if analysis else 0,
                width=photo.width,
                height=photo.height,
                description=analysis.description if analysis else None,
            )
        )
    return candidates


def photo_key(collection_slug: str, place_id: str, variant: str, index: int) -> str:
    return f"{collection_slug}/{short_place_id(place_id)}-{variant}-{index}.jpg"


class PhotoPipeline:
    def __init__(
        self,
        places: PlacesClient,
        storage: StorageProvider,
        http: httpx.AsyncClient,
        gemini: Optional[GeminiClient] = None,
        retry_policy: Optional[RetryPolicy] = None,
        delay_seconds: float = 2.0,
        enhance: bool = True,
        max_photos: int = DEFAULT_MAX_PHOTOS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._places = places
        self._storage = storage
        self._http = http
        self._gemini = gemini
        self._retry_policy = retry_policy or RetryPolicy()
        self._delay_seconds = delay_seconds
        self._enhance = enhance
        self._max_photos = max_photos
        self._sleep = sleep

    def _final_url(self, reference: str) -> str:
        return self._places.photo_url(reference, FINAL_WIDTH)

    async def _download(self, url: str) -> Optional[bytes]:
        try:
            response = await self._http.get(url, follow_redirects=True)
        except httpx.HTTPError as error:
            logger.warning("Photo download failed: %s", error)
            return None
        if not response.is_success:
            logger.warning("Photo download returned HTTP %d", response.status_code)
            return None
        return response.content

    async def _analyze(self, image: bytes) -> Optional[PhotoAnalysis]:
        gemini = self._gemini
        try:
            raw = await retry_async(
                lambda: gemini.analyze_image(image, ANALYSIS_PROMPT),
                policy=self._retry_policy,
                operation_name="photo analysis",
                sleep=self._sleep,
            )
        except (RetryExhaustedError, GeminiAPIError) as error:
            logger.warning("Photo analysis failed: %s", error)
            return None
        return parse_photo_analysis(raw)

    def preview_photos(self, place: VerifiedPlace) -> list[PhotoCandidate]:
        """Heuristic pick only; no downloads, no model calls."""
        return rank_photos_heuristic(place.photos, self._final_url, self._max_photos)

    async def select_photos(self, place: VerifiedPlace) -> list[PhotoCandidate]:
        if not place.photos:
            return []
        if self._gemini is None:
            return rank_photos_heuristic(place.photos, self._final_url, self._max_photos)

        to_analyze = place.photos[:MAX_ANALYZED_PHOTOS]
        logger.info("Analyzing %d photos for %s", len(to_analyze), place.name)

        analyzed: list[tuple[PhotoRef, Optional[PhotoAnalysis]]] = []
        for index, photo in enumerate(to_analyze):
            if index > 0:
                await self._sleep(self._delay_seconds)
            image = await self._download(self._places.photo_url(photo.photo_reference, ANALYSIS_WIDTH))
            if image is None:
                continue
            analyzed.append((photo, await self._analyze(image)))

        if not analyzed:
            logger.info("No photo could be analyzed, using heuristic ranking")
            return rank_photos_heuristic(place.photos, self._final_url, self._max_photos)
        return rank_analyzed_photos(analyzed, self._final_url, self._max_photos)

    async def _enhance_image(self, image: bytes) -> Optional[bytes]:
        gemini = self._gemini
        try:
            return await retry_async(
                lambda: gemini.edit_image(image, ENHANCEMENT_PROMPT),
                policy=self._retry_policy,
                operation_name="photo enhancement",
                sleep=self._sleep,
            )
        except (RetryExhaustedError, GeminiAPIError) as error:
            logger.warning("Photo enhancement failed, keeping original: %s", error)
            return None

    async def process(self, place: VerifiedPlace, collection_slug: str) -> list[PhotoResult]:
        if not place.photos:
            logger.info("No photos available for %s", place.name)
            return []

        prefix = f"{collection_slug}/{short_place_id(place.place_id)}-"
        removed = await run_in_threadpool(self._storage.delete_prefix, prefix)
        if removed:
            logger.info("Removed %d stale photos under %s", removed, prefix)

        selected = await self.select_photos(place)
        should_enhance = self._enhance and self._gemini is not None

        results: list[PhotoResult] = []
        for index, candidate in enumerate(selected, start=1):
            original = await self._download(candidate.url)
            if original is None:
                continue

            enhanced = None
            if should_enhance:
                if index > 1:
                    await self._sleep(self._delay_seconds)
                enhanced = await self._enhance_image(original)

            variant = "enhanced" if enhanced else "original"
            key = photo_key(collection_slug, place.place_id, variant, index)
            try:
                url = await run_in_threadpool(self._storage.upload_bytes, key, enhanced or original, "image/jpeg")
            except StorageError as error:
                logger.error("Photo upload failed for %s: %s", key, error)
                continue

            results.append(PhotoResult(url=url, storage_key=key, category=candidate.category, enhanced=bool(enhanced)))

        logger.info(
            "Photos for %s: %d uploaded, %d enhanced",
            place.name,
            len(results),
            sum(1 for r in results if r.enhanced),
        )
        return results
