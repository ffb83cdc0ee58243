"""
Video-to-collection orchestration.

ingest video -> editorial copy -> collection -> for each mention:
verify -> classify/score -> import + link -> photos.

Mentions are processed one at a time; a failing mention is counted and
the run moves on. In preview mode every computation happens but nothing
is written to the catalog or to object storage.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

from starlette.concurrency import run_in_threadpool

from authentik.app.domain.errors import RepositoryError
from authentik.app.infra.db.base import CatalogRepository
from authentik.services.authenticity import AuthenticityAssessment, score_authenticity
from authentik.services.editorial import EditorialContent, EditorialWriter
from authentik.services.errors import CollectionCreationError, ConfigurationError
from authentik.services.ingest import IngestResult, VideoIngestor
from authentik.services.market_cities import MarketCity, replace_collection_city_tags
from authentik.services.photo_pipeline import PhotoCandidate, PhotoPipeline, PhotoResult
from authentik.services.slugify import create_slug
from authentik.services.types import RestaurantMention, VerifiedPlace
from authentik.services.venue_classifier import VenueClassification, classify_venue
from authentik.services.verifier import Classification, PlaceVerifier, classify_restaurant

logger = logging.getLogger(__name__)

PREVIEW_COLLECTION_ID = "dry-run-preview"
YOUTUBE_CHANNEL_URL = "https://www.youtube.com/channel/{channel_id}"
DEFAULT_BATCH_DELAY_SECONDS = 5.0


@dataclass
class ExtractionStats:
    total_mentions: int = 0
    verified: int = 0
    imported: int = 0
    failed: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "totalMentions": self.total_mentions,
            "verified": self.verified,
            "imported": self.imported,
            "failed": self.failed,
        }


@dataclass
class RestaurantOutcome:
    mention: RestaurantMention
    verified: Optional[VerifiedPlace] = None
    imported: bool = False
    restaurant_id: Optional[str] = None
    classification: Optional[Classification] = None
    authenticity: Optional[AuthenticityAssessment] = None
    venue: Optional[VenueClassification] = None
    photos: list[PhotoResult] = field(default_factory=list)
    photo_candidates: list[PhotoCandidate] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class ExtractionResult:
    collection: dict[str, Any]
    restaurants: list[RestaurantOutcome]
    stats: ExtractionStats
    logs: list[str] = field(default_factory=list)
    preview: bool = False


@dataclass
class BatchItem:
    url: str
    creator_name: str


@dataclass
class BatchOutcome:
    item: BatchItem
    result: Optional[ExtractionResult] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.result is not None


def channel_attribution(ingested: IngestResult, creator_name: str) -> dict[str, Optional[str]]:
    """source_channel_{id,url,name} for the collection row."""
    metadata = ingested.metadata
    if ingested.source.platform == "youtube":
        channel_id = metadata.channel_id or None
        return {
            "source_channel_id": channel_id,
            "source_channel_url": YOUTUBE_CHANNEL_URL.format(channel_id=channel_id) if channel_id else None,
            "source_channel_name": metadata.channel_name or creator_name,
        }
    return {
        "source_channel_id": None,
        "source_channel_url": None,
        "source_channel_name": metadata.channel_name or creator_name,
    }


def build_collection_fields(
    ingested: IngestResult,
    creator_name: str,
    editorial: Optional[EditorialContent],
) -> dict[str, Any]:
    metadata = ingested.metadata
    name = (editorial and editorial.name_vi) or metadata.title or f"Collection from {creator_name}"
    description = (editorial and editorial.description_vi) or metadata.description or None

    data: dict[str, Any] = {
        "name_vi": name,
        "description_vi": description,
        "name_en": editorial.name_en if editorial else None,
        "description_en": editorial.description_en if editorial else None,
        "creator_name": creator_name,
        "source_url": ingested.source.url,
        "tags": replace_collection_city_tags(None, ingested.city),
    }
    data.update(channel_attribution(ingested, creator_name))
    return data


def build_restaurant_row(
    place: VerifiedPlace,
    classification: Optional[Classification],
    authenticity: AuthenticityAssessment,
    venue: VenueClassification,
) -> dict[str, Any]:
    location = place.location
    has_location = bool(location.lat or location.lng)
    return {
        "google_place_id": place.place_id,
        "name": place.name,
        "address": place.formatted_address,
        "location": f"POINT({location.lng} {location.lat})" if has_location else None,
        "cuisine_type": venue.cuisine_styles,
        "price_level": place.price_level or None,
        "classification": classification,
        "authenticity_score": authenticity.score,
        "phone_number": place.phone,
        "website": place.website,
        "opening_hours": place.opening_hours.model_dump() if place.opening_hours else None,
        "google_rating": place.rating or None,
        "google_user_ratings_total": place.user_ratings_total or None,
        "authenticity_details": authenticity.to_dict(),
    }


class ExtractionPipeline:
    def __init__(
        self,
        ingestor: VideoIngestor,
        verifier: PlaceVerifier,
        catalog: Optional[CatalogRepository] = None,
        photos: Optional[PhotoPipeline] = None,
        editorial: Optional[EditorialWriter] = None,
    ) -> None:
        self._ingestor = ingestor
        self._verifier = verifier
        self._catalog = catalog
        self._photos = photos
        self._editorial = editorial

    async def _generate_editorial(
        self, ingested: IngestResult, creator_name: str
    ) -> Optional[EditorialContent]:
        if self._editorial is None:
            return None
        return await self._editorial.generate(
            ingested.metadata, ingested.mentions, creator_name, ingested.city
        )

    async def _create_collection(self, data: dict[str, Any]) -> dict[str, Any]:
        try:
            row = await run_in_threadpool(self._catalog.create_collection, data)
        except RepositoryError as error:
            raise CollectionCreationError(f"Failed to create collection: {error}") from error
        return row

    async def _process_mention(
        self,
        mention: RestaurantMention,
        verifier: PlaceVerifier,
        city: MarketCity,
        collection: dict[str, Any],
        editorial: Optional[EditorialContent],
        preview: bool,
    ) -> RestaurantOutcome:
        logger.info("Verifying: %s", mention.name)
        verified = await verifier.verify(mention.name, mention.address)
        if verified is None:
            logger.info("Could not verify: %s", mention.name)
            return RestaurantOutcome(mention=mention, error="not verified")

        logger.info("Verified: %s (%s)", verified.name, verified.place_id)
        outcome = RestaurantOutcome(
            mention=mention,
            verified=verified,
            classification=classify_restaurant(verified),
            authenticity=score_authenticity(verified, city.name),
            venue=classify_venue(verified.types, mention.dishes),
        )
        logger.info(
            "%s: %s %s (level %d/5), venue=%s",
            verified.name,
            outcome.authenticity.badge_icon,
            outcome.authenticity.badge_label,
            outcome.authenticity.level,
            outcome.venue.venue_type,
        )

        if preview:
            if self._photos is not None:
                outcome.photo_candidates = self._photos.preview_photos(verified)
            return outcome

        row = build_restaurant_row(verified, outcome.classification, outcome.authenticity, outcome.venue)
        try:
            restaurant_id = await run_in_threadpool(self._catalog.upsert_restaurant, row)
        except RepositoryError as error:
            logger.error("Import failed for %s: %s", verified.name, error)
            outcome.error = str(error)
            return outcome

        outcome.restaurant_id = restaurant_id
        review = editorial.review_for(mention.name) if editorial else None
        try:
            await run_in_threadpool(
                self._catalog.link_restaurant,
                collection["id"],
                restaurant_id,
                mention.notes,
                mention.dishes,
                review.summary_en if review else None,
                review.summary_vi if review else None,
            )
        except RepositoryError as error:
            logger.error("Link failed for %s: %s", verified.name, error)
            outcome.error = str(error)
            return outcome
        outcome.imported = True

        await self._attach_photos(outcome, collection)
        return outcome

    async def _attach_photos(self, outcome: RestaurantOutcome, collection: dict[str, Any]) -> None:
        if self._photos is None or outcome.verified is None or outcome.restaurant_id is None:
            return

        collection_slug = create_slug(collection.get("name_vi") or collection.get("name") or "")
        try:
            outcome.photos = await self._photos.process(outcome.verified, collection_slug)
            if outcome.photos:
                await run_in_threadpool(
                    self._catalog.update_restaurant_photos,
                    outcome.restaurant_id,
                    [photo.url for photo in outcome.photos],
                )
        except Exception as exc:
            logger.error("Photo processing failed for %s: %s", outcome.verified.name, exc)

    async def extract(
        self,
        source_url: str,
        creator_name: str,
        preview: bool = False,
    ) -> ExtractionResult:
        if not preview and self._catalog is None:
            raise ConfigurationError("A catalog repository is required outside preview mode")

        if preview:
            logger.info("Preview mode: no changes will be written")

        ingested = await self._ingestor.ingest(source_url)
        mentions = ingested.mentions
        logger.info("Found %d restaurant mentions (%s)", len(mentions), ingested.city.name)

        editorial = await self._generate_editorial(ingested, creator_name)
        fields = build_collection_fields(ingested, creator_name, editorial)

        if preview:
            collection = {
                "id": PREVIEW_COLLECTION_ID,
                "url_key": create_slug(fields["name_vi"]) or PREVIEW_COLLECTION_ID,
                **fields,
            }
            logger.info("Would create collection: %s", fields["name_vi"])
        else:
            collection = await self._create_collection(fields)

        verifier = self._verifier.for_city(ingested.city)
        stats = ExtractionStats(total_mentions=len(mentions))
        outcomes: list[RestaurantOutcome] = []

        for mention in mentions:
            try:
                outcome = await self._process_mention(
                    mention, verifier, ingested.city, collection, editorial, preview
                )
            except Exception as exc:
                logger.error("Error processing %s: %s", mention.name, exc)
                outcome = RestaurantOutcome(mention=mention, error=str(exc))

            if outcome.verified is not None:
                stats.verified += 1
            if outcome.imported or (preview and outcome.verified is not None):
                stats.imported += 1
            else:
                stats.failed += 1
            outcomes.append(outcome)

        logs = [f"Failed to process {o.mention.name}" for o in outcomes if o.verified is None]
        if stats.failed:
            logs.append(f"{stats.failed} mentions failed verification/import")
        if not preview and mentions and stats.imported == 0:
            logger.warning("Collection %s was created but no restaurant was imported", collection.get("id"))

        logger.info(
            "Extraction %s: total=%d verified=%d %s=%d failed=%d",
            "preview" if preview else "complete",
            stats.total_mentions,
            stats.verified,
            "would_import" if preview else "imported",
            stats.imported,
            stats.failed,
        )

        return ExtractionResult(
            collection=collection,
            restaurants=outcomes,
            stats=stats,
            logs=logs,
            preview=preview,
        )

    async def batch_extract(
        self,
        items: list[BatchItem],
        preview: bool = False,
        delay_seconds: float = DEFAULT_BATCH_DELAY_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> list[BatchOutcome]:
        outcomes: list[BatchOutcome] = []
        for index, item in enumerate(items):
            if index > 0:
                await sleep(delay_seconds)
            logger.info("[%d/%d] %s", index + 1, len(items), item.url)
            try:
                result = await self.extract(item.url, item.creator_name, preview=preview)
            except Exception as exc:
                logger.error("Batch item failed: %s: %s", item.url, exc)
                outcomes.append(BatchOutcome(item=item, error=str(exc)))
                continue
            outcomes.append(BatchOutcome(item=item, result=result))

        succeeded = sum(1 for outcome in outcomes if outcome.succeeded)
        logger.info("Batch complete: %d succeeded, %d failed", succeeded, len(outcomes) - succeeded)
        return outcomes
