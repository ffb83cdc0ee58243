from __future__ import annotations

from typing import Any, Optional

import pytest

from authentik.app.domain.errors import RepositoryError, StorageError
from authentik.app.infra.db.base import CatalogRepository
from authentik.services.editorial import EditorialContent, ReviewSummary
from authentik.services.errors import CollectionCreationError, ConfigurationError, UnsupportedPlatformError
from authentik.services.extraction_pipeline import (
    PREVIEW_COLLECTION_ID,
    BatchItem,
    ExtractionPipeline,
    build_restaurant_row,
    channel_attribution,
)
from authentik.services.authenticity import score_authenticity
from authentik.services.ingest import IngestResult
from authentik.services.market_cities import get_market_city
from authentik.services.photo_pipeline import PhotoCandidate, PhotoResult
from authentik.services.types import (
    ContentSource,
    GeoPoint,
    PhotoRef,
    PlaceReview,
    RestaurantMention,
    VerifiedPlace,
    VideoMetadata,
)
from authentik.services.venue_classifier import classify_venue

VIDEO_URL = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"


def _place(place_id: str, name: str) -> VerifiedPlace:
    return VerifiedPlace(
        place_id=place_id,
        name=name,
        formatted_address=f"{name}, Da Nang",
        location=GeoPoint(lat=16.06, lng=108.21),
        rating=4.5,
        user_ratings_total=120,
        price_level=1,
        types=["vietnamese_restaurant", "restaurant"],
        photos=[PhotoRef(photo_reference=f"{place_id}-photo", width=800, height=1000)],
        reviews=[PlaceReview(text="Tô mì quảng ăn rất vừa miệng, nước dùng đậm đà.", rating=4, language="vi")],
    )


PLACES = {
    "Mỳ Quảng Bà Mua": _place("place-mua", "Mỳ Quảng Bà Mua"),
    "Bún Chả Cá 109": _place("place-109", "Bún Chả Cá 109"),
}


def _ingest_result(names: list[str]) -> IngestResult:
    return IngestResult(
        source=ContentSource(url=VIDEO_URL, platform="youtube"),
        metadata=VideoMetadata(
            video_id="dQw4w9WgXcQ",
            title="Ăn sáng Đà Nẵng",
            description="Ba quán ăn sáng",
            channel_name="Foodie Đà Nẵng",
            channel_id="UC123",
        ),
        city=get_market_city("da-nang"),
        transcript=None,
        transcript_source="description",
        mentions=[RestaurantMention(name=name, dishes=["Mỳ Quảng"], notes=f"notes for {name}") for name in names],
    )


class IngestorStub:
    def __init__(self, result: IngestResult | Exception) -> None:
        self.result = result
        self.urls: list[str] = []

    async def ingest(self, url: str) -> IngestResult:
        self.urls.append(url)
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


class VerifierStub:
    def __init__(self, places: dict[str, VerifiedPlace], broken: tuple[str, ...] = ()) -> None:
        self.places = places
        self.broken = broken
        self.cities: list[str] = []

    def for_city(self, city):
        self.cities.append(city.id)
        return self

    async def verify(self, name: str, address: Optional[str] = None) -> Optional[VerifiedPlace]:
        if name in self.broken:
            raise RuntimeError(f"verification exploded for {name}")
        return self.places.get(name)


class CatalogStub(CatalogRepository):
    def __init__(
        self,
        fail_collection: bool = False,
        fail_upsert: tuple[str, ...] = (),
        fail_link: bool = False,
    ) -> None:
        self.fail_collection = fail_collection
        self.fail_upsert = fail_upsert
        self.fail_link = fail_link
        self.collections: list[dict[str, Any]] = []
        self.restaurants: list[dict[str, Any]] = []
        self.links: list[tuple] = []
        self.photos: dict[str, list[str]] = {}

    @property
    def write_count(self) -> int:
        return len(self.collections) + len(self.restaurants) + len(self.links) + len(self.photos)

    def create_collection(self, data: dict[str, Any]) -> dict[str, Any]:
        if self.fail_collection:
            raise RepositoryError("create_collection", "permission denied")
        row = {"id": f"col-{len(self.collections) + 1}", **data}
        self.collections.append(row)
        return row

    def upsert_restaurant(self, data: dict[str, Any]) -> str:
        if data["google_place_id"] in self.fail_upsert:
            raise RepositoryError("upsert_restaurant", "constraint violated")
        self.restaurants.append(data)
        return f"rest-{data['google_place_id']}"

    def link_restaurant(self, collection_id, restaurant_id, notes, dishes, summary_en=None, summary_vi=None) -> None:
        if self.fail_link:
            raise RepositoryError("link_restaurant", "foreign key violated")
        self.links.append((collection_id, restaurant_id, notes, dishes, summary_en, summary_vi))

    def update_restaurant_photos(self, restaurant_id: str, photo_urls: list[str]) -> None:
        self.photos[restaurant_id] = photo_urls


class PhotosStub:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.processed: list[tuple[str, str]] = []

    def preview_photos(self, place: VerifiedPlace) -> list[PhotoCandidate]:
        return [PhotoCandidate(photo_reference=p.photo_reference, url="https://photos.test", category="food", score=70) for p in place.photos]

    async def process(self, place: VerifiedPlace, collection_slug: str) -> list[PhotoResult]:
        if self.fail:
            raise StorageError("bucket offline")
        self.processed.append((place.place_id, collection_slug))
        return [PhotoResult(url=f"https://cdn.test/{place.place_id}.jpg", storage_key="k", category="food", enhanced=False)]


class EditorialStub:
    def __init__(self, content: Optional[EditorialContent]) -> None:
        self.content = content

    async def generate(self, metadata, mentions, creator_name, city) -> Optional[EditorialContent]:
        return self.content


THREE_MENTIONS = ["Mỳ Quảng Bà Mua", "Quán Không Tồn Tại", "Bún Chả Cá 109"]


class TestPreview:
    async def test_preview_stats_and_zero_writes(self) -> None:
        catalog = CatalogStub()
        photos = PhotosStub()
        pipeline = ExtractionPipeline(
            IngestorStub(_ingest_result(THREE_MENTIONS)),
            VerifierStub(PLACES),
            catalog=catalog,
            photos=photos,
        )

        result = await pipeline.extract(VIDEO_URL, "Foodie", preview=True)

        assert result.stats.to_dict() == {"totalMentions": 3, "verified": 2, "imported": 2, "failed": 1}
        assert result.preview is True
        assert catalog.write_count == 0
        assert photos.processed == []
        assert result.collection["id"] == PREVIEW_COLLECTION_ID
        assert result.collection["url_key"] == "an-sang-da-nang"
        assert result.logs == ["Failed to process Quán Không Tồn Tại", "1 mentions failed verification/import"]

    async def test_preview_computes_scores(self) -> None:
        pipeline = ExtractionPipeline(IngestorStub(_ingest_result(THREE_MENTIONS)), VerifierStub(PLACES), photos=PhotosStub())

        result = await pipeline.extract(VIDEO_URL, "Foodie", preview=True)

        verified = [o for o in result.restaurants if o.verified is not None]
        assert all(o.authenticity is not None for o in verified)
        assert all(o.venue is not None and "Vietnamese" in o.venue.cuisine_styles for o in verified)
        assert all(o.imported is False and o.photo_candidates for o in verified)

    async def test_verifier_scoped_to_city(self) -> None:
        verifier = VerifierStub(PLACES)
        pipeline = ExtractionPipeline(IngestorStub(_ingest_result([])), verifier)

        await pipeline.extract(VIDEO_URL, "Foodie", preview=True)

        assert verifier.cities == ["da-nang"]


class TestImport:
    async def test_imports_links_and_photos(self) -> None:
        catalog = CatalogStub()
        photos = PhotosStub()
        editorial = EditorialContent(
            name_vi="Ăn sáng ở Đà Nẵng",
            name_en="Breakfast in Da Nang",
            reviews={"Mỳ Quảng Bà Mua": ReviewSummary(summary_vi="Mỳ ngon", summary_en="Great noodles")},
        )
        pipeline = ExtractionPipeline(
            IngestorStub(_ingest_result(THREE_MENTIONS)),
            VerifierStub(PLACES),
            catalog=catalog,
            photos=photos,
            editorial=EditorialStub(editorial),
        )

        result = await pipeline.extract(VIDEO_URL, "Foodie")

        assert result.stats.to_dict() == {"totalMentions": 3, "verified": 2, "imported": 2, "failed": 1}
        collection = catalog.collections[0]
        assert collection["name_vi"] == "Ăn sáng ở Đà Nẵng"
        assert collection["name_en"] == "Breakfast in Da Nang"
        assert collection["tags"] == ["Đà Nẵng", "Da Nang"]
        assert collection["source_channel_url"] == "https://www.youtube.com/channel/UC123"
        assert [r["google_place_id"] for r in catalog.restaurants] == ["place-mua", "place-109"]
        assert catalog.links[0] == ("col-1", "rest-place-mua", "notes for Mỳ Quảng Bà Mua", ["Mỳ Quảng"], "Great noodles", "Mỳ ngon")
        assert catalog.links[1][4:] == (None, None)
        assert photos.processed == [("place-mua", "an-sang-o-da-nang"), ("place-109", "an-sang-o-da-nang")]
        assert catalog.photos["rest-place-mua"] == ["https://cdn.test/place-mua.jpg"]

    async def test_collection_name_falls_back_to_title(self) -> None:
        catalog = CatalogStub()
        pipeline = ExtractionPipeline(IngestorStub(_ingest_result([])), VerifierStub(PLACES), catalog=catalog)

        await pipeline.extract(VIDEO_URL, "Foodie")

        assert catalog.collections[0]["name_vi"] == "Ăn sáng Đà Nẵng"
        assert catalog.collections[0]["creator_name"] == "Foodie"

    async def test_partial_failure_continues(self) -> None:
        catalog = CatalogStub()
        pipeline = ExtractionPipeline(
            IngestorStub(_ingest_result(["Mỳ Quảng Bà Mua", "Bún Chả Cá 109"])),
            VerifierStub(PLACES, broken=("Mỳ Quảng Bà Mua",)),
            catalog=catalog,
        )

        result = await pipeline.extract(VIDEO_URL, "Foodie")

        assert result.stats.to_dict() == {"totalMentions": 2, "verified": 1, "imported": 1, "failed": 1}
        assert "verification exploded" in result.restaurants[0].error
        assert result.restaurants[1].restaurant_id == "rest-place-109"

    async def test_import_error_counts_as_failed(self) -> None:
        catalog = CatalogStub(fail_upsert=("place-mua",))
        pipeline = ExtractionPipeline(
            IngestorStub(_ingest_result(["Mỳ Quảng Bà Mua", "Bún Chả Cá 109"])),
            VerifierStub(PLACES),
            catalog=catalog,
        )

        result = await pipeline.extract(VIDEO_URL, "Foodie")

        assert result.stats.to_dict() == {"totalMentions": 2, "verified": 2, "imported": 1, "failed": 1}
        assert len(catalog.links) == 1

    async def test_link_error_keeps_mention_verified(self) -> None:
        catalog = CatalogStub(fail_link=True)
        photos = PhotosStub()
        pipeline = ExtractionPipeline(
            IngestorStub(_ingest_result(["Mỳ Quảng Bà Mua"])),
            VerifierStub(PLACES),
            catalog=catalog,
            photos=photos,
        )

        result = await pipeline.extract(VIDEO_URL, "Foodie")

        assert result.stats.to_dict() == {"totalMentions": 1, "verified": 1, "imported": 0, "failed": 1}
        outcome = result.restaurants[0]
        assert outcome.verified is not None
        assert outcome.restaurant_id == "rest-place-mua"
        assert outcome.imported is False
        assert "foreign key violated" in outcome.error
        assert photos.processed == []
        assert result.logs == ["1 mentions failed verification/import"]

    async def test_photo_failure_does_not_fail_mention(self) -> None:
        catalog = CatalogStub()
        pipeline = ExtractionPipeline(
            IngestorStub(_ingest_result(["Mỳ Quảng Bà Mua"])),
            VerifierStub(PLACES),
            catalog=catalog,
            photos=PhotosStub(fail=True),
        )

        result = await pipeline.extract(VIDEO_URL, "Foodie")

        assert result.stats.imported == 1
        assert result.stats.failed == 0
        assert catalog.photos == {}

    async def test_collection_failure_is_fatal(self) -> None:
        catalog = CatalogStub(fail_collection=True)
        verifier = VerifierStub(PLACES)
        pipeline = ExtractionPipeline(IngestorStub(_ingest_result(THREE_MENTIONS)), verifier, catalog=catalog)

        with pytest.raises(CollectionCreationError, match="permission denied"):
            await pipeline.extract(VIDEO_URL, "Foodie")

        assert catalog.restaurants == []
        assert verifier.cities == []

    async def test_import_requires_catalog(self) -> None:
        pipeline = ExtractionPipeline(IngestorStub(_ingest_result([])), VerifierStub(PLACES))

        with pytest.raises(ConfigurationError):
            await pipeline.extract(VIDEO_URL, "Foodie")


class TestBatch:
    async def test_failing_video_does_not_stop_batch(self) -> None:
        delays: list[float] = []

        async def sleep(seconds: float) -> None:
            delays.append(seconds)

        class SwitchingIngestor:
            async def ingest(self, url: str) -> IngestResult:
                if "example.com" in url:
                    raise UnsupportedPlatformError(url)
                return _ingest_result(["Mỳ Quảng Bà Mua"])

        pipeline = ExtractionPipeline(SwitchingIngestor(), VerifierStub(PLACES))
        items = [
            BatchItem(url="https://example.com/video", creator_name="A"),
            BatchItem(url=VIDEO_URL, creator_name="B"),
        ]

        outcomes = await pipeline.batch_extract(items, preview=True, delay_seconds=3, sleep=sleep)

        assert [o.succeeded for o in outcomes] == [False, True]
        assert outcomes[1].result.stats.imported == 1
        assert delays == [3]


class TestRowBuilders:
    def test_restaurant_row(self) -> None:
        place = PLACES["Mỳ Quảng Bà Mua"]
        authenticity = score_authenticity(place)

        row = build_restaurant_row(place, "LOCAL_FAVORITE", authenticity, classify_venue(place.types, ["Mỳ Quảng"]))

        assert row["location"] == "POINT(108.21 16.06)"
        assert row["cuisine_type"] == ["Vietnamese"]
        assert row["classification"] == "LOCAL_FAVORITE"
        assert row["authenticity_details"]["badge"] == authenticity.badge
        assert row["google_user_ratings_total"] == 120

    def test_tiktok_attribution_has_no_channel_url(self) -> None:
        ingested = _ingest_result([])
        ingested.source = ContentSource(url="https://www.tiktok.com/@a/video/1", platform="tiktok")

        assert channel_attribution(ingested, "Foodie") == {
            "source_channel_id": None,
            "source_channel_url": None,
            "source_channel_name": "Foodie Đà Nẵng",
        }
