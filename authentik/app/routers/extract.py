# authentik/app/routers/extract.py
from __future__ import annotations

import logging
import time

from fastapi import APIRouter, Depends, HTTPException

from authentik.app.config import get_settings
from authentik.app.deps import get_extraction_pipeline
from authentik.app.schemas.extract import (
    AuthenticitySummary,
    ExtractedRestaurant,
    ExtractRequest,
    ExtractResponse,
    ExtractStats,
)
from authentik.services.errors import (
    CollectionCreationError,
    InvalidURLError,
    MetadataUnavailableError,
    RetryExhaustedError,
    UnsupportedPlatformError,
)
from authentik.services.extraction_pipeline import ExtractionPipeline, ExtractionResult, RestaurantOutcome

log = logging.getLogger("extract")
router = APIRouter(prefix="/admin", tags=["extract"])


def _restaurant_response(outcome: RestaurantOutcome) -> ExtractedRestaurant:
    place = outcome.verified
    authenticity = None
    if outcome.authenticity is not None:
        a = outcome.authenticity
        authenticity = AuthenticitySummary(
            score=a.score,
            badge=a.badge,
            badgeLabel=a.badge_label,
            badgeIcon=a.badge_icon,
            level=a.level,
            summary=a.summary,
            hasReviewWarning=a.review_warning.has_warning,
        )
    photo_urls = [p.url for p in outcome.photos] or [c.url for c in outcome.photo_candidates]

    return ExtractedRestaurant(
        name=outcome.mention.name,
        verified=place is not None,
        imported=outcome.imported,
        placeId=place.place_id if place else None,
        restaurantId=outcome.restaurant_id,
        address=place.formatted_address if place else outcome.mention.address,
        rating=place.rating if place else None,
        classification=outcome.classification,
        venueType=outcome.venue.venue_type if outcome.venue else None,
        cuisineStyles=outcome.venue.cuisine_styles if outcome.venue else [],
        authenticity=authenticity,
        photoUrls=photo_urls,
        error=outcome.error,
    )


def build_extract_response(result: ExtractionResult) -> ExtractResponse:
    return ExtractResponse(
        collection=result.collection,
        restaurants=[_restaurant_response(outcome) for outcome in result.restaurants],
        stats=ExtractStats(**result.stats.to_dict()),
        logs=result.logs,
        preview=result.preview,
    )


@router.post("/extract", response_model=ExtractResponse)
async def extract_collection(
    body: ExtractRequest,
    pipeline: ExtractionPipeline = Depends(get_extraction_pipeline),
):
    t0 = time.time()
    creator = (body.creatorName or "").strip() or get_settings().DEFAULT_CREATOR_NAME
    try:
        result = await pipeline.extract(body.url, creator, preview=body.preview)
    except (InvalidURLError, UnsupportedPlatformError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except MetadataUnavailableError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except RetryExhaustedError as exc:
        log.warning("extract.rate_limited url=%s dt=%.2fs", body.url, time.time() - t0)
        raise HTTPException(status_code=429, detail=str(exc)) from exc
    except CollectionCreationError as exc:
        log.error("extract.collection_fail url=%s error=%s", body.url, exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    log.info(
        "extract.ok url=%s preview=%s stats=%s dt=%.2fs",
        body.url,
        body.preview,
        result.stats.to_dict(),
        time.time() - t0,
    )
    return build_extract_response(result)
