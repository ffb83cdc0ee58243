"""
Google Places API (New) client.

Responses are converted into the flat ``PlaceCandidate`` / ``VerifiedPlace``
models so the rest of the pipeline never sees the wire format.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional
from urllib.parse import urlencode

import httpx

from authentik.services.errors import ConfigurationError, PlacesApiError
from authentik.services.types import (
    GeoPoint,
    OpeningHours,
    PhotoRef,
    PlaceCandidate,
    PlaceReview,
    VerifiedPlace,
)

logger = logging.getLogger(__name__)

PLACES_API_URL = "https://places.googleapis.com/v1"
LEGACY_PHOTO_URL = "https://maps.googleapis.com/maps/api/place/photo"

SEARCH_FIELD_MASK = ",".join(
    f"places.{field}"
    for field in (
        "id",
        "displayName",
        "formattedAddress",
        "location",
        "rating",
        "userRatingCount",
        "priceLevel",
        "types",
        "photos",
    )
)
DETAILS_FIELD_MASK = (
    "id,displayName,formattedAddress,location,rating,userRatingCount,priceLevel,types,photos,"
    "nationalPhoneNumber,regularOpeningHours,currentOpeningHours,websiteUri,reviews"
)

PRICE_LEVELS = {
    "PRICE_LEVEL_FREE": 0,
    "PRICE_LEVEL_INEXPENSIVE": 1,
    "PRICE_LEVEL_MODERATE": 2,
    "PRICE_LEVEL_EXPENSIVE": 3,
    "PRICE_LEVEL_VERY_EXPENSIVE": 4,
}

DEFAULT_RADIUS_METERS = 5000.0
DEFAULT_REVIEW_LANGUAGE = "en"


def _convert_price_level(value: Optional[str]) -> Optional[int]:
    return PRICE_LEVELS.get(value) if value else None


def _parse_publish_time(value: Optional[str]) -> float:
    if not value:
        return 0
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp()
    except ValueError:
        return 0


def _convert_review(raw: dict[str, Any]) -> PlaceReview:
    author = raw.get("authorAttribution") or {}
    text = raw.get("text") or {}
    original = raw.get("originalText") or {}
    return PlaceReview(
        author_name=author.get("displayName") or "Anonymous",
        author_uri=author.get("uri"),
        rating=raw.get("rating") or 0,
        text=text.get("text") or original.get("text") or "",
        time=_parse_publish_time(raw.get("publishTime")),
        language=text.get("languageCode") or original.get("languageCode") or DEFAULT_REVIEW_LANGUAGE,
    )


def _candidate_fields(place: dict[str, Any]) -> dict[str, Any]:
    location = place.get("location") or {}
    return {
        "place_id": place.get("id") or "",
        "name": (place.get("displayName") or {}).get("text") or "",
        "formatted_address": place.get("formattedAddress") or "",
        "location": GeoPoint(lat=location.get("latitude") or 0, lng=location.get("longitude") or 0),
        "rating": place.get("rating"),
        "user_ratings_total": place.get("userRatingCount"),
        "price_level": _convert_price_level(place.get("priceLevel")),
        "types": place.get("types") or [],
        "photos": [
            PhotoRef(
                photo_reference=photo.get("name") or "",
                width=photo.get("widthPx") or 0,
                height=photo.get("heightPx") or 0,
            )
            for photo in place.get("photos") or []
            if photo.get("name")
        ],
    }


def convert_search_result(place: dict[str, Any]) -> PlaceCandidate:
    return PlaceCandidate(**_candidate_fields(place))


def convert_place_details(place: dict[str, Any]) -> VerifiedPlace:
    regular = place.get("regularOpeningHours")
    current = place.get("currentOpeningHours") or {}
    opening_hours = None
    if regular:
        opening_hours = OpeningHours(
            open_now=current.get("openNow"),
            weekday_text=regular.get("weekdayDescriptions") or [],
        )

    return VerifiedPlace(
        **_candidate_fields(place),
        phone=place.get("nationalPhoneNumber"),
        website=place.get("websiteUri"),
        opening_hours=opening_hours,
        reviews=[_convert_review(review) for review in place.get("reviews") or []],
    )


def clean_place_id(place_id: str) -> str:
    return place_id[len("places/"):] if place_id.startswith("places/") else place_id


class PlacesClient:
    def __init__(self, api_key: str, http: httpx.AsyncClient, radius_meters: float = DEFAULT_RADIUS_METERS) -> None:
        if not api_key:
            raise ConfigurationError("GOOGLE_PLACES_API_KEY is not configured")
        self._api_key = api_key
        self._http = http
        self._radius_meters = radius_meters

    def _headers(self, field_mask: str) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "X-Goog-Api-Key": self._api_key,
            "X-Goog-FieldMask": field_mask,
        }

    async def search_text(
        self,
        query: str,
        location: Optional[tuple[float, float]] = None,
    ) -> list[PlaceCandidate]:
        body: dict[str, Any] = {"textQuery": query}
        if location is not None:
            lat, lng = location
            body["locationBias"] = {
                "circle": {
                    "center": {"latitude": lat, "longitude": lng},
                    "radius": float(self._radius_meters),
                }
            }

        response = await self._http.post(
            f"{PLACES_API_URL}/places:searchText",
            json=body,
            headers=self._headers(SEARCH_FIELD_MASK),
        )
        if not response.is_success:
            raise PlacesApiError(response.status_code, response.text)

        places = response.json().get("places") or []
        return [convert_search_result(place) for place in places]

    async def get_details(self, place_id: str) -> Optional[VerifiedPlace]:
        clean_id = clean_place_id(place_id)
        response = await self._http.get(
            f"{PLACES_API_URL}/places/{clean_id}",
            headers=self._headers(DETAILS_FIELD_MASK),
        )
        if response.status_code == 404:
            logger.warning("Place not found: %s", clean_id)
            return None
        if not response.is_success:
            raise PlacesApiError(response.status_code, response.text)
        return convert_place_details(response.json())

    def photo_url(self, photo_reference: str, max_width: int = 800) -> str:
        if photo_reference.startswith("places/"):
            return f"{PLACES_API_URL}/{photo_reference}/media?maxWidthPx={max_width}&key={self._api_key}"
        params = urlencode({"photo_reference": photo_reference, "maxwidth": max_width, "key": self._api_key})
        return f"{LEGACY_PHOTO_URL}?{params}"
