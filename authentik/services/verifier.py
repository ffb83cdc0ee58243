from __future__ import annotations

import logging
from typing import Literal, Optional

import httpx

from authentik.services.errors import PlacesApiError
from authentik.services.lookup_cache import LookupCache, make_cache_key, normalize_query, round_coordinate
from authentik.services.market_cities import DEFAULT_MARKET_CITY, MarketCity, get_city_location_bias
from authentik.services.places import PlacesClient
from authentik.services.types import PlaceCandidate, PlaceReview, VerifiedPlace
from authentik.services.venue_policy import VenuePolicy

logger = logging.getLogger(__name__)

Classification = Literal["LOCAL_FAVORITE", "TOURIST_SPOT"]

SEARCH_KIND = "places_search"
DETAILS_KIND = "place_details"
DEFAULT_SEARCH_TTL = 7 * 24 * 3600
DEFAULT_DETAILS_TTL = 3 * 24 * 3600

LOCAL_LANGUAGES = frozenset({"vi", "vi-VN"})
LOCAL_FAVORITE_THRESHOLD = 0.4
TOURIST_SPOT_THRESHOLD = 0.2


def local_review_ratio(reviews: list[PlaceReview]) -> float:
    if not reviews:
        return 0.0
    local = sum(1 for review in reviews if review.language in LOCAL_LANGUAGES)
    return local / len(reviews)


def classify_restaurant(place: VerifiedPlace) -> Optional[Classification]:
    """LOCAL_FAVORITE above 40% Vietnamese reviews, TOURIST_SPOT below 20%, None in between."""
    if not place.reviews:
        return None

    ratio = local_review_ratio(place.reviews)
    if ratio > LOCAL_FAVORITE_THRESHOLD:
        return "LOCAL_FAVORITE"
    if ratio < TOURIST_SPOT_THRESHOLD:
        return "TOURIST_SPOT"
    return None


def build_search_query(name: str, address: Optional[str], city: MarketCity) -> str:
    location = address.strip() if address and address.strip() else city.name
    return f"{name.strip()} {location}"


class PlaceVerifier:
    def __init__(
        self,
        places: PlacesClient,
        cache: LookupCache,
        policy: Optional[VenuePolicy] = None,
        city: MarketCity = DEFAULT_MARKET_CITY,
        search_ttl: float = DEFAULT_SEARCH_TTL,
        details_ttl: float = DEFAULT_DETAILS_TTL,
    ) -> None:
        self._places = places
        self._cache = cache
        self._policy = policy or VenuePolicy.load()
        self._search_ttl = search_ttl
        self._details_ttl = details_ttl
        self.city = city

    def for_city(self, city: MarketCity) -> "PlaceVerifier":
        return PlaceVerifier(
            self._places,
            self._cache,
            policy=self._policy,
            city=city,
            search_ttl=self._search_ttl,
            details_ttl=self._details_ttl,
        )

    async def verify(self, name: str, address: Optional[str] = None) -> Optional[VerifiedPlace]:
        query = build_search_query(name, address, self.city)
        try:
            candidates = await self.search(query)
            if not candidates:
                logger.info("No results found for: %s", query)
                return None

            chosen = next((c for c in candidates if self._policy.accepts(c.types)), None)
            if chosen is None:
                top = candidates[0]
                logger.info(
                    "Results for %r are not food venues (top: %s %s, %s)",
                    name,
                    top.name,
                    top.types,
                    self._policy.rejection_reason(top.types),
                )
                return None

            return await self.details(chosen.place_id)
        except (PlacesApiError, httpx.HTTPError) as error:
            logger.error("Error verifying restaurant %r: %s", name, error)
            return None

    async def search(self, query: str) -> list[PlaceCandidate]:
        lat, lng = get_city_location_bias(self.city)
        key = make_cache_key(SEARCH_KIND, normalize_query(query), round_coordinate(lat), round_coordinate(lng))

        cached = await self._cache.get(key)
        if isinstance(cached, list):
            return [PlaceCandidate.model_validate(item) for item in cached]

        candidates = await self._places.search_text(query, (lat, lng))
        await self._cache.put(
            key,
            [candidate.model_dump(mode="json") for candidate in candidates],
            self._search_ttl,
            kind=SEARCH_KIND,
        )
        return candidates

    async def details(self, place_id: str) -> Optional[VerifiedPlace]:
        key = make_cache_key(DETAILS_KIND, place_id)

        cached = await self._cache.get(key)
        if isinstance(cached, dict):
            return VerifiedPlace.model_validate(cached)

        place = await self._places.get_details(place_id)
        if place is not None:
            await self._cache.put(key, place.model_dump(mode="json"), self._details_ttl, kind=DETAILS_KIND)
        return place
