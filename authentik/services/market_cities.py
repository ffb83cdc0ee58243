from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from typing import Iterable, Optional, Union


@dataclass(frozen=True)
class MarketCity:
    id: str
    name: str
    country: str
    latitude: float
    longitude: float
    aliases: tuple[str, ...]


MARKET_CITIES: tuple[MarketCity, ...] = (
    MarketCity("da-nang", "Da Nang", "Vietnam", 16.0544, 108.2022, ("da nang", "đà nẵng", "danang")),
    MarketCity("da-lat", "Da Lat", "Vietnam", 11.9404, 108.4583, ("da lat", "đà lạt", "dalat")),
    MarketCity("nha-trang", "Nha Trang", "Vietnam", 12.2388, 109.1967, ("nha trang", "nhatrang")),
    MarketCity("ha-noi", "Ha Noi", "Vietnam", 21.0278, 105.8342, ("ha noi", "hanoi", "hà nội")),
    MarketCity(
        "ho-chi-minh",
        "Ho Chi Minh City",
        "Vietnam",
        10.8231,
        106.6297,
        ("ho chi minh", "ho chi minh city", "hồ chí minh", "hcm", "hcmc", "saigon", "sài gòn"),
    ),
    MarketCity("hue", "Hue", "Vietnam", 16.4637, 107.5909, ("hue", "huế")),
    MarketCity("singapore", "Singapore", "Singapore", 1.3521, 103.8198, ("singapore", "sg")),
)

_CITY_BY_ID = {city.id: city for city in MARKET_CITIES}

DEFAULT_MARKET_CITY = _CITY_BY_ID["da-nang"]

COLLECTION_CITY_TAGS: dict[str, tuple[str, ...]] = {
    "da-nang": ("Đà Nẵng", "Da Nang"),
    "da-lat": ("Đà Lạt", "Da Lat", "Dalat"),
    "nha-trang": ("Nha Trang",),
    "ha-noi": ("Hà Nội", "Ha Noi"),
    "ho-chi-minh": ("Hồ Chí Minh", "Ho Chi Minh City", "Saigon"),
    "hue": ("Huế", "Hue"),
    "singapore": ("Singapore",),
}

_ALL_CITY_TAGS = frozenset(tag for tags in COLLECTION_CITY_TAGS.values() for tag in tags)

_WHITESPACE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """Lower-case and strip diacritics so 'Đà Nẵng' and 'da nang' compare equal."""
    decomposed = unicodedata.normalize("NFD", text)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.replace("đ", "d").replace("Đ", "D").lower()


def get_market_city(city_id: Optional[str]) -> MarketCity:
    if not city_id:
        return DEFAULT_MARKET_CITY
    return _CITY_BY_ID.get(city_id, DEFAULT_MARKET_CITY)


def detect_market_city_from_text(*texts: Optional[str]) -> MarketCity:
    combined = _WHITESPACE.sub(" ", " ".join(t for t in texts if t)).strip()
    if not combined:
        return DEFAULT_MARKET_CITY

    haystack = normalize_text(combined)
    for city in MARKET_CITIES:
        if any(normalize_text(alias) in haystack for alias in city.aliases):
            return city

    return DEFAULT_MARKET_CITY


def get_city_location_bias(city: MarketCity) -> tuple[float, float]:
    return city.latitude, city.longitude


def get_collection_city_tags(city: Union[MarketCity, str]) -> list[str]:
    city_id = city if isinstance(city, str) else city.id
    return list(COLLECTION_CITY_TAGS.get(city_id, ()))


def replace_collection_city_tags(
    existing_tags: Optional[Iterable[str]],
    city: Union[MarketCity, str],
) -> list[str]:
    """Swap any known city tags for the city's canonical set, keeping other tags in order."""
    merged: list[str] = []

    for tag in existing_tags or ():
        cleaned = tag.strip()
        if cleaned and cleaned not in _ALL_CITY_TAGS and cleaned not in merged:
            merged.append(cleaned)

    for tag in get_collection_city_tags(city):
        if tag not in merged:
            merged.append(tag)

    return merged
