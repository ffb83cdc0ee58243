from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, Literal

VenueType = Literal["restaurant", "cafe", "street_food", "bar", "bakery", "food_stall"]

DEFAULT_CUISINE = "Vietnamese"

CUISINE_BY_TYPE = {
    "vietnamese_restaurant": "Vietnamese",
    "seafood_restaurant": "Seafood",
    "chinese_restaurant": "Chinese",
    "japanese_restaurant": "Japanese",
    "korean_restaurant": "Korean",
    "thai_restaurant": "Thai",
    "indian_restaurant": "Indian",
    "pizza_restaurant": "Western",
    "hamburger_restaurant": "Western",
}

# (pattern, cuisine, specialty); a dish may match several rows
DISH_RULES: tuple[tuple[re.Pattern[str], str, str], ...] = tuple(
    (re.compile(pattern, re.IGNORECASE), cuisine, specialty)
    for pattern, cuisine, specialty in (
        (r"bún bò|bun bo", "Vietnamese", "Bún Bò"),
        (r"mì quảng|mi quang|mỳ quảng", "Vietnamese", "Mì Quảng"),
        (r"phở|\bpho\b", "Vietnamese", "Phở"),
        (r"bánh mì|banh mi", "Vietnamese", "Bánh Mì"),
        (r"bánh xèo|banh xeo", "Vietnamese", "Bánh Xèo"),
        (r"bánh canh|banh canh", "Vietnamese", "Bánh Canh"),
        (r"bún cá|bun ca", "Vietnamese", "Bún Cá"),
        (r"cơm gà|com ga", "Vietnamese", "Cơm Gà"),
        (r"hải sản|hai san|seafood", "Seafood", "Hải Sản"),
        (r"cà phê|ca phe|coffee", "Cafe", "Cà Phê"),
        (r"\bnem\b|chả|\bcha\b", "Vietnamese", "Nem/Chả"),
        (r"gỏi cuốn|goi cuon|spring roll", "Vietnamese", "Gỏi Cuốn"),
        (r"bò né|bo ne", "Vietnamese", "Bò Né"),
        (r"cháo|\bchao\b", "Vietnamese", "Cháo"),
        (r"lẩu|\blau\b|hotpot", "Vietnamese", "Lẩu"),
        (r"nướng|nuong|bbq", "BBQ", "Nướng"),
    )
)


@dataclass
class VenueClassification:
    venue_type: VenueType = "restaurant"
    cuisine_styles: list[str] = field(default_factory=list)
    specialties: list[str] = field(default_factory=list)


def classify_venue_type(types: Iterable[str]) -> VenueType:
    type_set = set(types)
    if "cafe" in type_set or "coffee_shop" in type_set:
        return "cafe"
    if "bar" in type_set or "night_club" in type_set:
        return "bar"
    if "bakery" in type_set:
        return "bakery"
    if "meal_takeaway" in type_set and "restaurant" not in type_set:
        return "street_food"
    if "food" in type_set and "restaurant" not in type_set:
        return "food_stall"
    return "restaurant"


def _append_unique(items: list[str], value: str) -> None:
    if value not in items:
        items.append(value)


def classify_venue(types: Iterable[str], dishes: Iterable[str] = ()) -> VenueClassification:
    type_list = list(types)
    cuisines: list[str] = []
    specialties: list[str] = []

    for place_type in type_list:
        cuisine = CUISINE_BY_TYPE.get(place_type)
        if cuisine:
            _append_unique(cuisines, cuisine)

    for dish in dishes:
        for pattern, cuisine, specialty in DISH_RULES:
            if pattern.search(dish):
                _append_unique(cuisines, cuisine)
                _append_unique(specialties, specialty)

    if not cuisines:
        cuisines.append(DEFAULT_CUISINE)

    return VenueClassification(
        venue_type=classify_venue_type(type_list),
        cuisine_styles=cuisines,
        specialties=specialties,
    )
