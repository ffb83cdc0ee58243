from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

VENUE_TYPES_PATH = Path(__file__).resolve().parent.parent / "data" / "venue_types.json"


@dataclass(frozen=True)
class VenuePolicy:
    """Allow/deny rules for Places types. A food type always wins over an excluded one."""

    excluded_types: frozenset[str]
    food_types: frozenset[str]
    food_type_substrings: tuple[str, ...] = ("restaurant",)

    @classmethod
    def from_dict(cls, data: dict) -> "VenuePolicy":
        return cls(
            excluded_types=frozenset(data.get("excluded_types", [])),
            food_types=frozenset(data.get("food_types", [])),
            food_type_substrings=tuple(data.get("food_type_substrings", ["restaurant"])),
        )

    @classmethod
    def load(cls, path: Path = VENUE_TYPES_PATH) -> "VenuePolicy":
        return cls.from_dict(json.loads(path.read_text(encoding="utf-8")))

    def is_food_type(self, place_type: str) -> bool:
        if place_type in self.food_types:
            return True
        return any(fragment in place_type for fragment in self.food_type_substrings)

    def accepts(self, types: Iterable[str]) -> bool:
        type_list = list(types)
        if not type_list:
            return False
        has_food_type = any(self.is_food_type(place_type) for place_type in type_list)
        if not has_food_type and any(t in self.excluded_types for t in type_list):
            return False
        return has_food_type

    def rejection_reason(self, types: Iterable[str]) -> str:
        type_list = list(types)
        if not type_list:
            return "no types"
        excluded = [t for t in type_list if t in self.excluded_types]
        if excluded:
            return f"excluded types {excluded}"
        return "no food type"
