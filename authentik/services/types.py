from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from authentik.services.ids import Platform

PhotoCategory = Literal["food", "interior", "exterior", "unknown"]


@dataclass(frozen=True)
class ContentSource:
    url: str
    platform: Platform


class VideoMetadata(BaseModel):
    video_id: str = ""
    title: str = ""
    description: str = ""
    channel_name: str = ""
    channel_id: str = ""
    published_at: Optional[str] = None
    duration_seconds: int = 0
    view_count: int = 0
    like_count: int = 0
    captions: Optional[str] = None


class RestaurantMention(BaseModel):
    name: str
    address: Optional[str] = None
    dishes: list[str] = Field(default_factory=list)
    price_range: str = "$"
    notes: Optional[str] = None
    timestamp: int = 0

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        return value.strip()

    @field_validator("dishes", mode="before")
    @classmethod
    def _coerce_dishes(cls, value: object) -> list[str]:
        if isinstance(value, str):
            return [value] if value.strip() else []
        if isinstance(value, list):
            return [str(item).strip() for item in value if str(item).strip()]
        return []

    @field_validator("timestamp", mode="before")
    @classmethod
    def _coerce_timestamp(cls, value: object) -> int:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return 0
        return int(value)


class GeoPoint(BaseModel):
    lat: float = 0.0
    lng: float = 0.0


class PhotoRef(BaseModel):
    photo_reference: str
    width: int = 0
    height: int = 0


class PlaceReview(BaseModel):
    author_name: str = "Anonymous"
    author_uri: Optional[str] = None
    rating: float = 0
    text: str = ""
    time: float = 0
    language: str = "en"


class OpeningHours(BaseModel):
    open_now: Optional[bool] = None
    weekday_text: list[str] = Field(default_factory=list)


class PlaceCandidate(BaseModel):
    place_id: str
    name: str = ""
    formatted_address: str = ""
    location: GeoPoint = Field(default_factory=GeoPoint)
    rating: Optional[float] = None
    user_ratings_total: Optional[int] = None
    price_level: Optional[int] = None
    types: list[str] = Field(default_factory=list)
    photos: list[PhotoRef] = Field(default_factory=list)


class VerifiedPlace(PlaceCandidate):
    phone: Optional[str] = None
    website: Optional[str] = None
    opening_hours: Optional[OpeningHours] = None
    reviews: list[PlaceReview] = Field(default_factory=list)
