from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


class ExtractRequest(BaseModel):
    url: str
    creatorName: Optional[str] = None
    preview: bool = False


class ExtractStats(BaseModel):
    totalMentions: int = 0
    verified: int = 0
    imported: int = 0
    failed: int = 0


class AuthenticitySummary(BaseModel):
    score: float
    badge: str
    badgeLabel: str
    badgeIcon: str
    level: int
    summary: str
    hasReviewWarning: bool = False


class ExtractedRestaurant(BaseModel):
    name: str
    verified: bool
    imported: bool
    placeId: Optional[str] = None
    restaurantId: Optional[str] = None
    address: Optional[str] = None
    rating: Optional[float] = None
    classification: Optional[str] = None
    venueType: Optional[str] = None
    cuisineStyles: list[str] = Field(default_factory=list)
    authenticity: Optional[AuthenticitySummary] = None
    photoUrls: list[str] = Field(default_factory=list)
    error: Optional[str] = None


class ExtractResponse(BaseModel):
    collection: dict[str, Any]
    restaurants: list[ExtractedRestaurant] = Field(default_factory=list)
    stats: ExtractStats
    logs: list[str] = Field(default_factory=list)
    preview: bool = False
