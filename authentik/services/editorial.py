from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Optional

from google.genai.errors import APIError as GeminiAPIError

from authentik.services.errors import RetryExhaustedError
from authentik.services.gemini_client import GeminiClient, prompt_path
from authentik.services.market_cities import MarketCity
from authentik.services.retry import RetryPolicy, retry_async
from authentik.services.types import RestaurantMention, VideoMetadata

logger = logging.getLogger(__name__)

EDITORIAL_PROMPT = prompt_path("editorial.txt")
MAX_DESCRIPTION_CHARS = 1000
MAX_NOTES_CHARS = 300
JSON_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")


@dataclass
class ReviewSummary:
    summary_vi: Optional[str] = None
    summary_en: Optional[str] = None


@dataclass
class EditorialContent:
    name_vi: Optional[str] = None
    name_en: Optional[str] = None
    description_vi: Optional[str] = None
    description_en: Optional[str] = None
    reviews: dict[str, ReviewSummary] = field(default_factory=dict)

    def review_for(self, restaurant_name: str) -> Optional[ReviewSummary]:
        return self.reviews.get(restaurant_name)


def _text(value: object) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def parse_editorial(raw: str) -> Optional[EditorialContent]:
    match = JSON_OBJECT_PATTERN.search(raw or "")
    if not match:
        return None
    try:
        data = json.loads(match.group(0))
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None

    collection = data.get("collection") if isinstance(data.get("collection"), dict) else {}
    reviews: dict[str, ReviewSummary] = {}
    for item in data.get("reviews") or []:
        if not isinstance(item, dict):
            continue
        name = _text(item.get("restaurant_name"))
        if name:
            reviews[name] = ReviewSummary(
                summary_vi=_text(item.get("summary_vi")),
                summary_en=_text(item.get("summary_en")),
            )

    return EditorialContent(
        name_vi=_text(collection.get("name_vi")),
        name_en=_text(collection.get("name_en")),
        description_vi=_text(collection.get("description_vi")),
        description_en=_text(collection.get("description_en")),
        reviews=reviews,
    )


class EditorialWriter:
    """One model request for the collection copy and every restaurant summary."""

    def __init__(self, gemini: Optional[GeminiClient], retry_policy: Optional[RetryPolicy] = None) -> None:
        self._gemini = gemini
        self._retry_policy = retry_policy or RetryPolicy()

    async def generate(
        self,
        metadata: VideoMetadata,
        mentions: list[RestaurantMention],
        creator_name: str,
        city: MarketCity,
    ) -> Optional[EditorialContent]:
        if self._gemini is None or not mentions:
            return None

        payload = {
            "creator": creator_name,
            "target_city": f"{city.name}, {city.country}",
            "title": metadata.title,
            "description": metadata.description[:MAX_DESCRIPTION_CHARS],
            "restaurants": [
                {"name": mention.name, "notes": (mention.notes or "")[:MAX_NOTES_CHARS]}
                for mention in mentions
            ],
        }

        gemini = self._gemini
        try:
            raw = await retry_async(
                lambda: gemini.generate_text(payload, EDITORIAL_PROMPT),
                policy=self._retry_policy,
                operation_name="editorial generation",
            )
        except (RetryExhaustedError, GeminiAPIError) as error:
            logger.error("Editorial generation failed: %s", error)
            return None

        content = parse_editorial(raw)
        if content is None:
            logger.warning("Editorial response was not valid JSON: %.200s", raw)
        return content
