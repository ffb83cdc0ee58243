from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional

from google.genai.errors import APIError as GeminiAPIError

from authentik.services.errors import RetryExhaustedError
from authentik.services.gemini_client import GeminiClient, prompt_path
from authentik.services.market_cities import MarketCity
from authentik.services.retry import RetryPolicy, retry_async
from authentik.services.types import RestaurantMention, VideoMetadata

logger = logging.getLogger(__name__)

EXTRACTION_PROMPT = prompt_path("mention_extraction.txt")

MIN_DESCRIPTION_LENGTH = 30
MIN_NAME_LENGTH = 3
MAX_SOURCE_CHARS = 30000
DEFAULT_PRICE_RANGE = "$"

TIMESTAMP_LINE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?\s+(.+)$", re.MULTILINE)
CODE_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)

SKIP_TERMS = ("intro", "outro", "bts", "tổng hợp", "thông tin", "liên hệ", "end", "credits")

DISH_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"mỳ quảng", re.IGNORECASE), "Mỳ Quảng"),
    (re.compile(r"bún cá", re.IGNORECASE), "Bún Cá"),
    (re.compile(r"bún bò", re.IGNORECASE), "Bún Bò"),
    (re.compile(r"cơm gà", re.IGNORECASE), "Cơm Gà"),
    (re.compile(r"hải sản", re.IGNORECASE), "Hải Sản"),
    (re.compile(r"phở", re.IGNORECASE), "Phở"),
    (re.compile(r"bánh mì", re.IGNORECASE), "Bánh Mì"),
    (re.compile(r"bánh xèo", re.IGNORECASE), "Bánh Xèo"),
    (re.compile(r"bánh canh", re.IGNORECASE), "Bánh Canh"),
    (re.compile(r"coffee|cà phê", re.IGNORECASE), "Coffee"),
)


def infer_dish(name: str) -> Optional[str]:
    for pattern, dish in DISH_PATTERNS:
        if pattern.search(name):
            return dish
    return None


def extract_mentions_from_timestamps(description: str, city: MarketCity) -> list[RestaurantMention]:
    """Chapter lines like '0:54 Mỳ Quảng Nhung' or '1:02:15 Bún cá 109'."""
    if not description or len(description) < MIN_DESCRIPTION_LENGTH:
        return []

    mentions: list[RestaurantMention] = []
    for match in TIMESTAMP_LINE.finditer(description):
        first, second, third, raw_name = match.groups()
        name = raw_name.strip()
        lowered = name.lower()
        if any(term in lowered for term in SKIP_TERMS):
            continue

        if third:
            hours, minutes, seconds = int(first), int(second), int(third)
            label = f"{first}:{second}:{third}"
        else:
            hours, minutes, seconds = 0, int(first), int(second)
            label = f"{first}:{second}"

        dish = infer_dish(name)
        mentions.append(
            RestaurantMention(
                name=name,
                address=city.name,
                dishes=[dish] if dish else [],
                price_range=DEFAULT_PRICE_RANGE,
                notes=f"Featured at {label} in the video",
                timestamp=hours * 3600 + minutes * 60 + seconds,
            )
        )
    return mentions


def _first_json_array(text: str) -> Optional[str]:
    """Slice of the first balanced top-level [...] in text, ignoring brackets inside strings."""
    start = text.find("[")
    if start < 0:
        return None

    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "[":
            depth += 1
        elif char == "]":
            depth -= 1
            if depth == 0:
                return text[start:index + 1]
    return None


def _clean_mention(item: Any) -> Optional[RestaurantMention]:
    if not isinstance(item, dict):
        return None
    name = item.get("name")
    if not isinstance(name, str) or len(name.strip()) < MIN_NAME_LENGTH:
        return None

    address = item.get("address")
    notes = item.get("notes")
    return RestaurantMention(
        name=name,
        address=address.strip() if isinstance(address, str) and address.strip() else None,
        dishes=item.get("dishes"),
        price_range=item.get("priceRange") or item.get("price_range") or DEFAULT_PRICE_RANGE,
        notes=notes if isinstance(notes, str) else None,
        timestamp=item.get("timestamp"),
    )


def parse_model_mentions(raw_text: str) -> list[RestaurantMention]:
    if not raw_text:
        return []

    unfenced = CODE_FENCE.sub("", raw_text).strip()
    candidate = _first_json_array(unfenced)
    if candidate is None:
        logger.warning("Model output has no JSON array: %.200s", raw_text)
        return []

    try:
        data = json.loads(candidate)
    except ValueError as error:
        logger.warning("Model output is not valid JSON (%s): %.200s", error, raw_text)
        return []

    if not isinstance(data, list):
        return []

    mentions = [_clean_mention(item) for item in data]
    return [mention for mention in mentions if mention is not None]


class MentionExtractor:
    def __init__(
        self,
        gemini: Optional[GeminiClient],
        retry_policy: Optional[RetryPolicy] = None,
    ) -> None:
        self._gemini = gemini
        self._retry_policy = retry_policy or RetryPolicy()

    async def extract(
        self,
        metadata: VideoMetadata,
        city: MarketCity,
        transcript: Optional[str] = None,
    ) -> list[RestaurantMention]:
        from_timestamps = extract_mentions_from_timestamps(metadata.description, city)
        if from_timestamps:
            logger.info("Found %d mentions in description timestamps, skipping model", len(from_timestamps))
            return from_timestamps

        if self._gemini is None:
            logger.warning("GEMINI_API_KEY not set, skipping model extraction")
            return []

        source = "transcript" if transcript else "description"
        text = transcript or metadata.description
        if not text or not text.strip():
            logger.info("No transcript or description to extract from")
            return []

        payload = {
            "target_city": city.name,
            "title": metadata.title,
            "channel": metadata.channel_name,
            "source": source,
            "text": text[:MAX_SOURCE_CHARS],
        }

        gemini = self._gemini
        try:
            raw = await retry_async(
                lambda: gemini.generate_text(payload, EXTRACTION_PROMPT),
                policy=self._retry_policy,
                operation_name="mention extraction",
            )
        except (RetryExhaustedError, GeminiAPIError) as error:
            logger.error("Mention extraction failed: %s", error)
            return []

        mentions = parse_model_mentions(raw)
        logger.info("Model extracted %d mentions from %s", len(mentions), source)
        return mentions
