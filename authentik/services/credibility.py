"""
Review credibility filter.

Each review gets a list of suspicion flags; any flag makes it not credible.
Flag names are stable and are stored alongside restaurant data.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, Optional

from authentik.services.types import PlaceReview

TOO_SHORT = "too_short"
GENERIC_ONLY = "generic_only"
EMOJI_ONLY = "emoji_only"
EXCESSIVE_SUPERLATIVES = "excessive_superlatives"
EXTREME_RATING_NO_DETAIL = "extreme_rating_no_detail"
REPETITIVE_TEXT = "repetitive_text"
LACKS_SPECIFICS = "lacks_specifics"

GENERIC_PHRASES = frozenset({
    "good food", "nice place", "recommended", "must try", "great service",
    "amazing food", "delicious", "yummy", "best ever", "highly recommend",
    "tuyệt vời", "rất ngon", "ngon lắm", "quán đẹp", "phục vụ tốt",
    "👍", "⭐", "🔥", "💯", "❤️",
})

SUPERLATIVES = (
    "best", "amazing", "incredible", "perfect", "excellent",
    "fantastic", "wonderful", "tuyệt vời", "hoàn hảo",
)

SPECIFIC_TERMS = (
    "dish", "ordered", "tried", "ate", "drink", "menu", "taste", "flavor",
    "món", "ăn", "uống", "thử", "gọi", "vị", "ngon",
)

EMOJI_ONLY_PATTERN = re.compile(r"^[\U0001F300-\U0001F9FF\u2600-\u26FF\u2700-\u27BF\s]+$")
WORD_SPLIT = re.compile(r"\s+")

WARNING_RATIO = 0.4
STRONG_WARNING_RATIO = 0.6
WARNING_COUNT = 3
STRONG_WARNING_MESSAGE = "Many reviews appear suspicious - proceed with caution"
WARNING_MESSAGE = "Some reviews may not be genuine"


def detect_suspicious_patterns(text: Optional[str], rating: Optional[float] = None) -> list[str]:
    flags: list[str] = []
    text = text or ""
    lower = text.lower()
    length = len(text)

    if length < 20:
        flags.append(TOO_SHORT)

    if length < 40 and lower.strip() in GENERIC_PHRASES:
        flags.append(GENERIC_ONLY)

    if EMOJI_ONLY_PATTERN.match(text.strip()):
        flags.append(EMOJI_ONLY)

    superlative_count = sum(1 for word in SUPERLATIVES if word in lower)
    if superlative_count >= 3 and length < 100:
        flags.append(EXCESSIVE_SUPERLATIVES)

    if rating in (1, 5) and length < 50:
        flags.append(EXTREME_RATING_NO_DETAIL)

    words = WORD_SPLIT.split(lower)
    if len(words) > 5 and len(set(words)) < len(words) * 0.5:
        flags.append(REPETITIVE_TEXT)

    if length > 30 and not any(term in lower for term in SPECIFIC_TERMS):
        flags.append(LACKS_SPECIFICS)

    return flags


def review_flags(review: PlaceReview) -> list[str]:
    return detect_suspicious_patterns(review.text, review.rating)


def is_credible(review: PlaceReview) -> bool:
    return not review_flags(review)


def filter_suspicious_reviews(reviews: Optional[Iterable[PlaceReview]]) -> list[PlaceReview]:
    return [review for review in reviews or () if is_credible(review)]


def warning_message(suspicious_ratio: float) -> Optional[str]:
    if suspicious_ratio > STRONG_WARNING_RATIO:
        return STRONG_WARNING_MESSAGE
    if suspicious_ratio > WARNING_RATIO:
        return WARNING_MESSAGE
    return None


def has_review_warning(suspicious_ratio: float, suspicious_count: int) -> bool:
    return suspicious_ratio > WARNING_RATIO or suspicious_count >= WARNING_COUNT


@dataclass
class ReviewQualityAnalysis:
    total_reviews: int = 0
    credible_reviews: int = 0
    suspicious_reviews: int = 0
    suspicious_ratio: float = 0.0
    has_review_warning: bool = False
    warning_message: Optional[str] = None
    flag_breakdown: dict[str, int] = field(default_factory=dict)


def analyze_review_quality(reviews: Optional[list[PlaceReview]]) -> ReviewQualityAnalysis:
    if not reviews:
        return ReviewQualityAnalysis()

    breakdown: dict[str, int] = {}
    suspicious = 0
    for review in reviews:
        flags = review_flags(review)
        if not flags:
            continue
        suspicious += 1
        for flag in flags:
            breakdown[flag] = breakdown.get(flag, 0) + 1

    ratio = suspicious / len(reviews)
    return ReviewQualityAnalysis(
        total_reviews=len(reviews),
        credible_reviews=len(reviews) - suspicious,
        suspicious_reviews=suspicious,
        suspicious_ratio=ratio,
        has_review_warning=has_review_warning(ratio, suspicious),
        warning_message=warning_message(ratio),
        flag_breakdown=breakdown,
    )
