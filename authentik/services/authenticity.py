from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Literal, Optional

from authentik.services.credibility import filter_suspicious_reviews, has_review_warning, warning_message
from authentik.services.market_cities import DEFAULT_MARKET_CITY
from authentik.services.types import VerifiedPlace
from authentik.services.verifier import local_review_ratio

SignalValue = Literal["positive", "neutral", "negative"]

NEUTRAL_SCORE = 0.5
LIMITED_REVIEWS_SCORE = 0.3

LOCAL_TYPES = frozenset({"restaurant", "food", "meal_delivery", "meal_takeaway"})
TOURIST_TYPES = frozenset({"tourist_attraction", "point_of_interest"})


@dataclass(frozen=True)
class Badge:
    code: str
    label: str
    icon: str
    level: int
    min_score: float


BADGES: tuple[Badge, ...] = (
    Badge("LOCAL_GEM", "badge.localGem", "🏆", 5, 0.8),
    Badge("NEIGHBORHOOD_SPOT", "badge.neighborhoodSpot", "🏠", 4, 0.65),
    Badge("MIXED_CROWD", "badge.mixedCrowd", "🤝", 3, 0.45),
    Badge("TOURIST_FAVORITE", "badge.touristFavorite", "📸", 2, 0.25),
    Badge("TOURIST_TRAP", "badge.touristTrap", "⚠️", 1, 0.0),
)


@dataclass
class AuthenticitySignal:
    name: str
    value: SignalValue
    description: str
    icon: str


@dataclass
class ReviewWarning:
    has_warning: bool = False
    message: Optional[str] = None
    suspicious_count: int = 0
    total_count: int = 0


@dataclass
class AuthenticityAssessment:
    score: float
    badge: str
    badge_label: str
    badge_icon: str
    level: int
    summary: str
    signals: list[AuthenticitySignal] = field(default_factory=list)
    review_warning: ReviewWarning = field(default_factory=ReviewWarning)

    def to_dict(self) -> dict[str, Any]:
        """camelCase shape stored in restaurants.authenticity_details."""
        warning = self.review_warning
        return {
            "score": self.score,
            "badge": self.badge,
            "badgeLabel": self.badge_label,
            "badgeIcon": self.badge_icon,
            "level": self.level,
            "summary": self.summary,
            "signals": [asdict(signal) for signal in self.signals],
            "reviewWarning": {
                "hasWarning": warning.has_warning,
                "message": warning.message,
                "suspiciousCount": warning.suspicious_count,
                "totalCount": warning.total_count,
            },
        }


def clamp_score(score: float) -> float:
    return max(0.0, min(1.0, score))


def badge_for_score(score: float) -> Badge:
    for badge in BADGES:
        if score >= badge.min_score:
            return badge
    return BADGES[-1]


def build_summary(score: float, signals: list[AuthenticitySignal], city_name: str) -> str:
    if score >= 0.8:
        return f"A true local favorite - where {city_name} residents eat"
    if score >= 0.65:
        return "Popular with locals, may see some tourists"
    if score >= 0.45:
        return "Mix of local and tourist crowds"

    positives = sum(1 for s in signals if s.value == "positive")
    negatives = sum(1 for s in signals if s.value == "negative")
    if negatives > positives:
        return "Primarily caters to tourists"
    return "Tourist-oriented venue"


def _assessment(
    score: float,
    summary: str,
    signals: list[AuthenticitySignal],
    warning: Optional[ReviewWarning] = None,
) -> AuthenticityAssessment:
    score = clamp_score(score)
    badge = badge_for_score(score)
    return AuthenticityAssessment(
        score=score,
        badge=badge.code,
        badge_label=badge.label,
        badge_icon=badge.icon,
        level=badge.level,
        summary=summary,
        signals=signals,
        review_warning=warning or ReviewWarning(),
    )


def _local_reviews_signal(ratio: float) -> AuthenticitySignal:
    if ratio > 0.6:
        return AuthenticitySignal(
            "signal.localReviews",
            "positive",
            f"Loved by Vietnamese reviewers ({round(ratio * 100)}% local)",
            "🇻🇳",
        )
    if ratio < 0.2:
        return AuthenticitySignal("signal.localReviews", "negative", "Mostly foreign reviews", "🌍")
    return AuthenticitySignal("signal.localReviews", "neutral", "Mixed local and tourist reviews", "🤝")


def score_authenticity(place: VerifiedPlace, city_name: str = DEFAULT_MARKET_CITY.name) -> AuthenticityAssessment:
    signals: list[AuthenticitySignal] = []
    score = NEUTRAL_SCORE

    reviews = place.reviews
    if not reviews:
        return _assessment(score, "No reviews available yet", signals)

    credible = filter_suspicious_reviews(reviews)
    suspicious_count = len(reviews) - len(credible)
    suspicious_ratio = suspicious_count / len(reviews)
    warning = ReviewWarning(
        has_warning=has_review_warning(suspicious_ratio, suspicious_count),
        message=warning_message(suspicious_ratio),
        suspicious_count=suspicious_count,
        total_count=len(reviews),
    )

    if suspicious_ratio > 0.5:
        signals.append(AuthenticitySignal("signal.reviewQuality", "negative", "Many suspicious reviews detected", "⚠️"))
        score -= 0.15
    elif suspicious_ratio < 0.2 and len(credible) >= 3:
        signals.append(AuthenticitySignal("signal.reviewQuality", "positive", "Genuine, detailed reviews", "✅"))

    if not credible:
        return _assessment(LIMITED_REVIEWS_SCORE, "Limited reliable reviews", signals, warning)

    ratio = local_review_ratio(credible)
    score += ratio * 0.4
    signals.append(_local_reviews_signal(ratio))

    if place.price_level:
        score += (5 - place.price_level) / 4 * 0.2
        if place.price_level <= 1:
            signals.append(AuthenticitySignal("signal.price", "positive", "Street food prices", "💰"))
        elif place.price_level >= 3:
            signals.append(AuthenticitySignal("signal.price", "negative", "Tourist pricing", "💸"))

    if place.types:
        has_local = any(t in LOCAL_TYPES for t in place.types)
        has_tourist = any(t in TOURIST_TYPES for t in place.types)
        if has_local and not has_tourist:
            score += 0.2
            signals.append(AuthenticitySignal("signal.location", "positive", "Local neighborhood spot", "🏘️"))
        elif has_tourist:
            score -= 0.1
            signals.append(AuthenticitySignal("signal.location", "negative", "In tourist area", "📸"))

    if place.rating and place.user_ratings_total:
        score += (place.rating / 5) * min(place.user_ratings_total / 100, 1) * 0.2
        if place.rating >= 4.2 and place.user_ratings_total >= 50:
            signals.append(
                AuthenticitySignal(
                    "signal.reputation",
                    "positive",
                    f"Consistently rated {place.rating}★ ({place.user_ratings_total} reviews)",
                    "⭐",
                )
            )

    score = clamp_score(score)
    return _assessment(score, build_summary(score, signals, city_name), signals, warning)
