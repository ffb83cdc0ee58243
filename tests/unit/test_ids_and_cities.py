from __future__ import annotations

from authentik.services.ids import detect_platform, extract_tiktok_video_id, extract_video_id
from authentik.services.market_cities import (
    DEFAULT_MARKET_CITY,
    detect_market_city_from_text,
    get_city_location_bias,
    get_market_city,
    normalize_text,
    replace_collection_city_tags,
)
from authentik.services.slugify import create_slug, short_place_id


class TestVideoIds:
    def test_short_link(self) -> None:
        assert extract_video_id("https://youtu.be/dQw4w9WgXcQ") == "dQw4w9WgXcQ"

    def test_watch_link_with_extra_params(self) -> None:
        assert extract_video_id("https://www.youtube.com/watch?list=PL1&v=dQw4w9WgXcQ&t=30") == "dQw4w9WgXcQ"

    def test_shorts_link(self) -> None:
        assert extract_video_id("https://www.youtube.com/shorts/abc123XYZ_-") == "abc123XYZ_-"

    def test_not_a_youtube_link(self) -> None:
        assert extract_video_id("https://example.com/video") is None

    def test_tiktok_video_id(self) -> None:
        url = "https://www.tiktok.com/@foodie.vn/video/7301234567890123456"
        assert extract_tiktok_video_id(url) == "7301234567890123456"


class TestDetectPlatform:
    def test_platforms(self) -> None:
        assert detect_platform("https://youtu.be/dQw4w9WgXcQ") == "youtube"
        assert detect_platform("https://www.tiktok.com/@a/video/1") == "tiktok"
        assert detect_platform("https://example.com/video") == "unknown"


class TestSlugify:
    def test_strips_vietnamese_diacritics(self) -> None:
        assert create_slug("Ăn gì ở Đà Nẵng?") == "an-gi-o-da-nang"

    def test_truncates_to_fifty(self) -> None:
        assert len(create_slug("bun bo " * 20)) <= 50

    def test_short_place_id(self) -> None:
        assert short_place_id("ChIJabcdefghijklmnop123456") == "klmnop123456"


class TestMarketCities:
    def test_normalize_text(self) -> None:
        assert normalize_text("Đà Nẵng") == "da nang"

    def test_detects_city_without_diacritics(self) -> None:
        city = detect_market_city_from_text("Top 5 quán ăn ở Hà Nội", None)
        assert city.id == "ha-noi"

    def test_defaults_to_da_nang(self) -> None:
        assert detect_market_city_from_text("", None) is DEFAULT_MARKET_CITY
        assert detect_market_city_from_text("street food tour") is DEFAULT_MARKET_CITY

    def test_get_market_city_unknown_id(self) -> None:
        assert get_market_city("atlantis") is DEFAULT_MARKET_CITY

    def test_location_bias(self) -> None:
        assert get_city_location_bias(get_market_city("hue")) == (16.4637, 107.5909)

    def test_replace_city_tags_keeps_other_tags(self) -> None:
        tags = replace_collection_city_tags(["Street Food", "Da Nang", "Budget"], "ha-noi")
        assert tags == ["Street Food", "Budget", "Hà Nội", "Ha Noi"]

    def test_replace_city_tags_from_none(self) -> None:
        assert replace_collection_city_tags(None, DEFAULT_MARKET_CITY) == ["Đà Nẵng", "Da Nang"]
