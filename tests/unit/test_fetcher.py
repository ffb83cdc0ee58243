from __future__ import annotations

import httpx
import pytest

from authentik.services.errors import InvalidURLError, MetadataUnavailableError
from authentik.services.fetcher import _vtt_to_plain_text, fetch_youtube_metadata, parse_iso8601_duration

VIDEO_URL = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"

VTT = """WEBVTT
Kind: captions

NOTE generated by the uploader
ignored note line

1
00:00:00.000 --> 00:00:02.000
<c>Hôm nay</c> mình đi ăn mỳ quảng

2
00:00:02.000 --> 00:00:04.000
Hôm nay mình đi ăn mỳ quảng

3
00:00:04.000 --> 00:00:06.000
ở quán Bà Mua
"""


class TestVtt:
    def test_strips_cues_tags_and_repeats(self) -> None:
        assert _vtt_to_plain_text(VTT) == "Hôm nay mình đi ăn mỳ quảng ở quán Bà Mua"

    def test_empty(self) -> None:
        assert _vtt_to_plain_text("WEBVTT\n\n") == ""


class TestIsoDuration:
    def test_full(self) -> None:
        assert parse_iso8601_duration("PT1H2M3S") == 3723

    def test_minutes_only(self) -> None:
        assert parse_iso8601_duration("PT15M") == 900

    def test_garbage(self) -> None:
        assert parse_iso8601_duration("P1D") == 0
        assert parse_iso8601_duration(None) == 0


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestFetchYoutubeMetadata:
    async def test_data_api(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["id"] == "dQw4w9WgXcQ"
            return httpx.Response(
                200,
                json={
                    "items": [
                        {
                            "snippet": {
                                "title": "Ăn sáng Đà Nẵng",
                                "channelTitle": "Foodie",
                                "channelId": "UC123",
                                "description": "Ba quán",
                            },
                            "statistics": {"viewCount": "1200"},
                            "contentDetails": {"duration": "PT10M"},
                        }
                    ]
                },
            )

        async with _client(handler) as http:
            metadata = await fetch_youtube_metadata(VIDEO_URL, http, api_key="key")

        assert metadata.title == "Ăn sáng Đà Nẵng"
        assert metadata.channel_id == "UC123"
        assert metadata.view_count == 1200
        assert metadata.duration_seconds == 600

    async def test_rejected_key_falls_back_to_oembed(self) -> None:
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.host)
            if "googleapis" in request.url.host:
                return httpx.Response(403)
            return httpx.Response(200, json={"title": "Ăn sáng", "author_name": "Foodie"})

        async with _client(handler) as http:
            metadata = await fetch_youtube_metadata(VIDEO_URL, http, api_key="bad")

        assert seen == ["www.googleapis.com", "www.youtube.com"]
        assert metadata.title == "Ăn sáng"
        assert metadata.channel_name == "Foodie"
        assert metadata.channel_id == ""

    async def test_everything_fails(self) -> None:
        async with _client(lambda request: httpx.Response(404)) as http:
            with pytest.raises(MetadataUnavailableError):
                await fetch_youtube_metadata(VIDEO_URL, http)

    async def test_url_without_id(self) -> None:
        async with _client(lambda request: httpx.Response(200)) as http:
            with pytest.raises(InvalidURLError):
                await fetch_youtube_metadata("https://www.youtube.com/feed/trending", http)
