from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

import httpx
from starlette.concurrency import run_in_threadpool

from authentik.services.errors import UnsupportedPlatformError
from authentik.services.fetcher import fetch_tiktok_metadata, fetch_youtube_metadata
from authentik.services.ids import detect_platform
from authentik.services.market_cities import MarketCity, detect_market_city_from_text
from authentik.services.mention_extractor import MentionExtractor
from authentik.services.transcript import TranscriptClient
from authentik.services.types import ContentSource, RestaurantMention, VideoMetadata

logger = logging.getLogger(__name__)


@dataclass
class IngestResult:
    source: ContentSource
    metadata: VideoMetadata
    city: MarketCity
    transcript: Optional[str]
    transcript_source: str
    mentions: list[RestaurantMention] = field(default_factory=list)


def _pick_text_source(
    transcript: Optional[str], metadata: VideoMetadata
) -> tuple[Optional[str], str]:
    if transcript and transcript.strip():
        return transcript.strip(), "service"
    if metadata.captions and metadata.captions.strip():
        return metadata.captions.strip(), "captions"
    return None, "description"


class VideoIngestor:
    """detect platform -> fetch metadata -> fetch transcript -> extract mentions."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        transcripts: TranscriptClient,
        extractor: MentionExtractor,
        youtube_api_key: Optional[str] = None,
    ) -> None:
        self._http = http
        self._transcripts = transcripts
        self._extractor = extractor
        self._youtube_api_key = youtube_api_key

    async def fetch_metadata(self, source: ContentSource) -> VideoMetadata:
        if source.platform == "youtube":
            return await fetch_youtube_metadata(source.url, self._http, self._youtube_api_key)
        if source.platform == "tiktok":
            return await run_in_threadpool(fetch_tiktok_metadata, source.url)
        raise UnsupportedPlatformError(f"Plataforma nao suportada: {source.url}")

    async def ingest(self, url: str) -> IngestResult:
        source = ContentSource(url=url, platform=detect_platform(url))
        if source.platform == "unknown":
            raise UnsupportedPlatformError(f"Plataforma nao suportada: {url}")

        metadata = await self.fetch_metadata(source)
        logger.info("Fetched %s metadata: %r by %s", source.platform, metadata.title, metadata.channel_name)

        city = detect_market_city_from_text(metadata.title, metadata.description, metadata.channel_name, url)
        logger.info("Inferred city: %s", city.name)

        service_transcript = await self._transcripts.fetch(url)
        transcript, transcript_source = _pick_text_source(service_transcript, metadata)
        logger.info("Extracting mentions from %s", transcript_source)

        mentions = await self._extractor.extract(metadata, city, transcript)

        return IngestResult(
            source=source,
            metadata=metadata,
            city=city,
            transcript=transcript,
            transcript_source=transcript_source,
            mentions=mentions,
        )
