"""
Client for the transcript service (``GET {base}/transcript?url=...``).

A missing transcript is never fatal: failures, timeouts and empty bodies all
come back as None and are cached briefly so the same video is not retried
on every run.
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Optional

import httpx

from authentik.services.errors import NetworkTimeoutError, TranscriptServiceError
from authentik.services.lookup_cache import LookupCache, make_cache_key

logger = logging.getLogger(__name__)

CACHE_KIND = "transcript"
NESTED_KEYS = ("transcript", "text", "content", "data", "result")
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_POSITIVE_TTL = 7 * 24 * 3600
DEFAULT_NEGATIVE_TTL = 10 * 60


def _join_segments(segments: list) -> str:
    parts: list[str] = []
    for segment in segments:
        if isinstance(segment, str):
            text = segment
        elif isinstance(segment, dict):
            text = segment.get("text") or ""
        else:
            continue
        if isinstance(text, str) and text.strip():
            parts.append(text.strip())
    return " ".join(parts)


def _extract_text(payload: Any, depth: int = 0) -> str:
    if depth > 4:
        return ""
    if isinstance(payload, str):
        return payload.strip()
    if isinstance(payload, list):
        return _join_segments(payload).strip()
    if isinstance(payload, dict):
        for key in NESTED_KEYS:
            if key in payload:
                text = _extract_text(payload[key], depth + 1)
                if text:
                    return text
        segments = payload.get("segments")
        if isinstance(segments, list):
            return _join_segments(segments).strip()
    return ""


def parse_transcript_body(body: str, content_type: str = "") -> str:
    """Accepts a JSON string, a segments array, a nested object or plain text."""
    stripped = body.strip()
    if not stripped:
        return ""

    looks_like_json = "json" in content_type or stripped[0] in "[{\""
    if looks_like_json:
        try:
            return _extract_text(json.loads(stripped))
        except ValueError:
            logger.debug("Transcript body is not JSON, using it as plain text")
    return stripped


class TranscriptClient:
    def __init__(
        self,
        base_url: Optional[str],
        http: httpx.AsyncClient,
        cache: Optional[LookupCache] = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        positive_ttl: float = DEFAULT_POSITIVE_TTL,
        negative_ttl: float = DEFAULT_NEGATIVE_TTL,
    ) -> None:
        self._base_url = base_url.rstrip("/") if base_url else None
        self._http = http
        self._cache = cache
        self._timeout_seconds = timeout_seconds
        self._positive_ttl = positive_ttl
        self._negative_ttl = negative_ttl

    async def fetch(self, video_url: str) -> Optional[str]:
        if not self._base_url:
            logger.warning("TRANSCRIPT_SERVICE_URL not configured; skipping transcript")
            return None

        key = make_cache_key(CACHE_KIND, video_url)
        if self._cache is not None:
            cached = await self._cache.get(key)
            if isinstance(cached, dict):
                logger.info("Transcript cache hit for %s (empty=%s)", video_url, not cached.get("text"))
                return cached.get("text") or None

        try:
            text = await self._request(video_url)
        except (NetworkTimeoutError, TranscriptServiceError) as error:
            logger.warning("No transcript for %s: %s", video_url, error)
            text = None

        if self._cache is not None:
            ttl = self._positive_ttl if text else self._negative_ttl
            await self._cache.put(key, {"text": text}, ttl, kind=CACHE_KIND)
        return text

    async def _request(self, video_url: str) -> Optional[str]:
        """
        Raises:
            NetworkTimeoutError: No answer within timeout_seconds
            TranscriptServiceError: Transport failure or non-2xx status
        """
        endpoint = f"{self._base_url}/transcript"
        try:
            response = await asyncio.wait_for(
                self._http.get(endpoint, params={"url": video_url}),
                timeout=self._timeout_seconds,
            )
        except asyncio.TimeoutError as error:
            raise NetworkTimeoutError(endpoint, self._timeout_seconds) from error
        except httpx.HTTPError as error:
            raise TranscriptServiceError(f"Transcript request failed: {error}") from error

        if not response.is_success:
            raise TranscriptServiceError(f"Transcript service returned HTTP {response.status_code}")

        text = parse_transcript_body(response.text, response.headers.get("content-type", ""))
        if not text:
            logger.info("Transcript service returned an empty transcript for %s", video_url)
            return None
        return text
