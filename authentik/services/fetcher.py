from __future__ import annotations

import logging
import re
import tempfile
from pathlib import Path
from typing import Optional

import httpx
import yt_dlp

from .errors import FetchFailedError, InvalidURLError, MetadataUnavailableError
from .ids import extract_tiktok_video_id, extract_video_id
from .types import VideoMetadata

logger = logging.getLogger(__name__)

YOUTUBE_API_URL = "https://www.googleapis.com/youtube/v3/videos"
YOUTUBE_OEMBED_URL = "https://www.youtube.com/oembed"
ISO_DURATION_PATTERN = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?")
VTT_TAG_PATTERN = re.compile(r"<[^>]+>")
WHITESPACE_PATTERN = re.compile(r"\s+")
VTT_SKIP_PREFIXES = ("NOTE", "STYLE", "REGION", "WEBVTT", "Kind:", "Language:")
CAPTION_LANGUAGES = ["vi", "vi-VN", "en", "en-US"]
UNAUTHORIZED_STATUSES = {401, 403}


def _safe_int(value: object, default: int = 0) -> int:
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default


def _clean_string(value: object) -> str:
    return value.strip() if isinstance(value, str) else ""


def parse_iso8601_duration(value: Optional[str]) -> int:
    """'PT1H2M3S' -> 3723. Anything unparseable is 0."""
    if not value:
        return 0
    match = ISO_DURATION_PATTERN.fullmatch(value)
    if not match:
        return 0
    hours, minutes, seconds = (int(group) if group else 0 for group in match.groups())
    return hours * 3600 + minutes * 60 + seconds


def _is_vtt_content_line(line: str) -> bool:
    if not line:
        return False
    if line.startswith(VTT_SKIP_PREFIXES):
        return False
    if "-->" in line:
        return False
    if line.isdigit():
        return False
    return True


def _vtt_to_plain_text(content: str) -> str:
    in_note_block = False
    text_lines: list[str] = []

    for raw_line in content.splitlines():
        stripped = raw_line.strip()

        if in_note_block:
            if not stripped:
                in_note_block = False
            continue

        if stripped.startswith("NOTE"):
            in_note_block = True
            continue

        if not _is_vtt_content_line(stripped):
            continue

        cleaned = VTT_TAG_PATTERN.sub("", stripped).strip()
        # auto captions repeat the previous cue line
        if cleaned and (not text_lines or text_lines[-1] != cleaned):
            text_lines.append(cleaned)

    joined = " ".join(text_lines)
    return WHITESPACE_PATTERN.sub(" ", joined).strip()


def _metadata_from_api_item(video_id: str, item: dict) -> VideoMetadata:
    snippet = item.get("snippet") or {}
    statistics = item.get("statistics") or {}
    details = item.get("contentDetails") or {}
    return VideoMetadata(
        video_id=video_id,
        title=_clean_string(snippet.get("title")),
        description=_clean_string(snippet.get("description")),
        channel_name=_clean_string(snippet.get("channelTitle")),
        channel_id=_clean_string(snippet.get("channelId")),
        published_at=snippet.get("publishedAt"),
        duration_seconds=parse_iso8601_duration(details.get("duration")),
        view_count=_safe_int(statistics.get("viewCount")),
        like_count=_safe_int(statistics.get("likeCount")),
    )


async def _fetch_from_data_api(
    http: httpx.AsyncClient, video_id: str, api_key: str
) -> Optional[VideoMetadata]:
    params = {"part": "snippet,statistics,contentDetails", "id": video_id, "key": api_key}
    try:
        response = await http.get(YOUTUBE_API_URL, params=params)
    except httpx.HTTPError as error:
        logger.warning("YouTube Data API request failed: %s", error)
        return None

    if response.status_code in UNAUTHORIZED_STATUSES:
        logger.warning("YouTube Data API rejected the key (HTTP %d), using oEmbed", response.status_code)
        return None
    if response.status_code >= 400:
        logger.warning("YouTube Data API error HTTP %d", response.status_code)
        return None

    try:
        items = response.json().get("items") or []
    except ValueError:
        logger.warning("YouTube Data API returned invalid JSON")
        return None

    if not items:
        logger.info("YouTube Data API returned no items for %s", video_id)
        return None
    return _metadata_from_api_item(video_id, items[0])


async def _fetch_from_oembed(http: httpx.AsyncClient, url: str, video_id: str) -> Optional[VideoMetadata]:
    try:
        response = await http.get(YOUTUBE_OEMBED_URL, params={"url": url, "format": "json"})
        response.raise_for_status()
        data = response.json()
    except (httpx.HTTPError, ValueError) as error:
        logger.warning("YouTube oEmbed failed for %s: %s", url, error)
        return None

    return VideoMetadata(
        video_id=video_id,
        title=_clean_string(data.get("title")),
        channel_name=_clean_string(data.get("author_name")),
    )


async def fetch_youtube_metadata(
    url: str,
    http: httpx.AsyncClient,
    api_key: Optional[str] = None,
) -> VideoMetadata:
    video_id = extract_video_id(url)
    if not video_id:
        raise InvalidURLError(f"Nao foi possivel extrair o id do video: {url}")

    metadata = None
    if api_key:
        metadata = await _fetch_from_data_api(http, video_id, api_key)
    if metadata is None:
        metadata = await _fetch_from_oembed(http, url, video_id)
    if metadata is None:
        raise MetadataUnavailableError(f"Metadata indisponivel para {url}")
    return metadata


def _create_ydl_options(target_dir: Path) -> dict:
    return {
        "quiet": True,
        "noprogress": True,
        "check_formats": False,
        "format": "worst[ext=mp4]/worst",
        "outtmpl": str(target_dir / "%(id)s.%(ext)s"),
        "writesubtitles": True,
        "writeautomaticsub": True,
        "subtitleslangs": CAPTION_LANGUAGES,
        "subtitlesformat": "vtt",
    }


def _read_captions(target_dir: Path) -> Optional[str]:
    for vtt_path in sorted(target_dir.glob("*.vtt")):
        try:
            text = _vtt_to_plain_text(vtt_path.read_text(encoding="utf-8", errors="ignore"))
        except OSError as error:
            logger.warning("Could not read captions %s: %s", vtt_path, error)
            continue
        if text:
            return text
    return None


def fetch_tiktok_metadata(url: str) -> VideoMetadata:
    """Blocking: downloads the video and its captions into a temporary directory."""
    if "tiktok.com" not in url:
        raise InvalidURLError(f"URL nao e do TikTok: {url}")

    with tempfile.TemporaryDirectory(prefix="authentik-tiktok-") as tmp:
        target_dir = Path(tmp)
        try:
            with yt_dlp.YoutubeDL(_create_ydl_options(target_dir)) as ydl:
                info = ydl.extract_info(url, download=True)
        except yt_dlp.utils.DownloadError as error:
            raise MetadataUnavailableError(f"Erro ao baixar video: {error}") from error
        except (ConnectionError, TimeoutError) as error:
            raise FetchFailedError(f"Erro de rede ao coletar video: {error}") from error

        if not info:
            raise MetadataUnavailableError(f"Video indisponivel: {url}")

        captions = _read_captions(target_dir)

    return VideoMetadata(
        video_id=str(info.get("id") or extract_tiktok_video_id(url) or ""),
        title=_clean_string(info.get("title")),
        description=_clean_string(info.get("description")),
        channel_name=_clean_string(info.get("uploader") or info.get("channel")),
        channel_id=_clean_string(info.get("uploader_id") or info.get("channel_id")),
        published_at=info.get("upload_date"),
        duration_seconds=_safe_int(info.get("duration")),
        view_count=_safe_int(info.get("view_count")),
        like_count=_safe_int(info.get("like_count")),
        captions=captions,
    )
