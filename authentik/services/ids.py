# authentik/services/ids.py
import re
from typing import Literal, Optional

Platform = Literal["youtube", "tiktok", "unknown"]

YOUTUBE_DOMAINS = ("youtube.com", "youtu.be")
TIKTOK_DOMAINS = ("tiktok.com",)

_YT_PATTERNS = (
    re.compile(r"(?:youtube\.com/watch\?(?:.*&)?v=|youtu\.be/)([^&\n?#/]+)"),
    re.compile(r"youtube\.com/(?:embed|shorts|live)/([^&\n?#/]+)"),
)

_TIKTOK_PATTERNS = (
    re.compile(r"tiktok\.com/@[\w.-]+/video/(\d+)"),
    re.compile(r"tiktok\.com/v/(\d+)"),
    re.compile(r"vm\.tiktok\.com/([A-Za-z0-9]+)"),
)


def detect_platform(url: str) -> Platform:
    """Plataforma do video por substring do dominio."""
    if any(domain in url for domain in YOUTUBE_DOMAINS):
        return "youtube"
    if any(domain in url for domain in TIKTOK_DOMAINS):
        return "tiktok"
    return "unknown"


def extract_video_id(url: str) -> Optional[str]:
    for pattern in _YT_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)
    return None


def extract_tiktok_video_id(url: str) -> Optional[str]:
    for pattern in _TIKTOK_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)
    return None
