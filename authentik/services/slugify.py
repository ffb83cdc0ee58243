# authentik/services/slugify.py
import re
import unicodedata

MAX_SLUG_LENGTH = 50
SHORT_PLACE_ID_LENGTH = 12


def create_slug(text: str) -> str:
    """Slug para pastas do storage: sem acentos, minusculo, ate 50 caracteres."""
    t = unicodedata.normalize("NFKD", text.lower())
    t = "".join(ch for ch in t if not unicodedata.combining(ch))
    t = t.replace("đ", "d")
    t = re.sub(r"[^a-z0-9\s-]", "", t)
    t = re.sub(r"\s+", "-", t)
    t = re.sub(r"-+", "-", t)
    return t[:MAX_SLUG_LENGTH].strip("-")


def short_place_id(place_id: str) -> str:
    # Place IDs are long; the tail is unique enough for file names.
    return place_id[-SHORT_PLACE_ID_LENGTH:]
