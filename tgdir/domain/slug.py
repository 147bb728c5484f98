from __future__ import annotations

import re

_TRANSLITERATION = str.maketrans(
    {
        "ğ": "g",
        "ü": "u",
        "ş": "s",
        "ı": "i",
        "ö": "o",
        "ç": "c",
        "Ğ": "g",
        "Ü": "u",
        "Ş": "s",
        "İ": "i",
        "Ö": "o",
        "Ç": "c",
    }
)


def create_slug(text: str) -> str:
    """Build the URL slug used for group detail pages."""
    slug = text.strip().translate(_TRANSLITERATION).lower()
    slug = re.sub(r"[^a-z0-9\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")
