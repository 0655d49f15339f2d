"""URL slug generation for Hebrew and Latin titles."""

from __future__ import annotations

import re
import unicodedata
from typing import Awaitable, Callable

from bistro.core.constants import SLUG_MAX_LENGTH

_HEBREW_TO_LATIN: dict[str, str] = {
    "א": "a",
    "ב": "b",
    "ג": "g",
    "ד": "d",
    "ה": "h",
    "ו": "v",
    "ז": "z",
    "ח": "ch",
    "ט": "t",
    "י": "y",
    "כ": "k",
    "ך": "k",
    "ל": "l",
    "מ": "m",
    "ם": "m",
    "נ": "n",
    "ן": "n",
    "ס": "s",
    "ע": "",
    "פ": "p",
    "ף": "p",
    "צ": "tz",
    "ץ": "tz",
    "ק": "k",
    "ר": "r",
    "ש": "sh",
    "ת": "t",
}

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9\s_-]")
_SEPARATORS = re.compile(r"[\s_-]+")


def slugify(text: str, max_length: int = SLUG_MAX_LENGTH) -> str:
    """Convert *text* to a lowercase ASCII slug.

    Hebrew letters are transliterated (``"פטה כבד"`` -> ``"pth-kbd"``),
    accents and vowel points are stripped, and runs of separators collapse
    into a single hyphen.
    """
    slug = "".join(_HEBREW_TO_LATIN.get(ch, ch) for ch in text).lower()
    slug = unicodedata.normalize("NFD", slug)
    slug = "".join(ch for ch in slug if not unicodedata.combining(ch))
    slug = _NON_SLUG_CHARS.sub("", slug)
    slug = _SEPARATORS.sub("-", slug).strip("-")
    if len(slug) > max_length:
        slug = slug[:max_length].rstrip("-")
    return slug


async def unique_slug(
    base: str,
    exists: Callable[[str], Awaitable[bool]],
) -> str:
    """Return *base*, or ``base-N`` for the smallest N not already taken."""
    candidate = base
    counter = 1
    while await exists(candidate):
        candidate = f"{base}-{counter}"
        counter += 1
    return candidate
