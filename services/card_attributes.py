"""Card languages, printing variants and grading conditions."""

from __future__ import annotations

from typing import Optional

LANGUAGES = (
    ("en", "English"),
    ("es", "Spanish"),
    ("fr", "French"),
    ("de", "German"),
    ("it", "Italian"),
    ("pt", "Portuguese"),
    ("jp", "Japanese"),
    ("ko", "Korean"),
    ("zh", "Chinese"),
    ("ru", "Russian"),
)
LANGUAGE_CODES = tuple(code for code, _ in LANGUAGES)
DEFAULT_LANGUAGE = "en"

VARIANTS = (
    "Unlimited",
    "1st Edition",
    "Shadowless",
    "1st Edition Shadowless",
    "Reverse Holo",
)

# Best first.
CONDITIONS = (
    "Mint",
    "Near Mint",
    "Excellent",
    "Good",
    "Light Played",
    "Played",
    "Poor",
)

_CONDITION_RANK = {name: rank for rank, name in enumerate(CONDITIONS)}


def language_from_locale(locale: Optional[str]) -> str:
    """``de-DE`` -> ``de``; unknown or empty locales fall back to English."""
    code = (locale or "").replace("_", "-").split("-", 1)[0].strip().lower()
    return code if code in LANGUAGE_CODES else DEFAULT_LANGUAGE


def meets_minimum_condition(condition: Optional[str], minimum: Optional[str]) -> bool:
    if not minimum:
        return True
    if condition not in _CONDITION_RANK or minimum not in _CONDITION_RANK:
        return False
    return _CONDITION_RANK[condition] <= _CONDITION_RANK[minimum]
