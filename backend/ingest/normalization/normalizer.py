"""
Team name normalization for cross-provider fixture matching.

Turns a free-text team name into a comparison key:

    "Real Madrid CF"  -> "realmadrid"
    "Atlético Madrid" -> "atleticomadrid"
    "Athletic"        -> ""            (only a generic token)

The steps run in a fixed order: lower-case, strip diacritics (NFD), drop
generic club tokens as whole words, drop punctuation, drop whitespace.
Token removal must come before whitespace removal or word boundaries are lost.
"""
from __future__ import annotations

import re
import unicodedata
from typing import Optional

GENERIC_CLUB_TOKENS: tuple[str, ...] = (
    "fc",
    "cf",
    "ac",
    "sc",
    "united",
    "city",
    "town",
    "rovers",
    "wanderers",
    "athletic",
    "sporting",
)

_GENERIC_TOKEN_RE = re.compile(r"\b(?:" + "|".join(GENERIC_CLUB_TOKENS) + r")\b")
_PUNCTUATION_RE = re.compile(r"[^\w\s]")
_WHITESPACE_RE = re.compile(r"\s+")


def strip_diacritics(value: str) -> str:
    decomposed = unicodedata.normalize("NFD", value)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_team_name(raw: Optional[str]) -> str:
    """Return the normalized comparison key for a team name. Never raises."""
    if not raw:
        return ""
    key = strip_diacritics(raw.lower())
    key = _GENERIC_TOKEN_RE.sub("", key)
    key = _PUNCTUATION_RE.sub("", key)
    return _WHITESPACE_RE.sub("", key)
