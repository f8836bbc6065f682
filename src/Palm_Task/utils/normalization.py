"""
Palm_Task.utils.normalization

Pure string helpers used to build join keys and match names.
"""

from __future__ import annotations

import re
import unicodedata

_CODE_STRIP_RE = re.compile(r"[.\s]")
_NON_WORD_RE = re.compile(r"[^\w\s]")
_SPACES_RE = re.compile(r"\s+")


def normalize_code(value: str) -> str:
    """
    Store-code join key: drop whitespace and periods, upper-case.

    "123.45 " -> "12345"
    """
    if not value:
        return ""
    return _CODE_STRIP_RE.sub("", value).upper()


def strip_diacritics(value: str) -> str:
    decomposed = unicodedata.normalize("NFD", value)
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def normalize_text(value: str) -> str:
    """
    Name matching key: lower-case, no accents, no punctuation,
    single spaces, trimmed.

    "Café Pilão 500g!" -> "cafe pilao 500g"
    """
    if not value:
        return ""
    t = strip_diacritics(value.lower())
    t = _NON_WORD_RE.sub("", t)
    t = _SPACES_RE.sub(" ", t).strip()
    return t


def clean_search(value: str) -> str:
    """Looser key for search boxes: lower-case and punctuation-free."""
    if not value:
        return ""
    return _NON_WORD_RE.sub("", value.lower())
