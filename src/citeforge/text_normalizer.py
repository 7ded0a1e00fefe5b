"""
Text normalization shared by the extractor, matcher and display code.

``normalize`` is the canonical comparable form for quote matching. It is
total and idempotent: ``normalize(normalize(s)) == normalize(s)``.
"""
from __future__ import annotations

import re
import unicodedata

_WHITESPACE_RE = re.compile(r"\s+")
_PUNCTUATION_RE = re.compile(r"[^\w\s]|_", flags=re.UNICODE)
_UNICODE_WORD_RE = re.compile(r"\w+", flags=re.UNICODE)


def normalize_whitespace(text: str | None) -> str:
    """Lower-cases and collapses whitespace; punctuation is kept for display."""
    return _WHITESPACE_RE.sub(" ", str(text or "")).strip().lower()


def _fold(text: str) -> str:
    # NFKC splits ligatures such as U+FB01 into plain letters; the outer pass
    # recomposes anything casefold() decomposed.
    return unicodedata.normalize("NFKC", unicodedata.normalize("NFKC", text).casefold())


def normalize(text: str | None) -> str:
    """Canonical form for matching: case-folded, no punctuation, single spaces."""
    folded = _fold(str(text or ""))
    without_punctuation = _PUNCTUATION_RE.sub(" ", folded)
    collapsed = _WHITESPACE_RE.sub(" ", without_punctuation)
    return _strip_edges(collapsed)


def _strip_edges(text: str) -> str:
    start = 0
    end = len(text)
    while start < end and not text[start].isalnum():
        start += 1
    while end > start and not text[end - 1].isalnum():
        end -= 1
    return text[start:end]


def compact(text: str | None) -> str:
    """Normalized text with every space removed."""
    return normalize(text).replace(" ", "")


def tokenize_for_matching(text: str | None, *, min_len: int = 1, limit: int | None = None) -> list[str]:
    """
    Tokenizes normalized text with Unicode-aware word boundaries.
    Keeps letters/numbers from non-Latin scripts.
    """
    safe_min_len = max(1, int(min_len))
    max_tokens = int(limit) if limit is not None else None

    out: list[str] = []
    for token in _UNICODE_WORD_RE.findall(normalize(text)):
        if len(token) < safe_min_len:
            continue
        out.append(token)
        if max_tokens is not None and len(out) >= max_tokens:
            break
    return out


def significant_words(text: str | None, *, min_len: int) -> list[str]:
    """Words of at least ``min_len`` characters in quote order, first occurrence only."""
    seen: set[str] = set()
    words: list[str] = []
    for token in tokenize_for_matching(text, min_len=min_len):
        if token in seen:
            continue
        seen.add(token)
        words.append(token)
    return words
