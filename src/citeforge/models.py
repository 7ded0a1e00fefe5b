"""
Value types passed between the extractor, matcher, renderer and navigator.
"""
from __future__ import annotations

import weakref
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Sequence

from .errors import CitationError


@dataclass(frozen=True)
class FragmentRef:
    """
    Non-owning handle to a rendered fragment.

    Holds a weak reference plus the (page, index) pair, so a fragment that the
    renderer rebuilt can still be found again by position.
    """

    page: int
    index: int
    text: str
    _ref: Any = field(default=None, repr=False, compare=False)

    @classmethod
    def of(cls, fragment: Any, *, page: int, index: int) -> "FragmentRef":
        try:
            ref = weakref.ref(fragment)
        except TypeError:
            ref = None
        return cls(page=page, index=index, text=str(getattr(fragment, "text", "") or ""), _ref=ref)

    def resolve(self, surface: Any = None):
        fragment = self._ref() if self._ref is not None else None
        if fragment is not None or surface is None:
            return fragment
        try:
            fragments = surface.get_fragments(self.page)
        except CitationError:
            return None
        if 0 <= self.index < len(fragments):
            return fragments[self.index]
        return None


@dataclass(frozen=True)
class PageText:
    page: int
    fragments: tuple[FragmentRef, ...] = ()
    raw_text: str = ""

    @property
    def is_extracted(self) -> bool:
        return bool(self.raw_text.strip())

    @classmethod
    def empty(cls, page: int) -> "PageText":
        return cls(page=page)


def _coerce_page(value: Any) -> int | None:
    try:
        page = int(value)
    except (TypeError, ValueError):
        return None
    return page if page > 0 else None


@dataclass(frozen=True)
class CitationRequest:
    quote: str = ""
    hinted_page: int | None = None
    candidate_pages: tuple[int, ...] = ()

    @classmethod
    def from_host(
        cls,
        *,
        page: Any = None,
        quote: str | None = None,
        search_pages: Sequence[Any] | None = None,
    ) -> "CitationRequest":
        candidates = []
        for raw in search_pages or ():
            candidate = _coerce_page(raw)
            if candidate is not None and candidate not in candidates:
                candidates.append(candidate)
        return cls(
            quote=str(quote or ""),
            hinted_page=_coerce_page(page),
            candidate_pages=tuple(candidates),
        )

    @property
    def has_quote(self) -> bool:
        return bool(self.quote.strip())


class MatchStrategy(str, Enum):
    # Declared in evaluation order.
    EXACT = "exact"
    RATIO_FULL = "ratio_full"
    RATIO_75 = "ratio_75"
    RATIO_50 = "ratio_50"
    ANCHOR = "anchor"
    WORD = "word"


@dataclass(frozen=True)
class MatchResult:
    page: int
    fragment_range: tuple[FragmentRef, ...]
    matched_text: str
    strategy: MatchStrategy
    start: int
    end: int
    search_text: str = ""

    @property
    def fragment_indices(self) -> tuple[int, ...]:
        return tuple(ref.index for ref in self.fragment_range)


@dataclass(frozen=True)
class HighlightState:
    page: int
    fragment_indices: tuple[int, ...]
    matched_text: str
    strategy: MatchStrategy
    generation: int


class JumpOutcome(str, Enum):
    FOUND = "found"
    NAVIGATED = "navigated"
    QUOTE_NOT_FOUND = "quote_not_found"
    CANCELLED = "cancelled"


class NavigationState(str, Enum):
    IDLE = "idle"
    SEARCHING = "searching"
    FOUND = "found"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class JumpResult:
    outcome: JumpOutcome
    page: int | None = None
    match: MatchResult | None = None
    pages_scanned: int = 0
    error: CitationError | None = None

    @property
    def found(self) -> bool:
        return self.outcome is JumpOutcome.FOUND
