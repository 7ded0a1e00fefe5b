"""
Locates a quoted citation inside the extracted text of a document.

Per page the strategies run coarse to fine and the first hit wins:

    EXACT       full normalized quote in the normalized page text
    RATIO_FULL  full quote, ignoring where the text layer put spaces
    RATIO_75    first 75% of the quote, spaces ignored
    RATIO_50    first 50% of the quote, spaces ignored
    ANCHOR      14-character slice centered on the quote midpoint
    WORD        first long word of the quote present in the page text

Pages are visited in the given order and the first page with any hit wins;
there is no cross-page ranking.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Sequence

from .config import ANCHOR_HALF_WIDTH, WORD_MIN_LENGTH
from .models import MatchResult, MatchStrategy, PageText
from .observability import get_logger, preview
from .text_normalizer import normalize, significant_words

logger = get_logger(__name__)

_RATIO_TIERS = (
    (1.0, MatchStrategy.RATIO_FULL),
    (0.75, MatchStrategy.RATIO_75),
    (0.5, MatchStrategy.RATIO_50),
)


@dataclass(frozen=True)
class PageIndex:
    """
    Normalized view of one page.

    ``text`` joins the normalized text of every non-empty fragment with one
    space, so fragment ``i`` occupies ``spans[i]`` and the next one starts
    ``len + 1`` characters later. ``compact_text`` drops the spaces and
    ``compact_positions[k]`` is the offset in ``text`` of compact character k.
    """

    page: int
    text: str
    spans: tuple[tuple[int, int], ...]
    compact_text: str
    compact_positions: tuple[int, ...]

    @classmethod
    def build(cls, page_text: PageText) -> "PageIndex":
        parts: list[str] = []
        spans: list[tuple[int, int]] = []
        offset = 0
        for ref in page_text.fragments:
            normalized = normalize(ref.text)
            if not normalized:
                spans.append((offset, offset))
                continue
            parts.append(normalized)
            spans.append((offset, offset + len(normalized)))
            offset += len(normalized) + 1
        text = " ".join(parts)
        positions = tuple(i for i, ch in enumerate(text) if ch != " ")
        compact_text = "".join(text[i] for i in positions)
        return cls(
            page=page_text.page,
            text=text,
            spans=tuple(spans),
            compact_text=compact_text,
            compact_positions=positions,
        )

    def fragment_indices(self, start: int, end: int) -> list[int]:
        """Indices of fragments whose span overlaps ``[start, end)``."""
        return [
            i
            for i, (span_start, span_end) in enumerate(self.spans)
            if span_end > span_start and span_start < end and span_end > start
        ]

    def compact_to_text(self, compact_start: int, length: int) -> tuple[int, int]:
        start = self.compact_positions[compact_start]
        end = self.compact_positions[compact_start + length - 1] + 1
        return start, end


class QuoteMatcher:
    def __init__(
        self,
        *,
        anchor_half_width: int = ANCHOR_HALF_WIDTH,
        word_min_length: int = WORD_MIN_LENGTH,
    ):
        self.anchor_half_width = max(1, int(anchor_half_width))
        self.word_min_length = max(1, int(word_min_length))

    def match(
        self,
        quote: str,
        pages: Iterable[PageText],
        order: Sequence[int] | None = None,
    ) -> MatchResult | None:
        by_page = {page_text.page: page_text for page_text in pages}
        traversal = list(order) if order is not None else sorted(by_page)
        query = normalize(quote)
        if not query:
            return None
        for page in traversal:
            page_text = by_page.get(page)
            if page_text is None:
                continue
            result = self._match_query(query, page_text)
            if result is not None:
                return result
        logger.info("quote_match_missed", quote=preview(quote), pages=len(traversal))
        return None

    def match_page(self, quote: str, page_text: PageText) -> MatchResult | None:
        query = normalize(quote)
        if not query:
            return None
        return self._match_query(query, page_text)

    def _match_query(self, query: str, page_text: PageText) -> MatchResult | None:
        if not page_text.is_extracted:
            return None
        index = PageIndex.build(page_text)
        if not index.text:
            return None
        for strategy, located in self._strategies(query, index):
            if located is None:
                continue
            start, end, search_text = located
            result = self._to_result(page_text, index, strategy, start, end, search_text)
            if result is not None:
                logger.info(
                    "quote_match_found",
                    page=page_text.page,
                    strategy=strategy.value,
                    start=start,
                    end=end,
                    fragments=len(result.fragment_range),
                )
                return result
        return None

    def _strategies(self, query: str, index: PageIndex):
        # Generator so later tiers are only computed when earlier ones miss.
        yield MatchStrategy.EXACT, self._find_exact(query, index)
        compact_query = query.replace(" ", "")
        for ratio, strategy in _RATIO_TIERS:
            yield strategy, self._find_prefix(compact_query, ratio, index)
        yield MatchStrategy.ANCHOR, self._find_anchor(query, index)
        yield MatchStrategy.WORD, self._find_word(query, index)

    @staticmethod
    def _find_exact(query: str, index: PageIndex):
        position = index.text.find(query)
        if position < 0:
            return None
        return position, position + len(query), query

    @staticmethod
    def _find_prefix(compact_query: str, ratio: float, index: PageIndex):
        length = int(math.floor(len(compact_query) * ratio))
        if length <= 0:
            return None
        prefix = compact_query[:length]
        position = index.compact_text.find(prefix)
        if position < 0:
            return None
        start, end = index.compact_to_text(position, length)
        return start, end, prefix

    def _find_anchor(self, query: str, index: PageIndex):
        half = self.anchor_half_width
        if len(query) <= half * 2:
            return None
        middle = len(query) // 2
        anchor = query[middle - half:middle + half].strip()
        if len(anchor) < half:
            return None
        position = index.text.find(anchor)
        if position < 0:
            return None
        return position, position + len(anchor), anchor

    def _find_word(self, query: str, index: PageIndex):
        for word in significant_words(query, min_len=self.word_min_length):
            position = index.text.find(word)
            if position >= 0:
                return position, position + len(word), word
        return None

    @staticmethod
    def _to_result(
        page_text: PageText,
        index: PageIndex,
        strategy: MatchStrategy,
        start: int,
        end: int,
        search_text: str,
    ) -> MatchResult | None:
        indices = index.fragment_indices(start, end)
        if not indices:
            return None
        refs = tuple(page_text.fragments[i] for i in range(indices[0], indices[-1] + 1))
        return MatchResult(
            page=page_text.page,
            fragment_range=refs,
            matched_text=" ".join(ref.text for ref in refs if ref.text),
            strategy=strategy,
            start=start,
            end=end,
            search_text=search_text,
        )
