"""
Host-facing facade for one displayed document.

Wires extractor, cache, matcher, highlight renderer and navigator to a render
surface and exposes the operations the chat UI calls: ``jump_to``,
``get_page_texts`` and ``force_text_extraction``.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Sequence

from .config import (
    ANCHOR_HALF_WIDTH,
    EXTRACTION_MAX_RETRIES,
    EXTRACTION_RETRY_DELAY_S,
    FOCUS_RING_DURATION_S,
    HIGHLIGHT_CONTEXT_NEIGHBORS,
    RENDER_WAIT_TIMEOUT_S,
    SCROLL_SETTLE_DELAY_S,
    WORD_MIN_LENGTH,
)
from .fragment_extractor import FragmentExtractor
from .highlight_renderer import HighlightRenderer
from .models import CitationRequest, HighlightState, JumpResult
from .navigation import NavigationController
from .observability import get_logger
from .page_text_cache import PageTextCache
from .quote_matcher import QuoteMatcher
from .rendering import InMemoryRenderSurface

logger = get_logger(__name__)


@dataclass(frozen=True)
class ViewerSettings:
    extraction_max_retries: int = EXTRACTION_MAX_RETRIES
    extraction_retry_delay_s: float = EXTRACTION_RETRY_DELAY_S
    render_wait_timeout_s: float = RENDER_WAIT_TIMEOUT_S
    anchor_half_width: int = ANCHOR_HALF_WIDTH
    word_min_length: int = WORD_MIN_LENGTH
    highlight_context_neighbors: int = HIGHLIGHT_CONTEXT_NEIGHBORS
    scroll_settle_delay_s: float = SCROLL_SETTLE_DELAY_S
    focus_ring_duration_s: float = FOCUS_RING_DURATION_S


class CitationViewer:
    def __init__(self, surface=None, settings: ViewerSettings | None = None, *, metrics=None):
        self.settings = settings or ViewerSettings()
        self.metrics = metrics
        self.cache = PageTextCache()
        self.matcher = QuoteMatcher(
            anchor_half_width=self.settings.anchor_half_width,
            word_min_length=self.settings.word_min_length,
        )
        self._attach(surface if surface is not None else InMemoryRenderSurface())

    def _attach(self, surface):
        self.surface = surface
        self.extractor = FragmentExtractor(
            surface,
            self.cache,
            max_retries=self.settings.extraction_max_retries,
            retry_delay_s=self.settings.extraction_retry_delay_s,
            render_timeout_s=self.settings.render_wait_timeout_s,
        )
        self.renderer = HighlightRenderer(surface, context_neighbors=self.settings.highlight_context_neighbors)
        self.navigator = NavigationController(
            surface,
            self.cache,
            self.extractor,
            self.matcher,
            self.renderer,
            settle_delay_s=self.settings.scroll_settle_delay_s,
            focus_ring_duration_s=self.settings.focus_ring_duration_s,
            on_result=self._record_result,
        )
        surface.add_render_listener(self.extractor.on_page_rendered)
        # Pages that finished rendering before the viewer attached.
        for page in surface.rendered_pages():
            self.extractor.on_page_rendered(page)

    def _detach(self):
        self.navigator.cancel()
        self.extractor.cancel_pending()
        self.renderer.clear_all()
        self.surface.remove_render_listener(self.extractor.on_page_rendered)

    def _record_result(self, result: JumpResult, latency_ms: float):
        logger.info(
            "citation_jump_finished",
            outcome=result.outcome.value,
            page=result.page,
            strategy=result.match.strategy.value if result.match is not None else None,
            pages_scanned=result.pages_scanned,
            latency_ms=round(latency_ms, 2),
        )
        if self.metrics is not None:
            self.metrics.record_jump(result, latency_ms)

    # --- Host interface ---

    def jump_to(
        self,
        *,
        page: Any = None,
        quote: str | None = None,
        search_pages: Sequence[Any] | None = None,
    ) -> asyncio.Task:
        """Fire-and-forget citation jump."""
        request = CitationRequest.from_host(page=page, quote=quote, search_pages=search_pages)
        return self.navigator.jump_to_nowait(request)

    async def locate(
        self,
        *,
        page: Any = None,
        quote: str | None = None,
        search_pages: Sequence[Any] | None = None,
    ) -> JumpResult:
        request = CitationRequest.from_host(page=page, quote=quote, search_pages=search_pages)
        return await self.navigator.jump_to(request)

    def get_page_texts(self) -> list[dict]:
        return self.cache.snapshot(self.surface.page_count)

    def force_text_extraction(self) -> list[int]:
        pages = self.extractor.force_extraction()
        logger.info("page_texts_refreshed", pages=len(pages))
        return pages

    async def wait_for_extraction(self):
        await self.extractor.wait_idle()

    @property
    def highlight(self) -> HighlightState | None:
        return self.renderer.state

    def load_document(self, surface):
        """A fresh upload replaces the surface and drops every cached page."""
        self._detach()
        self.cache.reset()
        self._attach(surface)
        logger.info("document_loaded", pages=surface.page_count)

    def reset_chat(self):
        self.navigator.cancel()
        self.renderer.clear_all()

    def close(self):
        self._detach()
