"""
Orchestrates a citation click: find the quote, highlight it, bring it into view.

Pages are searched in ascending order from page 1 no matter what page the
citation claims to come from, because upstream page hints are unreliable.
The first page with a match wins. A newer jump cancels the older one's
traversal, settle delay and focus-ring timer.
"""
from __future__ import annotations

import asyncio
import time
from typing import Callable

from .config import FOCUS_RING_DURATION_S, SCROLL_SETTLE_DELAY_S
from .errors import OperationCancelled, PageNotRendered, QuoteNotFound
from .fragment_extractor import FragmentExtractor
from .highlight_renderer import HighlightRenderer
from .models import CitationRequest, JumpOutcome, JumpResult, MatchResult, NavigationState, PageText
from .observability import get_logger, preview
from .page_text_cache import PageTextCache
from .quote_matcher import QuoteMatcher
from .scheduling import CancellationToken

logger = get_logger(__name__)

FALLBACK_PAGE = 1


class NavigationController:
    def __init__(
        self,
        surface,
        cache: PageTextCache,
        extractor: FragmentExtractor,
        matcher: QuoteMatcher,
        renderer: HighlightRenderer,
        *,
        settle_delay_s: float = SCROLL_SETTLE_DELAY_S,
        focus_ring_duration_s: float = FOCUS_RING_DURATION_S,
        on_result: Callable[[JumpResult, float], None] | None = None,
    ):
        self.surface = surface
        self.cache = cache
        self.extractor = extractor
        self.matcher = matcher
        self.renderer = renderer
        self.settle_delay_s = max(0.0, float(settle_delay_s))
        self.focus_ring_duration_s = max(0.0, float(focus_ring_duration_s))
        self.on_result = on_result

        self._token: CancellationToken | None = None
        self._state = NavigationState.IDLE
        self._ring_page: int | None = None
        self.searching_page: int | None = None
        self.last_result: JumpResult | None = None

    @property
    def state(self) -> NavigationState:
        return self._state

    @property
    def ring_page(self) -> int | None:
        return self._ring_page

    def traversal_order(self) -> list[int]:
        return list(range(1, int(self.surface.page_count) + 1))

    async def jump_to(self, request: CitationRequest) -> JumpResult:
        token = self._begin()
        return await self._run(request, token)

    def jump_to_nowait(self, request: CitationRequest) -> asyncio.Task:
        """Fire-and-forget jump; the returned task resolves to the JumpResult."""
        token = self._begin()
        return asyncio.ensure_future(self._run(request, token))

    def cancel(self):
        """Abandons the current jump and drops its focus ring."""
        if self._token is not None:
            self._token.cancel()
            self._token = None
        self._clear_ring()
        self._transition(NavigationState.IDLE)

    def _begin(self) -> CancellationToken:
        self.cancel()
        token = CancellationToken("jump")
        self._token = token
        return token

    async def _run(self, request: CitationRequest, token: CancellationToken) -> JumpResult:
        started = time.perf_counter()
        try:
            result = await self._locate(request, token)
        except OperationCancelled:
            logger.info("citation_search_cancelled", token=token.id, quote=preview(request.quote))
            result = JumpResult(outcome=JumpOutcome.CANCELLED)
        latency_ms = (time.perf_counter() - started) * 1000.0

        if token is self._token:
            self.last_result = result
            self.searching_page = None
            self._transition(NavigationState.IDLE)
        if self.on_result is not None:
            self.on_result(result, latency_ms)
        return result

    async def _locate(self, request: CitationRequest, token: CancellationToken) -> JumpResult:
        page_count = int(self.surface.page_count)
        if not request.has_quote:
            target = request.hinted_page if request.hinted_page and request.hinted_page <= page_count else FALLBACK_PAGE
            self.surface.scroll_into_view(target, block="center")
            logger.info("citation_navigation_only", page=target)
            return JumpResult(outcome=JumpOutcome.NAVIGATED, page=target)

        order = self.traversal_order()
        logger.info(
            "citation_search_started",
            quote=preview(request.quote),
            hinted_page=request.hinted_page,
            candidate_pages=list(request.candidate_pages),
            pages=len(order),
        )
        scanned = 0
        for page in order:
            token.raise_if_cancelled()
            self.searching_page = page
            self._transition(NavigationState.SEARCHING, page=page)
            page_text = await self._page_text(page, token)
            if page_text is None or not page_text.is_extracted:
                continue
            scanned += 1
            match = self.matcher.match_page(request.quote, page_text)
            if match is None:
                continue
            try:
                return await self._reveal(match, token, scanned, request)
            except PageNotRendered as exc:
                logger.warning("highlight_target_vanished", page=page, code=exc.code)

        token.raise_if_cancelled()
        self.renderer.clear_all()
        self.surface.scroll_into_view(FALLBACK_PAGE, block="center")
        self._transition(NavigationState.NOT_FOUND)
        error = QuoteNotFound(request.quote, pages_scanned=scanned)
        logger.warning(
            "citation_not_found",
            code=error.code,
            quote=preview(request.quote),
            pages_scanned=scanned,
            fallback_page=FALLBACK_PAGE,
        )
        return JumpResult(
            outcome=JumpOutcome.QUOTE_NOT_FOUND,
            page=FALLBACK_PAGE,
            pages_scanned=scanned,
            error=error,
        )

    async def _page_text(self, page: int, token: CancellationToken) -> PageText | None:
        if not self.surface.is_rendered(page):
            logger.info("page_skipped", page=page, code=PageNotRendered.code)
            return None
        if self.cache.is_excluded(page):
            logger.info("page_skipped", page=page, reason="extraction_exhausted")
            return None
        cached = self.cache.get(page)
        if cached is not None and cached.is_extracted:
            return cached

        in_flight = self.extractor.in_flight(page)
        if in_flight is not None:
            await asyncio.wait({in_flight})
            token.raise_if_cancelled()
            return self.cache.get(page)
        return await self.extractor.extract(page, token)

    async def _reveal(
        self,
        match: MatchResult,
        token: CancellationToken,
        scanned: int,
        request: CitationRequest,
    ) -> JumpResult:
        self.surface.scroll_into_view(match.page, block="center")
        await token.sleep(self.settle_delay_s)
        self.renderer.apply(match)
        self._show_ring(match.page, token)
        self._transition(NavigationState.FOUND, page=match.page)
        if request.hinted_page is not None and request.hinted_page != match.page:
            logger.info("citation_page_hint_mismatch", hinted_page=request.hinted_page, found_page=match.page)
        return JumpResult(outcome=JumpOutcome.FOUND, page=match.page, match=match, pages_scanned=scanned)

    def _show_ring(self, page: int, token: CancellationToken):
        self._clear_ring()
        self.surface.set_focus_ring(page, True)
        self._ring_page = page
        token.on_cancel(self._clear_ring)
        token.call_later(self.focus_ring_duration_s, self._clear_ring)

    def _clear_ring(self):
        if self._ring_page is None:
            return
        self.surface.set_focus_ring(self._ring_page, False)
        self._ring_page = None

    def _transition(self, state: NavigationState, *, page: int | None = None):
        if state is self._state and state is not NavigationState.SEARCHING:
            return
        self._state = state
        logger.debug("navigation_state", state=state.value, page=page)
