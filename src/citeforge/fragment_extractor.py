"""
Pulls the ordered text fragments of a rendered page into the page text cache.

A page can finish rendering before its text layer is populated, so an empty
read is retried a bounded number of times. After the budget is spent the
page is recorded with empty text and left out of matching until the host
forces a fresh extraction.
"""
from __future__ import annotations

import asyncio

from .config import EXTRACTION_MAX_RETRIES, EXTRACTION_RETRY_DELAY_S, RENDER_WAIT_TIMEOUT_S
from .errors import ExtractionEmpty, ExtractionPending, OperationCancelled, PageNotRendered
from .models import FragmentRef, PageText
from .observability import get_logger, preview
from .page_text_cache import PageTextCache
from .scheduling import CancellationToken

logger = get_logger(__name__)


class FragmentExtractor:
    def __init__(
        self,
        surface,
        cache: PageTextCache,
        *,
        max_retries: int = EXTRACTION_MAX_RETRIES,
        retry_delay_s: float = EXTRACTION_RETRY_DELAY_S,
        render_timeout_s: float = RENDER_WAIT_TIMEOUT_S,
    ):
        self.surface = surface
        self.cache = cache
        self.max_retries = max(0, int(max_retries))
        self.retry_delay_s = max(0.0, float(retry_delay_s))
        self.render_timeout_s = max(0.0, float(render_timeout_s))
        self._tasks: dict[int, tuple[CancellationToken, asyncio.Task]] = {}

    def _snapshot(self, page: int) -> PageText:
        fragments = self.surface.get_fragments(page)
        refs = tuple(FragmentRef.of(fragment, page=page, index=i) for i, fragment in enumerate(fragments))
        raw_text = " ".join(ref.text for ref in refs)
        # Blank layers stay "" so raw_text is empty exactly when nothing was extracted.
        return PageText(page=page, fragments=refs, raw_text=raw_text if raw_text.strip() else "")

    def read_page(self, page: int) -> PageText:
        """One synchronous read of the page's text layer."""
        page_text = self._snapshot(page)
        if not page_text.is_extracted:
            raise ExtractionPending(f"page {page} has no text yet", page=page)
        return page_text

    async def extract(self, page: int, token: CancellationToken | None = None) -> PageText | None:
        """
        Extracts ``page`` into the cache and returns it.

        Returns None while the page has not rendered within the wait timeout.
        A page whose retries ran out comes back as an empty PageText.
        """
        token = token or CancellationToken(f"extract:{page}")
        token.raise_if_cancelled()
        rendered = await self.surface.wait_rendered(page, timeout=self.render_timeout_s)
        token.raise_if_cancelled()
        if not rendered:
            logger.warning("page_not_rendered", page=page, waited_s=self.render_timeout_s)
            return None

        attempts = self.max_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                page_text = self.read_page(page)
            except PageNotRendered as exc:
                logger.warning("page_not_rendered", page=page, error=str(exc))
                return None
            except ExtractionPending:
                if attempt < attempts:
                    logger.info("page_text_pending", page=page, attempt=attempt, retry_in_s=self.retry_delay_s)
                    await token.sleep(self.retry_delay_s)
                    continue
                break
            self.cache.store(page_text)
            logger.info(
                "page_text_extracted",
                page=page,
                attempt=attempt,
                fragments=len(page_text.fragments),
                sample=preview(page_text.raw_text),
            )
            return page_text

        self.cache.mark_exhausted(page)
        logger.warning("page_text_empty", page=page, attempts=attempts, code=ExtractionEmpty.code)
        return self.cache.get(page)

    def on_page_rendered(self, page: int):
        """Render-complete listener; schedules extraction on the running loop."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        if loop is None:
            self._extract_now(page)
            return

        previous = self._tasks.pop(page, None)
        if previous is not None:
            previous[0].cancel()
        token = CancellationToken(f"extract:{page}")
        task = token.spawn(self._extract_task(page, token))
        self._tasks[page] = (token, task)

    async def _extract_task(self, page: int, token: CancellationToken):
        try:
            return await self.extract(page, token)
        except OperationCancelled:
            return None
        finally:
            current = self._tasks.get(page)
            if current is not None and current[0] is token:
                self._tasks.pop(page, None)

    def _extract_now(self, page: int):
        try:
            self.cache.store(self.read_page(page))
        except (ExtractionPending, PageNotRendered) as exc:
            logger.info("page_text_deferred", page=page, code=exc.code)

    def in_flight(self, page: int) -> asyncio.Task | None:
        entry = self._tasks.get(page)
        return entry[1] if entry is not None else None

    async def wait_idle(self):
        """Waits for every scheduled background extraction to settle."""
        while self._tasks:
            tasks = [task for _, task in self._tasks.values()]
            await asyncio.gather(*tasks, return_exceptions=True)
            for page, (_token, task) in list(self._tasks.items()):
                if task.done():
                    self._tasks.pop(page, None)

    def force_extraction(self) -> list[int]:
        """Re-reads every rendered page unconditionally, overwriting cached entries."""
        self.cancel_pending()
        refreshed = []
        for page in self.surface.rendered_pages():
            try:
                page_text = self._snapshot(page)
            except PageNotRendered as exc:
                logger.warning("page_not_rendered", page=page, error=str(exc))
                continue
            self.cache.store(page_text)
            refreshed.append(page)
            logger.info("page_text_force_extracted", page=page, sample=preview(page_text.raw_text))
        self.cache.lift_exclusions()
        return refreshed

    def cancel_pending(self):
        entries, self._tasks = list(self._tasks.values()), {}
        for token, _task in entries:
            token.cancel()
