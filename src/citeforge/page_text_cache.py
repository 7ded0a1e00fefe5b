"""
Process-local store of extracted page text.
Filled by the fragment extractor, read by the matcher and the host snapshot.
"""
from __future__ import annotations

import threading

from .models import PageText
from .observability import get_logger

logger = get_logger(__name__)


class PageTextCache:
    """Thread-safe page number -> PageText map with an exclusion set."""

    def __init__(self):
        self._entries: dict[int, PageText] = {}
        self._excluded: set[int] = set()
        self._lock = threading.Lock()

    def get(self, page: int) -> PageText | None:
        with self._lock:
            return self._entries.get(page)

    def store(self, page_text: PageText):
        with self._lock:
            self._entries[page_text.page] = page_text
            if page_text.is_extracted:
                self._excluded.discard(page_text.page)

    def mark_exhausted(self, page: int):
        """Records an empty entry; the page is skipped until forced extraction."""
        with self._lock:
            self._entries[page] = PageText.empty(page)
            self._excluded.add(page)

    def is_excluded(self, page: int) -> bool:
        with self._lock:
            return page in self._excluded

    def lift_exclusions(self):
        with self._lock:
            self._excluded.clear()

    def pages(self) -> list[int]:
        with self._lock:
            return sorted(self._entries)

    def extracted(self) -> list[PageText]:
        with self._lock:
            return [self._entries[p] for p in sorted(self._entries) if self._entries[p].is_extracted]

    def snapshot(self, page_count: int) -> list[dict]:
        """One ``{"page", "text"}`` entry per page; text is empty when not extracted."""
        with self._lock:
            last_page = max([int(page_count), *self._entries.keys()], default=0)
            out = []
            for page in range(1, last_page + 1):
                entry = self._entries.get(page)
                out.append({"page": page, "text": entry.raw_text if entry is not None else ""})
        missing = [item["page"] for item in out if not item["text"]]
        if missing:
            logger.info("page_texts_missing", pages=missing)
        return out

    def reset(self):
        with self._lock:
            dropped = len(self._entries)
            self._entries.clear()
            self._excluded.clear()
        logger.info("page_text_cache_reset", dropped=dropped)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
