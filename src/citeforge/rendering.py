"""
Interface to the rendering collaborator that paints pages and owns fragments.

The core never creates or destroys fragments; it reads ``text`` and toggles
the highlight presentation. ``InMemoryRenderSurface`` is a complete surface
for hosts that stream text layers in (and for the test-suite).
"""
from __future__ import annotations

import asyncio
from typing import Callable, Iterable, Protocol, Sequence

from .errors import PageNotRendered
from .observability import get_logger

logger = get_logger(__name__)

RenderListener = Callable[[int], None]


class Fragment(Protocol):
    text: str

    @property
    def highlighted(self) -> bool:
        ...

    def set_highlighted(self, active: bool):
        ...


class RenderSurface(Protocol):
    @property
    def page_count(self) -> int:
        ...

    def is_rendered(self, page: int) -> bool:
        ...

    def rendered_pages(self) -> list[int]:
        ...

    def get_fragments(self, page: int) -> Sequence[Fragment]:
        ...

    async def wait_rendered(self, page: int, timeout: float | None = None) -> bool:
        ...

    def add_render_listener(self, listener: RenderListener):
        ...

    def remove_render_listener(self, listener: RenderListener):
        ...

    def scroll_into_view(self, page: int, block: str = "center"):
        ...

    def set_focus_ring(self, page: int, active: bool):
        ...


class TextFragment:
    """Plain text fragment with a highlight flag."""

    __slots__ = ("text", "_highlighted", "__weakref__")

    def __init__(self, text: str = ""):
        self.text = str(text or "")
        self._highlighted = False

    @property
    def highlighted(self) -> bool:
        return self._highlighted

    def set_highlighted(self, active: bool):
        self._highlighted = bool(active)

    def __repr__(self) -> str:
        flag = " *" if self._highlighted else ""
        return f"TextFragment({self.text!r}{flag})"


class BaseRenderSurface:
    """Render bookkeeping shared by the concrete surfaces."""

    def __init__(self):
        self._rendered: set[int] = set()
        self._render_events: dict[int, asyncio.Event] = {}
        self._listeners: list[RenderListener] = []
        self.viewport_page: int | None = None
        self.scroll_history: list[int] = []
        self.ring_pages: set[int] = set()

    @property
    def page_count(self) -> int:
        raise NotImplementedError

    def _fragments_for(self, page: int) -> Sequence[Fragment]:
        raise NotImplementedError

    def is_rendered(self, page: int) -> bool:
        return page in self._rendered

    def rendered_pages(self) -> list[int]:
        return sorted(self._rendered)

    def get_fragments(self, page: int) -> Sequence[Fragment]:
        if not self.is_rendered(page):
            raise PageNotRendered(f"page {page} is not rendered", page=page)
        return self._fragments_for(page)

    def _render_event(self, page: int) -> asyncio.Event:
        event = self._render_events.get(page)
        if event is None:
            event = asyncio.Event()
            if page in self._rendered:
                event.set()
            self._render_events[page] = event
        return event

    async def wait_rendered(self, page: int, timeout: float | None = None) -> bool:
        if self.is_rendered(page):
            return True
        if not 1 <= page <= self.page_count:
            return False
        try:
            await asyncio.wait_for(self._render_event(page).wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True

    def add_render_listener(self, listener: RenderListener):
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_render_listener(self, listener: RenderListener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def mark_rendered(self, page: int):
        """Render-complete notification for ``page``."""
        if not 1 <= page <= self.page_count:
            raise PageNotRendered(f"page {page} does not exist", page=page)
        self._rendered.add(page)
        event = self._render_events.get(page)
        if event is not None:
            event.set()
        for listener in list(self._listeners):
            listener(page)

    def scroll_into_view(self, page: int, block: str = "center"):
        if not self.is_rendered(page):
            logger.warning("scroll_target_not_rendered", page=page)
            return
        self.viewport_page = page
        self.scroll_history.append(page)

    def set_focus_ring(self, page: int, active: bool):
        if active:
            self.ring_pages.add(page)
        else:
            self.ring_pages.discard(page)


class InMemoryRenderSurface(BaseRenderSurface):
    def __init__(self, pages: Iterable[Sequence[str]] = (), *, rendered: bool = False):
        super().__init__()
        self._pages: list[list[TextFragment]] = [
            [TextFragment(text) for text in texts] for texts in pages
        ]
        if rendered:
            for page in range(1, len(self._pages) + 1):
                self.mark_rendered(page)

    @property
    def page_count(self) -> int:
        return len(self._pages)

    def _fragments_for(self, page: int) -> Sequence[TextFragment]:
        return list(self._pages[page - 1])

    def add_page(self, texts: Sequence[str]) -> int:
        self._pages.append([TextFragment(text) for text in texts])
        return len(self._pages)

    def update_fragments(self, page: int, texts: Sequence[str]):
        """Replaces the page's text layer with fresh fragment objects."""
        if not 1 <= page <= self.page_count:
            raise PageNotRendered(f"page {page} does not exist", page=page)
        self._pages[page - 1] = [TextFragment(text) for text in texts]

    def highlighted_fragments(self) -> list[tuple[int, int, str]]:
        out = []
        for page_index, fragments in enumerate(self._pages, start=1):
            for index, fragment in enumerate(fragments):
                if fragment.highlighted:
                    out.append((page_index, index, fragment.text))
        return out
