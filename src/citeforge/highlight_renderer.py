"""
Applies and removes the highlight presentation on rendered fragments.

The renderer owns the single highlight cell for the document. Every apply
clears first, so at most one highlighted passage is ever visible.
"""
from __future__ import annotations

from .config import HIGHLIGHT_CONTEXT_NEIGHBORS
from .errors import PageNotRendered
from .models import HighlightState, MatchResult
from .observability import get_logger, preview

logger = get_logger(__name__)


class HighlightRenderer:
    def __init__(self, surface, *, context_neighbors: int = HIGHLIGHT_CONTEXT_NEIGHBORS):
        self.surface = surface
        self.context_neighbors = max(0, int(context_neighbors))
        self._state: HighlightState | None = None
        self._marked: list = []
        self._generation = 0

    @property
    def state(self) -> HighlightState | None:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    def clear_all(self) -> int:
        """Removes every highlight mark; safe to call when nothing is marked."""
        cleared = 0
        for fragment in self._marked:
            if fragment.highlighted:
                fragment.set_highlighted(False)
                cleared += 1
        self._marked = []
        cleared += self._sweep()
        if self._state is not None or cleared:
            logger.info("highlight_cleared", fragments=cleared, generation=self._generation)
        self._state = None
        return cleared

    def _sweep(self) -> int:
        # Marks the renderer did not track (e.g. after a re-render) are cleared too.
        cleared = 0
        for page in self.surface.rendered_pages():
            try:
                fragments = self.surface.get_fragments(page)
            except PageNotRendered:
                continue
            for fragment in fragments:
                if fragment.highlighted:
                    fragment.set_highlighted(False)
                    cleared += 1
        return cleared

    def apply(self, match: MatchResult) -> HighlightState:
        """Clears the previous highlight, then marks the match plus its neighbors."""
        self.clear_all()
        fragments = list(self.surface.get_fragments(match.page))
        indices = [ref.index for ref in match.fragment_range]
        first = max(0, min(indices) - self.context_neighbors)
        last = min(len(fragments) - 1, max(indices) + self.context_neighbors)

        marked = []
        for position in range(first, last + 1):
            fragment = self._resolve(match, position, fragments)
            if fragment is None:
                continue
            fragment.set_highlighted(True)
            marked.append(fragment)

        self._generation += 1
        self._marked = marked
        self._state = HighlightState(
            page=match.page,
            fragment_indices=tuple(range(first, last + 1)),
            matched_text=match.matched_text,
            strategy=match.strategy,
            generation=self._generation,
        )
        logger.info(
            "highlight_applied",
            page=match.page,
            fragments=len(marked),
            strategy=match.strategy.value,
            generation=self._generation,
            text=preview(match.matched_text),
        )
        return self._state

    def _resolve(self, match: MatchResult, position: int, fragments: list):
        for ref in match.fragment_range:
            if ref.index == position:
                fragment = ref.resolve(self.surface)
                if fragment is not None:
                    return fragment
        if 0 <= position < len(fragments):
            return fragments[position]
        return None

    def clear_if_current(self, generation: int) -> bool:
        """Compare-and-clear: only clears when ``generation`` is still the active highlight."""
        if self._state is None or self._state.generation != generation:
            return False
        self.clear_all()
        return True
