# /citeforge/pdf_surface.py
"""
PyMuPDF-backed render surface.
Each text span of a page becomes one fragment with its bounding box, so a
highlight can be reported as page rectangles or written back into a PDF copy.
"""
from contextlib import closing
from pathlib import Path
from typing import Any

import fitz

from .observability import get_logger, preview
from .rendering import BaseRenderSurface

logger = get_logger(__name__)


class PdfFragment:
    __slots__ = ("text", "bbox", "_highlighted", "__weakref__")

    def __init__(self, text: str, bbox: tuple[float, float, float, float]):
        self.text = text
        self.bbox = bbox
        self._highlighted = False

    @property
    def highlighted(self) -> bool:
        return self._highlighted

    def set_highlighted(self, active: bool):
        self._highlighted = bool(active)


def _span_fragments(page_dict: dict[str, Any]) -> list[PdfFragment]:
    fragments: list[PdfFragment] = []
    for block in page_dict.get("blocks", []):
        # type 0 is text, type 1 is an image block
        if block.get("type") != 0:
            continue
        for line in block.get("lines", []):
            for span in line.get("spans", []):
                text = str(span.get("text", ""))
                if not text:
                    continue
                x0, y0, x1, y1 = (float(v) for v in span.get("bbox", (0, 0, 0, 0)))
                fragments.append(PdfFragment(text, (x0, y0, x1, y1)))
    return fragments


class PdfRenderSurface(BaseRenderSurface):
    """Opens a PDF and renders text layers page by page."""

    def __init__(self, path: str | Path):
        super().__init__()
        self.path = Path(path)
        self._doc = fitz.open(str(self.path))
        self._fragments: dict[int, list[PdfFragment]] = {}

    @property
    def page_count(self) -> int:
        return int(self._doc.page_count)

    @property
    def title(self) -> str:
        metadata = self._doc.metadata or {}
        return str(metadata.get("title") or self.path.name)

    def _fragments_for(self, page: int) -> list[PdfFragment]:
        return list(self._fragments.get(page, []))

    def render_page(self, page: int) -> int:
        """Builds the page's fragments and fires the render-complete signal."""
        pdf_page = self._doc.load_page(page - 1)
        fragments = _span_fragments(pdf_page.get_text("dict"))
        self._fragments[page] = fragments
        logger.info(
            "pdf_page_rendered",
            page=page,
            fragments=len(fragments),
            sample=preview(" ".join(f.text for f in fragments[:8])),
        )
        self.mark_rendered(page)
        return len(fragments)

    def render_all(self) -> int:
        total = 0
        for page in range(1, self.page_count + 1):
            total += self.render_page(page)
        return total

    def highlight_boxes(self) -> list[dict[str, Any]]:
        boxes = []
        for page in sorted(self._fragments):
            for index, fragment in enumerate(self._fragments[page]):
                if fragment.highlighted:
                    boxes.append({"page": page, "index": index, "bbox": list(fragment.bbox), "text": fragment.text})
        return boxes

    def export_highlighted(self, out_path: str | Path) -> int:
        """Writes a copy of the PDF with highlight annotations; returns how many were added."""
        out_path = Path(out_path)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        added = 0
        with closing(fitz.open(str(self.path))) as doc:
            for box in self.highlight_boxes():
                pdf_page = doc.load_page(box["page"] - 1)
                pdf_page.add_highlight_annot(fitz.Rect(*box["bbox"]))
                added += 1
            doc.save(str(out_path))
        logger.info("pdf_highlights_exported", path=str(out_path), annotations=added)
        return added

    def close(self):
        if not self._doc.is_closed:
            self._doc.close()
