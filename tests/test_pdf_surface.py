import tempfile
import unittest
from pathlib import Path

import fitz

from citeforge.models import JumpOutcome
from citeforge.pdf_surface import PdfRenderSurface
from citeforge.viewer import CitationViewer, ViewerSettings

PAGES = [
    ["Master Services Agreement", "Between the supplier and the customer."],
    ["1. Duration", "The term shall be 12 months from signing.", "Either party may renew in writing."],
    ["2. Payment", "Invoices are due within thirty days."],
]


def build_pdf(path, pages=PAGES):
    with fitz.open() as doc:
        for lines in pages:
            page = doc.new_page()
            for i, line in enumerate(lines):
                page.insert_text((72, 72 + i * 20), line, fontsize=11)
        doc.set_metadata({"title": "Sample Agreement"})
        doc.save(str(path))


class TestPdfRenderSurface(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.pdf_path = Path(self.tmp.name) / "agreement.pdf"
        build_pdf(self.pdf_path)
        self.surface = PdfRenderSurface(self.pdf_path)

    async def asyncTearDown(self):
        self.surface.close()
        self.tmp.cleanup()

    async def test_render_produces_span_fragments(self):
        self.assertEqual(self.surface.page_count, 3)
        self.assertEqual(self.surface.title, "Sample Agreement")
        self.assertFalse(self.surface.is_rendered(2))
        count = self.surface.render_page(2)
        self.assertEqual(count, 3)
        texts = [fragment.text for fragment in self.surface.get_fragments(2)]
        self.assertIn("The term shall be 12 months from signing.", texts)

    async def test_locate_and_export_highlight(self):
        viewer = CitationViewer(self.surface, ViewerSettings(scroll_settle_delay_s=0.0, focus_ring_duration_s=0.0))
        self.surface.render_all()
        await viewer.wait_for_extraction()

        result = await viewer.locate(page=3, quote="the term shall be 12 months")
        self.assertEqual(result.outcome, JumpOutcome.FOUND)
        self.assertEqual(result.page, 2)

        boxes = self.surface.highlight_boxes()
        self.assertTrue(boxes)
        self.assertEqual({box["page"] for box in boxes}, {2})
        self.assertTrue(all(len(box["bbox"]) == 4 for box in boxes))

        out_path = Path(self.tmp.name) / "out" / "highlighted.pdf"
        added = self.surface.export_highlighted(out_path)
        self.assertEqual(added, len(boxes))
        with fitz.open(str(out_path)) as exported:
            self.assertEqual(len(list(exported[1].annots())), added)
            self.assertEqual(len(list(exported[0].annots())), 0)
        viewer.close()


if __name__ == "__main__":
    unittest.main()
