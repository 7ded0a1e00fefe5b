import asyncio
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

import fitz

from citeforge import cli
from citeforge.pdf_surface import PdfRenderSurface


def build_pdf(path):
    with fitz.open() as doc:
        for line in ("Cover page", "The term shall be 12 months from signing."):
            doc.new_page().insert_text((72, 72), line, fontsize=11)
        doc.save(str(path))


class TestCli(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.root = Path(self.tmp.name)
        self.pdf_path = self.root / "contract.pdf"
        build_pdf(self.pdf_path)

    def tearDown(self):
        self.tmp.cleanup()

    def test_resolve_pdf_path(self):
        resolved, error = cli._resolve_pdf_path(f'"{self.pdf_path}"')
        self.assertEqual(resolved, self.pdf_path.resolve())
        self.assertIsNone(error)

        notes = self.root / "notes.txt"
        notes.write_text("hello", encoding="utf-8")
        self.assertIn("Not a PDF", cli._resolve_pdf_path(str(notes))[1])
        self.assertIn("not found", cli._resolve_pdf_path(str(self.root / "missing.pdf"))[1])
        self.assertIn("Empty path", cli._resolve_pdf_path("   ")[1])

    def test_parser(self):
        args = cli.build_parser().parse_args(["doc.pdf", "a quote", "--page", "4"])
        self.assertEqual(args.quote, "a quote")
        self.assertEqual(args.page, 4)
        self.assertIsNone(args.export)

    def test_one_shot_lookup_with_export(self):
        export_path = self.root / "highlighted.pdf"
        code = asyncio.run(cli.run(self.pdf_path, "term shall be 12 months", 1, str(export_path)))
        self.assertEqual(code, 0)
        self.assertTrue(export_path.exists())

    def test_document_is_closed_when_rendering_fails(self):
        real_close = PdfRenderSurface.close
        with patch.object(PdfRenderSurface, "render_all", side_effect=RuntimeError("broken text layer")), \
                patch.object(PdfRenderSurface, "close", autospec=True, side_effect=real_close) as close:
            with self.assertRaises(RuntimeError):
                asyncio.run(cli.run(self.pdf_path, "term shall", None, None))
        close.assert_called_once()

    def test_one_shot_miss_returns_nonzero(self):
        code = asyncio.run(cli.run(self.pdf_path, "nonexistent clause xyz123", None, None))
        self.assertEqual(code, 1)


if __name__ == "__main__":
    unittest.main()
