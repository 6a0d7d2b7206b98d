# User value: This test runs the real PDF and image libraries so users get the pages and crops they expect.
import io
import unittest
from unittest.mock import patch

import fitz
from PIL import Image

from services import pdf_tools
from tests.doc_fixtures import make_image, make_pdf, make_protected_pdf


class PdfToolsUnitTests(unittest.TestCase):
    def test_extract_pages_per_page(self):
        pages = pdf_tools.extract_pages(make_pdf(["First page", "Second page", "Third page"]))
        self.assertEqual(len(pages), 3)
        self.assertIn("Second page", pages[1])

    # User value: scanned or blank PDFs fail with a clear extraction error instead of an empty summary.
    def test_blank_pdf_raises_extraction_error(self):
        with self.assertRaises(pdf_tools.ExtractionError):
            pdf_tools.extract_pages(make_pdf(["", ""]))

    def test_garbage_raises_extraction_error(self):
        with self.assertRaises(pdf_tools.ExtractionError):
            pdf_tools.extract_pages(b"this is not a pdf")

    def test_falls_back_to_pypdf_when_pymupdf_fails(self):
        data = make_pdf(["fallback text"])
        with patch.object(pdf_tools, "_pages_pymupdf", side_effect=pdf_tools.DocumentError("boom")):
            with self.assertLogs("api.pdf", level="WARNING") as logs:
                pages = pdf_tools.extract_pages(data)
        self.assertIn("fallback text", pages[0])
        self.assertIn("extractor=pymupdf", logs.output[0])

    def test_protected_pdf_raises_without_fallback(self):
        with patch.object(pdf_tools, "_pages_pypdf") as fallback:
            with self.assertLogs("api.pdf", level="WARNING") as logs:
                with self.assertRaises(pdf_tools.ProtectedDocumentError):
                    pdf_tools.extract_pages(make_protected_pdf(["secret"]))
        fallback.assert_not_called()
        self.assertIn("password_protected", logs.output[0])

    def test_render_protected_pdf_raises_extraction_error(self):
        with self.assertRaises(pdf_tools.ExtractionError):
            pdf_tools.render_pages(make_protected_pdf(["secret"]), dpi=36)

    def test_render_pages_one_png_per_page(self):
        images = pdf_tools.render_pages(make_pdf(["a", "b"]), dpi=36)
        self.assertEqual(len(images), 2)
        self.assertTrue(all(img.startswith(b"\x89PNG") for img in images))

    def test_compose_from_images_page_sizes_follow_images(self):
        data = pdf_tools.compose_from_images([make_image(40, 30), make_image(25, 60, "JPEG"), make_image(10, 10, "GIF")])
        with fitz.open(stream=data, filetype="pdf") as doc:
            self.assertEqual(doc.page_count, 3)
            self.assertEqual((doc[0].rect.width, doc[0].rect.height), (40, 30))
            self.assertEqual((doc[1].rect.width, doc[1].rect.height), (25, 60))
            self.assertEqual((doc[2].rect.width, doc[2].rect.height), (10, 10))

    def test_compose_rejects_unreadable_image(self):
        with self.assertRaises(pdf_tools.ImageError):
            pdf_tools.compose_from_images([make_image(), b"not an image"])

    def test_render_text_document_one_page_per_block(self):
        data = pdf_tools.render_text_document(["Hola mundo", "Segunda pagina"])
        with fitz.open(stream=data, filetype="pdf") as doc:
            self.assertEqual(doc.page_count, 2)
            self.assertIn("Segunda", doc[1].get_text())

    def test_crop_image_uses_normalized_box(self):
        cropped = pdf_tools.crop_image(make_image(200, 100), [0, 0, 500, 250])
        with Image.open(io.BytesIO(cropped)) as img:
            self.assertEqual(img.size, (50, 50))

    def test_crop_image_rejects_empty_box(self):
        with self.assertRaises(pdf_tools.ImageError):
            pdf_tools.crop_image(make_image(), [100, 100, 100, 400])


if __name__ == "__main__":
    unittest.main()
