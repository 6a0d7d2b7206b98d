# User value: This file reads, renders and builds PDF documents so users get real pages, images and text back.
import io
import logging
from typing import Sequence

import fitz  # PyMuPDF
from PIL import Image, UnidentifiedImageError
from pypdf import PdfReader
from pypdf.errors import PyPdfError

from config import PAGE_RENDER_DPI

logger = logging.getLogger("api.pdf")

# Normalized bounding boxes from the model use a 0-1000 grid.
BOX_SCALE = 1000
TEXT_PAGE_MARGIN = 56
TEXT_FONT_SIZE = 11
_NATIVE_IMAGE_FORMATS = {"PNG", "JPEG"}


class DocumentError(ValueError):
    pass


class ExtractionError(DocumentError):
    pass


class ProtectedDocumentError(ExtractionError):
    pass


class ImageError(DocumentError):
    pass


def _open_pdf(data: bytes) -> fitz.Document:
    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except (RuntimeError, ValueError) as exc:
        raise DocumentError(f"Could not open PDF: {exc}") from exc
    if doc.needs_pass:
        doc.close()
        raise ProtectedDocumentError("The PDF is password protected")
    return doc


# ---------------------------------------------------------
# TEXT EXTRACTION
# ---------------------------------------------------------
def _pages_pymupdf(data: bytes) -> list[str]:
    with _open_pdf(data) as doc:
        try:
            return [page.get_text("text") or "" for page in doc]
        except (RuntimeError, ValueError) as exc:
            raise DocumentError(f"Could not read PDF pages: {exc}") from exc


def _pages_pypdf(data: bytes) -> list[str]:
    reader = PdfReader(io.BytesIO(data))
    return [page.extract_text() or "" for page in reader.pages]


def extract_pages(data: bytes) -> list[str]:
    """Return per-page text, trying PyMuPDF first and pypdf second.

    Raises ExtractionError when neither extractor yields any non-blank text,
    and ProtectedDocumentError straight away for password protected files.
    """
    try:
        pages = _pages_pymupdf(data)
        if any(p.strip() for p in pages):
            return pages
        logger.info("pdf_extract_empty extractor=pymupdf pages=%s", len(pages))
    except ProtectedDocumentError:
        logger.warning("pdf_extract_failed extractor=pymupdf error=password_protected")
        raise
    except DocumentError as exc:
        logger.warning("pdf_extract_failed extractor=pymupdf error=%s", exc)

    try:
        pages = _pages_pypdf(data)
    except (PyPdfError, ValueError, KeyError, TypeError, OSError) as exc:
        logger.warning("pdf_extract_failed extractor=pypdf error=%s: %s", exc.__class__.__name__, exc)
        raise ExtractionError("Could not extract text from the PDF") from exc

    if not any(p.strip() for p in pages):
        raise ExtractionError("The PDF contains no extractable text")
    return pages


# ---------------------------------------------------------
# RENDERING
# ---------------------------------------------------------
def render_pages(data: bytes, dpi: int = PAGE_RENDER_DPI) -> list[bytes]:
    """Rasterize every page to PNG bytes, in page order."""
    images = []
    with _open_pdf(data) as doc:
        try:
            for page in doc:
                pix = page.get_pixmap(dpi=dpi)
                images.append(pix.tobytes("png"))
        except (RuntimeError, ValueError) as exc:
            raise DocumentError(f"Could not render PDF pages: {exc}") from exc
    return images


def _load_image(data: bytes) -> Image.Image:
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError, Image.DecompressionBombError) as exc:
        raise ImageError("Could not read image data") from exc
    return img


def _embeddable(img: Image.Image, data: bytes) -> bytes:
    if img.format in _NATIVE_IMAGE_FORMATS:
        return data
    # GIF/WebP/BMP etc. are re-encoded as PNG before embedding.
    buf = io.BytesIO()
    converted = img if img.mode in ("RGB", "RGBA", "L") else img.convert("RGBA")
    converted.save(buf, format="PNG")
    return buf.getvalue()


def compose_from_images(images: Sequence[bytes]) -> bytes:
    """One page per image, in input order, each page sized to the image's pixels."""
    if not images:
        raise DocumentError("At least one image is required")
    with fitz.open() as doc:
        for index, data in enumerate(images):
            try:
                img = _load_image(data)
            except ImageError as exc:
                raise ImageError(f"Image {index + 1} could not be read") from exc
            width, height = img.size
            page = doc.new_page(width=width, height=height)
            page.insert_image(page.rect, stream=_embeddable(img, data))
        return doc.tobytes()


def render_text_document(blocks: Sequence[str]) -> bytes:
    """Write each text block on its own A4 page with the base-14 Helvetica font.

    No reflow: text that does not fit the page box is clipped.
    """
    with fitz.open() as doc:
        for block in blocks:
            page = doc.new_page(width=fitz.paper_rect("a4").width, height=fitz.paper_rect("a4").height)
            box = page.rect + (TEXT_PAGE_MARGIN, TEXT_PAGE_MARGIN, -TEXT_PAGE_MARGIN, -TEXT_PAGE_MARGIN)
            overflow = page.insert_textbox(box, block, fontsize=TEXT_FONT_SIZE, fontname="helv")
            if overflow < 0:
                logger.info("pdf_text_block_clipped page=%s overflow=%.1f", doc.page_count, overflow)
        return doc.tobytes()


def crop_image(data: bytes, box: Sequence[float]) -> bytes:
    """Crop ``box`` = (ymin, xmin, ymax, xmax) on the 0-1000 grid and return PNG bytes."""
    img = _load_image(data)
    width, height = img.size
    if len(box) != 4:
        raise ImageError("Bounding box must have four coordinates")

    ymin, xmin, ymax, xmax = (max(0.0, min(float(v), BOX_SCALE)) for v in box)
    left = int(round(min(xmin, xmax) * width / BOX_SCALE))
    right = int(round(max(xmin, xmax) * width / BOX_SCALE))
    top = int(round(min(ymin, ymax) * height / BOX_SCALE))
    bottom = int(round(max(ymin, ymax) * height / BOX_SCALE))
    if right <= left or bottom <= top:
        raise ImageError("Bounding box has no area")

    cropped = img.crop((left, top, right, bottom))
    if cropped.mode not in ("RGB", "RGBA", "L"):
        cropped = cropped.convert("RGBA")
    buf = io.BytesIO()
    cropped.save(buf, format="PNG")
    return buf.getvalue()
