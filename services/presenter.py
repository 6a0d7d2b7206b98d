# User value: This file turns finished jobs into something users can read, play, view or download.
import os
from typing import Any, Optional

from schemas.job_contract import (
    JOB_KIND_CONVERT_FROM_IMAGES,
    JOB_KIND_CONVERT_TO_IMAGES,
    JOB_KIND_DETECT_OUTFIT,
    JOB_KIND_NARRATE,
    JOB_KIND_SUMMARIZE,
    JOB_KIND_TRANSLATE,
)

SIZE_UNITS = ("Bytes", "KB", "MB", "GB", "TB")
CONVERTED_DOCUMENT_NAME = "converted.pdf"


def format_file_size(size_bytes: Optional[int], decimals: int = 2) -> str:
    size = int(size_bytes or 0)
    if size <= 0:
        return "0 Bytes"
    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(SIZE_UNITS) - 1:
        value /= 1024
        unit += 1
    text = f"{value:.{max(0, decimals)}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return f"{text} {SIZE_UNITS[unit]}"


def _stem(filename: Optional[str], default: str = "document") -> str:
    base = os.path.basename(str(filename or "").strip())
    stem, _ = os.path.splitext(base)
    return stem or default


def translated_filename(source_name: Optional[str]) -> str:
    return f"translated-{_stem(source_name)}.pdf"


def page_image_filename(source_name: Optional[str], page_number: int) -> str:
    return f"{_stem(source_name)}-page-{page_number}.png"


def narration_filename(source_name: Optional[str]) -> str:
    return f"{_stem(source_name)}-narration.wav"


def page_count_label(count: Optional[int]) -> str:
    n = int(count or 0)
    return f"{n} page" if n == 1 else f"{n} pages"


def present(kind: str, result: Optional[dict], input_filenames: Optional[list] = None) -> Optional[dict[str, Any]]:
    """Map a succeeded job's result to its display form. Returns None when there is nothing to show."""
    if not result:
        return None
    source = (input_filenames or [None])[0]

    if kind == JOB_KIND_SUMMARIZE:
        return {
            "type": "text",
            "text": result.get("summary_text", ""),
            "page_count": result.get("page_count"),
            "page_count_label": page_count_label(result.get("page_count")),
        }

    if kind == JOB_KIND_TRANSLATE:
        return {
            "type": "document",
            "text": result.get("translated_text", ""),
            "download_name": translated_filename(source),
            "download_index": 0,
            "page_count_label": page_count_label(result.get("page_count")),
        }

    if kind == JOB_KIND_NARRATE:
        return {
            "type": "audio",
            "audio": result.get("audio"),
            "download_name": narration_filename(source),
            "download_index": 0,
        }

    if kind == JOB_KIND_CONVERT_TO_IMAGES:
        images = result.get("images") or []
        return {
            "type": "gallery",
            "images": [
                {"index": i, "src": img, "download_name": page_image_filename(source, i + 1)}
                for i, img in enumerate(images)
            ],
            "page_count_label": page_count_label(len(images)),
        }

    if kind == JOB_KIND_CONVERT_FROM_IMAGES:
        return {
            "type": "document",
            "download_name": CONVERTED_DOCUMENT_NAME,
            "download_index": 0,
            "page_count_label": page_count_label(result.get("page_count")),
        }

    if kind == JOB_KIND_DETECT_OUTFIT:
        items = result.get("items") or []
        return {"type": "outfit", "items": items, "item_count": len(items)}

    return None


def downloadable(kind: str, result: Optional[dict], input_filenames: Optional[list], index: int = 0):
    """Return ``(payload, filename)`` for a downloadable artifact, or None if there is none at ``index``."""
    if not result:
        return None
    source = (input_filenames or [None])[0]
    if kind == JOB_KIND_TRANSLATE and index == 0:
        return result.get("translated_document"), translated_filename(source)
    if kind == JOB_KIND_NARRATE and index == 0:
        return result.get("audio"), narration_filename(source)
    if kind == JOB_KIND_CONVERT_FROM_IMAGES and index == 0:
        return result.get("document"), CONVERTED_DOCUMENT_NAME
    if kind == JOB_KIND_CONVERT_TO_IMAGES:
        images = result.get("images") or []
        if 0 <= index < len(images):
            return images[index], page_image_filename(source, index + 1)
    return None
