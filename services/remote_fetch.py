# User value: This file downloads linked PDFs on the server so users are not blocked by browser cross-origin rules.
import logging

import requests

from config import MAX_REMOTE_DOCUMENT_MB, REMOTE_FETCH_TIMEOUT_SEC
from schemas.job_contract import ERROR_FETCH_FAILURE, ERROR_INVALID_REMOTE_CONTENT_TYPE
from services.results import OperationResult
from utils.metrics import incr

logger = logging.getLogger("api.remote_fetch")

MAX_REMOTE_DOCUMENT_BYTES = MAX_REMOTE_DOCUMENT_MB * 1024 * 1024
_STREAM_CHUNK = 64 * 1024


def fetch_document(url: str, expected_mime: str) -> OperationResult:
    """Fetch ``url`` and return ``(mime, bytes)`` when its Content-Type matches."""
    try:
        response = requests.get(url, timeout=REMOTE_FETCH_TIMEOUT_SEC, stream=True)
    except requests.RequestException as exc:
        incr("remote_fetch_failed_total", reason="transport")
        logger.warning("remote_fetch_failed url=%s error=%s: %s", url, exc.__class__.__name__, exc)
        return OperationResult.failure(ERROR_FETCH_FAILURE, "Could not fetch the document URL")

    with response:
        if not response.ok:
            incr("remote_fetch_failed_total", reason="status")
            logger.warning("remote_fetch_failed url=%s status=%s", url, response.status_code)
            return OperationResult.failure(
                ERROR_FETCH_FAILURE,
                f"Failed to fetch document from URL: HTTP {response.status_code} {response.reason or ''}".strip(),
            )

        content_type = str(response.headers.get("Content-Type") or "").lower()
        if expected_mime.lower() not in content_type:
            incr("remote_fetch_failed_total", reason="content_type")
            logger.info("remote_fetch_wrong_type url=%s content_type=%s expected=%s", url, content_type, expected_mime)
            return OperationResult.failure(
                ERROR_INVALID_REMOTE_CONTENT_TYPE,
                f"The URL does not point to a {expected_mime} resource",
                content_type=content_type or "none",
            )

        chunks = []
        size = 0
        try:
            for chunk in response.iter_content(chunk_size=_STREAM_CHUNK):
                size += len(chunk)
                if size > MAX_REMOTE_DOCUMENT_BYTES:
                    incr("remote_fetch_failed_total", reason="too_large")
                    return OperationResult.failure(
                        ERROR_FETCH_FAILURE,
                        f"Remote document exceeds max {MAX_REMOTE_DOCUMENT_MB} MB",
                    )
                chunks.append(chunk)
        except requests.RequestException as exc:
            incr("remote_fetch_failed_total", reason="transport")
            logger.warning("remote_fetch_interrupted url=%s error=%s: %s", url, exc.__class__.__name__, exc)
            return OperationResult.failure(ERROR_FETCH_FAILURE, "Could not fetch the document URL")

    incr("remote_fetch_completed_total")
    return OperationResult.success((expected_mime.lower(), b"".join(chunks)))
