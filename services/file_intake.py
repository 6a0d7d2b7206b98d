# User value: This file checks and reads user uploads so only usable files ever reach the document tools.
import asyncio
import logging
import os
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional, Sequence

from fastapi import UploadFile

from config import MAX_UPLOAD_FILE_SIZE_BYTES, MAX_UPLOAD_FILE_SIZE_MB
from schemas.job_contract import (
    ERROR_INPUT_TOO_LARGE,
    ERROR_INVALID_INPUT_TYPE,
    ERROR_READ_FAILURE,
)
from services.payload_codec import encode_payload
from services.results import OperationResult
from utils.metrics import incr

logger = logging.getLogger("api.intake")

CHUNK_SIZE = 1024 * 1024

ProgressCallback = Callable[[float], None]

_SKIP_REASONS = {
    ERROR_INVALID_INPUT_TYPE: "not supported",
    ERROR_INPUT_TOO_LARGE: "too large",
    ERROR_READ_FAILURE: "could not be read",
}


@dataclass(frozen=True)
class IntakedFile:
    filename: str
    mime: str
    size_bytes: int
    payload: str


@dataclass
class MultiIntake:
    files: list[IntakedFile] = field(default_factory=list)
    rejected: list[dict] = field(default_factory=list)

    @property
    def notice(self) -> str | None:
        if not self.rejected:
            return None
        names = ", ".join(f"{r['filename']} ({_SKIP_REASONS.get(r.get('reason'), 'not supported')})" for r in self.rejected)
        return f"{len(self.rejected)} file(s) were skipped: {names}"


# User value: normalizes MIME values so users get the same decision regardless of casing or parameters.
def _norm_mime(mime: str | None) -> str:
    return str(mime or "").split(";", 1)[0].strip().lower()


def mime_accepted(mime: str | None, accepted: Iterable[str]) -> bool:
    value = _norm_mime(mime)
    if not value or "/" not in value:
        return False
    major = value.split("/", 1)[0]
    for pattern in accepted:
        pat = _norm_mime(pattern)
        if pat.endswith("/*"):
            if major == pat[:-2]:
                return True
        elif value == pat:
            return True
    return False


def get_upload_size_bytes(file_obj) -> int | None:
    try:
        pos = file_obj.tell()
        file_obj.seek(0, os.SEEK_END)
        size = file_obj.tell()
        file_obj.seek(pos, os.SEEK_SET)
        return int(size)
    except (AttributeError, OSError, ValueError):
        return None


async def _read_chunk(upload: UploadFile, size: int) -> bytes:
    chunk = upload.read(size)
    if asyncio.iscoroutine(chunk):
        return await chunk
    return chunk or b""


async def read_upload(
    upload: UploadFile,
    on_progress: Optional[ProgressCallback] = None,
    *,
    max_bytes: int = MAX_UPLOAD_FILE_SIZE_BYTES,
) -> OperationResult:
    """Read an upload in chunks, reporting non-decreasing progress in [0, 100]."""
    total = getattr(upload, "size", None)
    if total is None:
        total = get_upload_size_bytes(getattr(upload, "file", None))

    if total is not None and max_bytes > 0 and total > max_bytes:
        return OperationResult.failure(
            ERROR_INPUT_TOO_LARGE,
            f"File exceeds max {MAX_UPLOAD_FILE_SIZE_MB} MB",
        )

    chunks: list[bytes] = []
    loaded = 0
    last = 0.0
    if on_progress:
        on_progress(0.0)
    try:
        while True:
            chunk = await _read_chunk(upload, CHUNK_SIZE)
            if not chunk:
                break
            chunks.append(chunk)
            loaded += len(chunk)
            if max_bytes > 0 and loaded > max_bytes:
                return OperationResult.failure(
                    ERROR_INPUT_TOO_LARGE,
                    f"File exceeds max {MAX_UPLOAD_FILE_SIZE_MB} MB",
                )
            if on_progress and total:
                pct = min(100.0, loaded * 100.0 / total)
                if pct > last:
                    last = pct
                    on_progress(pct)
    except (OSError, ValueError, RuntimeError) as exc:
        logger.warning("upload_read_failed filename=%s error=%s: %s", upload.filename, exc.__class__.__name__, exc)
        return OperationResult.failure(ERROR_READ_FAILURE, f"Could not read file {upload.filename or ''}".strip())

    if on_progress and last < 100.0:
        on_progress(100.0)
    return OperationResult.success(b"".join(chunks))


# User value: rejects wrong file types before any work starts so users get instant feedback.
async def intake_file(
    upload: UploadFile,
    accepted: Sequence[str],
    on_progress: Optional[ProgressCallback] = None,
) -> OperationResult:
    filename = str(upload.filename or "").strip() or "upload"
    mime = _norm_mime(upload.content_type)

    if not mime_accepted(mime, accepted):
        incr("intake_rejected_total", reason="invalid_input_type")
        logger.info("intake_rejected filename=%s mime=%s accepted=%s", filename, mime or "none", list(accepted))
        return OperationResult.failure(
            ERROR_INVALID_INPUT_TYPE,
            f"Unsupported file type {mime or 'unknown'}; expected {', '.join(accepted)}",
            filename=filename,
        )

    read = await read_upload(upload, on_progress)
    if not read.ok:
        incr("intake_rejected_total", reason=read.error_kind.lower())
        return read

    data = read.value
    incr("intake_accepted_total", mime=mime)
    return OperationResult.success(
        IntakedFile(filename=filename, mime=mime, size_bytes=len(data), payload=encode_payload(data, mime))
    )


async def intake_files(
    uploads: Sequence[UploadFile],
    accepted: Sequence[str],
    on_progress: Optional[ProgressCallback] = None,
) -> OperationResult:
    """Multi-file intake: keep the usable subset in input order, report the rest."""
    outcome = MultiIntake()
    valid = []
    for upload in uploads:
        mime = _norm_mime(upload.content_type)
        if mime_accepted(mime, accepted):
            valid.append(upload)
        else:
            outcome.rejected.append(
                {"filename": str(upload.filename or "").strip() or "upload", "mime": mime, "reason": ERROR_INVALID_INPUT_TYPE}
            )

    if outcome.rejected:
        incr("intake_rejected_total", amount=len(outcome.rejected), reason="invalid_input_type")

    if not valid:
        return OperationResult.failure(
            ERROR_INVALID_INPUT_TYPE,
            f"No supported files; expected {', '.join(accepted)}",
            rejected=outcome.rejected,
        )

    count = len(valid)
    last_failure = None
    for index, upload in enumerate(valid):

        def _scaled(pct: float, _index: int = index) -> None:
            if on_progress:
                on_progress((_index + pct / 100.0) * 100.0 / count)

        result = await intake_file(upload, accepted, _scaled)
        if not result.ok:
            last_failure = result
            outcome.rejected.append(
                {
                    "filename": str(upload.filename or "").strip() or "upload",
                    "mime": _norm_mime(upload.content_type),
                    "reason": result.error_kind,
                }
            )
            continue
        outcome.files.append(result.value)

    if not outcome.files:
        return OperationResult.failure(last_failure.error_kind, last_failure.message, rejected=outcome.rejected)
    return OperationResult.success(outcome)
