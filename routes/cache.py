# User value: This endpoint shows or forgets the remembered last document so users control what is kept.
from fastapi import APIRouter, Depends, HTTPException

from schemas.responses import CachedDocumentInfo
from services.document_cache import DocumentCache, get_document_cache
from services.feature_flags import is_document_cache_enabled
from services.presenter import format_file_size
from utils.stage_logging import log_stage

router = APIRouter(prefix="/cache", tags=["cache"])


def _require_enabled() -> None:
    if not is_document_cache_enabled():
        raise HTTPException(
            status_code=404,
            detail={"error_code": "FEATURE_DISABLED", "error_message": "Document cache is disabled"},
        )


@router.get("/last-document", response_model=CachedDocumentInfo)
def get_last_document(cache: DocumentCache = Depends(get_document_cache)):
    _require_enabled()
    cached = cache.load()
    if cached is None:
        raise HTTPException(
            status_code=404,
            detail={"error_code": "CACHE_EMPTY", "error_message": "No document has been uploaded yet"},
        )
    return {**cached.summary(), "size_label": format_file_size(cached.size_bytes)}


@router.delete("/last-document")
# User value: lets users remove their remembered document at any time.
def clear_last_document(cache: DocumentCache = Depends(get_document_cache)):
    _require_enabled()
    cache.clear()
    log_stage(job_id="document-cache", stage="CACHE_CLEAR", event="COMPLETED", backend=cache.backend)
    return {"cleared": True}
