from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from services.document_cache import DocumentCache, get_document_cache
from utils.metrics import snapshot

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
def health(cache: DocumentCache = Depends(get_document_cache)):
    reachable = cache.ping()
    body = {
        "status": "OK" if reachable else "DEGRADED",
        "document_cache": cache.backend,
        "document_cache_status": "connected" if reachable else "unreachable",
    }
    return JSONResponse(status_code=200 if reachable else 503, content=body)


@router.get("/metrics")
def metrics():
    return snapshot()
