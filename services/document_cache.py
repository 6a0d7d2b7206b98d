# User value: This file remembers the last uploaded PDF so users can come back to it without uploading again.
import logging
import threading
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Optional

import redis

from config import DOCUMENT_CACHE_BACKEND

logger = logging.getLogger("api.cache")

CACHE_SLOT = "last_uploaded_document"
REDIS_CACHE_KEY = f"doc_cache:{CACHE_SLOT}"


@dataclass(frozen=True)
class CachedDocument:
    filename: str
    mime: str
    size_bytes: int
    payload: str
    saved_at: str = ""

    def summary(self) -> dict:
        return {
            "filename": self.filename,
            "mime": self.mime,
            "size_bytes": self.size_bytes,
            "saved_at": self.saved_at,
        }


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class DocumentCache:
    """One named slot, last write wins, never evicted."""

    backend = "none"

    def save(self, document: CachedDocument) -> CachedDocument:
        raise NotImplementedError

    def load(self) -> Optional[CachedDocument]:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError

    def ping(self) -> bool:
        return True


class MemoryDocumentCache(DocumentCache):
    backend = "memory"

    def __init__(self):
        self._lock = threading.Lock()
        self._document: Optional[CachedDocument] = None

    def save(self, document: CachedDocument) -> CachedDocument:
        stored = CachedDocument(**{**asdict(document), "saved_at": document.saved_at or _utc_now_iso()})
        with self._lock:
            self._document = stored
        return stored

    def load(self) -> Optional[CachedDocument]:
        with self._lock:
            return self._document

    def clear(self) -> None:
        with self._lock:
            self._document = None


class RedisDocumentCache(DocumentCache):
    backend = "redis"

    def __init__(self, client):
        self.client = client

    def save(self, document: CachedDocument) -> CachedDocument:
        stored = CachedDocument(**{**asdict(document), "saved_at": document.saved_at or _utc_now_iso()})
        mapping = {k: str(v) for k, v in asdict(stored).items()}
        pipe = self.client.pipeline()
        pipe.delete(REDIS_CACHE_KEY)
        pipe.hset(REDIS_CACHE_KEY, mapping=mapping)
        pipe.execute()
        return stored

    def load(self) -> Optional[CachedDocument]:
        data = self.client.hgetall(REDIS_CACHE_KEY)
        if not data or not data.get("payload"):
            return None
        try:
            size = int(data.get("size_bytes") or 0)
        except ValueError:
            size = 0
        return CachedDocument(
            filename=data.get("filename") or "document.pdf",
            mime=data.get("mime") or "application/pdf",
            size_bytes=size,
            payload=data["payload"],
            saved_at=data.get("saved_at") or "",
        )

    def clear(self) -> None:
        self.client.delete(REDIS_CACHE_KEY)

    def ping(self) -> bool:
        try:
            return bool(self.client.ping())
        except redis.RedisError as e:
            logger.warning("document_cache_ping_failed backend=redis error=%s", e)
            return False


def build_document_cache(backend: str = DOCUMENT_CACHE_BACKEND) -> DocumentCache:
    if backend == "redis":
        from services.redis_client import get_redis_client

        return RedisDocumentCache(get_redis_client())
    return MemoryDocumentCache()


_cache: Optional[DocumentCache] = None
_cache_lock = threading.Lock()


def get_document_cache() -> DocumentCache:
    global _cache
    with _cache_lock:
        if _cache is None:
            _cache = build_document_cache()
            logger.info("document_cache_ready backend=%s", _cache.backend)
        return _cache
