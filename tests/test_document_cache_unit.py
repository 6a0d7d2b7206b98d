# User value: This test makes sure the last uploaded PDF is remembered, replaced and forgotten correctly.
import unittest
from unittest.mock import MagicMock

import redis

from services.document_cache import (
    REDIS_CACHE_KEY,
    CachedDocument,
    MemoryDocumentCache,
    RedisDocumentCache,
    build_document_cache,
)


def _doc(name="report.pdf"):
    return CachedDocument(filename=name, mime="application/pdf", size_bytes=1234, payload="data:application/pdf;base64,AA==")


class MemoryDocumentCacheTests(unittest.TestCase):
    def test_empty_cache_loads_none(self):
        self.assertIsNone(MemoryDocumentCache().load())

    # User value: uploading a second PDF replaces the first one.
    def test_last_write_wins(self):
        cache = MemoryDocumentCache()
        cache.save(_doc("first.pdf"))
        stored = cache.save(_doc("second.pdf"))
        self.assertEqual(cache.load().filename, "second.pdf")
        self.assertTrue(stored.saved_at)

    def test_clear(self):
        cache = MemoryDocumentCache()
        cache.save(_doc())
        cache.clear()
        self.assertIsNone(cache.load())

    def test_summary_omits_payload(self):
        summary = MemoryDocumentCache().save(_doc()).summary()
        self.assertNotIn("payload", summary)
        self.assertEqual(summary["size_bytes"], 1234)

    def test_build_defaults_to_memory(self):
        self.assertEqual(build_document_cache("memory").backend, "memory")


class RedisDocumentCacheTests(unittest.TestCase):
    def test_save_replaces_hash_atomically(self):
        client = MagicMock()
        pipe = client.pipeline.return_value
        RedisDocumentCache(client).save(_doc())
        pipe.delete.assert_called_once_with(REDIS_CACHE_KEY)
        mapping = pipe.hset.call_args.kwargs["mapping"]
        self.assertEqual(mapping["filename"], "report.pdf")
        self.assertEqual(mapping["size_bytes"], "1234")
        pipe.execute.assert_called_once()

    def test_load_round_trips_fields(self):
        client = MagicMock()
        client.hgetall.return_value = {
            "filename": "report.pdf",
            "mime": "application/pdf",
            "size_bytes": "1234",
            "payload": "data:application/pdf;base64,AA==",
            "saved_at": "2026-10-17T00:00:00+00:00",
        }
        loaded = RedisDocumentCache(client).load()
        self.assertEqual(loaded.size_bytes, 1234)
        self.assertEqual(loaded.payload, "data:application/pdf;base64,AA==")

    def test_load_missing_returns_none(self):
        client = MagicMock()
        client.hgetall.return_value = {}
        self.assertIsNone(RedisDocumentCache(client).load())

    def test_ping_failure_is_reported_not_raised(self):
        client = MagicMock()
        client.ping.side_effect = redis.ConnectionError("down")
        with self.assertLogs("api.cache", level="WARNING"):
            self.assertFalse(RedisDocumentCache(client).ping())


if __name__ == "__main__":
    unittest.main()
