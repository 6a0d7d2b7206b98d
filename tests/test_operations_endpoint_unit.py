# User value: This test validates the stateless tool, voice, cache and health endpoints users and integrations call.
import json
import unittest
from unittest.mock import MagicMock, patch

import redis
from fastapi import HTTPException

from routes.cache import clear_last_document, get_last_document
from routes.contract import job_status_contract
from routes.health import health
from routes.operations import run_operation
from routes.voices import default_voice, list_voices, voice_sample
from schemas.requests import OperationRequest, VoiceSampleRequest
from services.document_cache import CachedDocument, MemoryDocumentCache, RedisDocumentCache
from services.gateway import OperationGateway
from tests.doc_fixtures import FakeModel, pdf_payload


def _body(response):
    return json.loads(response.body)


class OperationsEndpointUnitTests(unittest.TestCase):
    def setUp(self):
        self.model = FakeModel(text="A short summary.")
        self.gateway = OperationGateway(model=self.model)

    def test_summarize_success(self):
        response = run_operation("summarize", OperationRequest(payload=pdf_payload(["Hello world"])), self.gateway)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(_body(response), {"ok": True, "value": {"summary_text": "A short summary.", "page_count": 1}})

    # User value: tool failures come back as a result object with a matching status, never a stack trace.
    def test_failure_is_result_object(self):
        response = run_operation("summarize", OperationRequest(payload=pdf_payload([""])), self.gateway)
        self.assertEqual(response.status_code, 422)
        self.assertEqual(_body(response)["error_kind"], "EXTRACTION_FAILURE")
        self.assertFalse(_body(response)["ok"])

    def test_shopping_accepts_plain_and_structured_items(self):
        self.model.json_responses = [{"suggestions": []}]
        body = OperationRequest(items=["blue jeans", {"item_id": "hat-1", "description": "straw hat"}])
        response = run_operation("shopping_suggestions", body, self.gateway)
        self.assertEqual([s["item_id"] for s in _body(response)["value"]], ["item-1", "hat-1"])

    def test_missing_payload_is_422(self):
        with self.assertRaises(HTTPException) as ctx:
            run_operation("convert_to_images", OperationRequest(), self.gateway)
        self.assertEqual(ctx.exception.status_code, 422)

    def test_unknown_operation_is_404(self):
        with self.assertRaises(HTTPException) as ctx:
            run_operation("chat", OperationRequest(), self.gateway)
        self.assertEqual(ctx.exception.status_code, 404)


class VoicesEndpointUnitTests(unittest.TestCase):
    def test_catalog_lists_six_voices_with_default(self):
        voices = list_voices()
        self.assertEqual(len(voices), 6)
        self.assertIn(default_voice()["voice_id"], [v["id"] for v in voices])
        self.assertNotIn("model_voice", voices[0])

    def test_sample_returns_audio(self):
        gateway = OperationGateway(model=FakeModel())
        with patch("routes.voices.is_voice_samples_enabled", return_value=True):
            out = voice_sample(VoiceSampleRequest(voice_id="leda", name="Leda"), gateway)
        self.assertTrue(out["audio"].startswith("data:audio/wav;base64,"))

    def test_sample_unknown_voice_is_422(self):
        gateway = OperationGateway(model=FakeModel())
        with patch("routes.voices.is_voice_samples_enabled", return_value=True):
            with self.assertRaises(HTTPException) as ctx:
                voice_sample(VoiceSampleRequest(voice_id="robot"), gateway)
        self.assertEqual(ctx.exception.status_code, 422)

    def test_sample_disabled_is_404(self):
        with patch("routes.voices.is_voice_samples_enabled", return_value=False):
            with self.assertRaises(HTTPException) as ctx:
                voice_sample(VoiceSampleRequest(voice_id="kore"), OperationGateway(model=FakeModel()))
        self.assertEqual(ctx.exception.status_code, 404)


class CacheAndHealthEndpointUnitTests(unittest.TestCase):
    def setUp(self):
        flag = patch("routes.cache.is_document_cache_enabled", return_value=True)
        flag.start()
        self.addCleanup(flag.stop)

    def test_last_document_summary(self):
        cache = MemoryDocumentCache()
        cache.save(CachedDocument(filename="a.pdf", mime="application/pdf", size_bytes=2048, payload="data:,"))
        out = get_last_document(cache)
        self.assertEqual(out["filename"], "a.pdf")
        self.assertEqual(out["size_label"], "2 KB")

    def test_empty_cache_is_404_and_clear_is_idempotent(self):
        cache = MemoryDocumentCache()
        with self.assertRaises(HTTPException) as ctx:
            get_last_document(cache)
        self.assertEqual(ctx.exception.detail["error_code"], "CACHE_EMPTY")
        self.assertEqual(clear_last_document(cache), {"cleared": True})
        self.assertEqual(clear_last_document(cache), {"cleared": True})

    def test_health_ok_with_memory_cache(self):
        response = health(MemoryDocumentCache())
        self.assertEqual(response.status_code, 200)
        self.assertEqual(_body(response)["status"], "OK")

    def test_health_degraded_when_redis_down(self):
        client = MagicMock()
        client.ping.side_effect = redis.ConnectionError("down")
        response = health(RedisDocumentCache(client))
        self.assertEqual(response.status_code, 503)
        self.assertEqual(_body(response)["document_cache_status"], "unreachable")

    def test_contract_lists_kinds_and_budgets(self):
        contract = job_status_contract()
        self.assertIn("CONVERT_FROM_IMAGES", contract["job_kinds"])
        self.assertEqual(contract["text_budgets"], {"narration": 10000, "translation": 15000})
        self.assertEqual(contract["error_http_status"]["INVALID_INPUT_TYPE"], 415)
        self.assertIn("url_input_enabled", contract["capabilities"])


if __name__ == "__main__":
    unittest.main()
