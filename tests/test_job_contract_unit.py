# User value: This test protects users from job contract drift between the API and the browser.
import unittest

from pydantic import ValidationError

from schemas.job_contract import CANONICAL_FIELDS, ERROR_HTTP_STATUS, ERROR_KINDS
from schemas.requests import OperationRequest, ShoppingItem, UrlJobRequest, VoiceSampleRequest
from schemas.responses import JobResponse
from services.jobs import Job


class TestJobContract(unittest.TestCase):
    # User value: every job snapshot carries exactly the agreed fields.
    def test_snapshot_has_canonical_fields(self):
        snapshot = Job(job_id="j1", instance_id="i1", kind="SUMMARIZE").snapshot()
        self.assertEqual(set(snapshot), set(CANONICAL_FIELDS))
        self.assertEqual(JobResponse(**snapshot).status, "IDLE")

    # User value: every error kind maps to an HTTP status so failures are never a generic 500.
    def test_every_error_kind_has_http_status(self):
        self.assertEqual(set(ERROR_KINDS), set(ERROR_HTTP_STATUS))

    def test_url_request_rejects_unknown_kind(self):
        with self.assertRaises(ValidationError):
            UrlJobRequest(kind="CHAT", url="https://example.com/a.pdf")

    def test_url_request_rejects_empty_url(self):
        with self.assertRaises(ValidationError):
            UrlJobRequest(kind="SUMMARIZE", url="")

    def test_response_rejects_unknown_status(self):
        snapshot = Job(job_id="j1", instance_id="i1", kind="SUMMARIZE").snapshot()
        with self.assertRaises(ValidationError):
            JobResponse(**{**snapshot, "status": "QUEUED"})

    def test_response_rejects_progress_over_100(self):
        snapshot = Job(job_id="j1", instance_id="i1", kind="SUMMARIZE").snapshot()
        with self.assertRaises(ValidationError):
            JobResponse(**{**snapshot, "progress": 120})

    def test_operation_request_defaults(self):
        body = OperationRequest()
        self.assertIsNone(body.payload)
        self.assertEqual(body.payloads, [])
        self.assertEqual(body.items, [])

    def test_shopping_item_requires_description(self):
        with self.assertRaises(ValidationError):
            ShoppingItem(item_id="item-1", description="")

    def test_voice_sample_requires_voice(self):
        with self.assertRaises(ValidationError):
            VoiceSampleRequest(voice_id="")


if __name__ == "__main__":
    unittest.main()
