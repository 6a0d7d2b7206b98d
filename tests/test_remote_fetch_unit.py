# User value: This test makes sure linked PDFs are fetched safely and bad links explain themselves.
import unittest
from unittest.mock import MagicMock, patch

import requests

from schemas.job_contract import ERROR_FETCH_FAILURE, ERROR_INVALID_REMOTE_CONTENT_TYPE
from services.remote_fetch import fetch_document


def _response(status=200, content_type="application/pdf", chunks=(b"%PDF-1.7 ", b"body"), reason="OK"):
    response = MagicMock()
    response.ok = 200 <= status < 300
    response.status_code = status
    response.reason = reason
    response.headers = {"Content-Type": content_type}
    response.iter_content.return_value = iter(chunks)
    response.__enter__.return_value = response
    response.__exit__.return_value = False
    return response


class RemoteFetchUnitTests(unittest.TestCase):
    def test_pdf_is_returned(self):
        with patch("services.remote_fetch.requests.get", return_value=_response()) as get:
            result = fetch_document("https://example.com/a.pdf", "application/pdf")
        self.assertTrue(result.ok)
        self.assertEqual(result.value, ("application/pdf", b"%PDF-1.7 body"))
        self.assertTrue(get.call_args.kwargs["stream"])

    def test_content_type_with_charset_is_accepted(self):
        with patch("services.remote_fetch.requests.get", return_value=_response(content_type="application/pdf; charset=binary")):
            self.assertTrue(fetch_document("https://example.com/a.pdf", "application/pdf").ok)

    # User value: a link to a web page is reported as the wrong kind of file, not as a broken PDF.
    def test_wrong_content_type(self):
        with patch("services.remote_fetch.requests.get", return_value=_response(content_type="text/html")):
            result = fetch_document("https://example.com/page", "application/pdf")
        self.assertEqual(result.error_kind, ERROR_INVALID_REMOTE_CONTENT_TYPE)
        self.assertEqual(result.details["content_type"], "text/html")

    def test_http_error_status(self):
        with patch("services.remote_fetch.requests.get", return_value=_response(status=404, reason="Not Found")):
            result = fetch_document("https://example.com/missing.pdf", "application/pdf")
        self.assertEqual(result.error_kind, ERROR_FETCH_FAILURE)
        self.assertIn("404", result.message)

    def test_transport_error(self):
        with patch("services.remote_fetch.requests.get", side_effect=requests.ConnectionError("refused")):
            result = fetch_document("https://example.com/a.pdf", "application/pdf")
        self.assertEqual(result.error_kind, ERROR_FETCH_FAILURE)

    def test_oversized_document(self):
        with patch("services.remote_fetch.MAX_REMOTE_DOCUMENT_BYTES", 8):
            with patch("services.remote_fetch.requests.get", return_value=_response()):
                result = fetch_document("https://example.com/a.pdf", "application/pdf")
        self.assertEqual(result.error_kind, ERROR_FETCH_FAILURE)


if __name__ == "__main__":
    unittest.main()
