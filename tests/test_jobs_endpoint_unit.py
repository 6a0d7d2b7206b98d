# User value: This test validates job endpoint behavior so the browser gets the right status codes and files.
import asyncio
import unittest
from unittest.mock import patch

from fastapi import BackgroundTasks, HTTPException

from routes.jobs import (
    create_file_job,
    create_url_job,
    download_job_artifact,
    get_job,
    reset_job,
    restore_job,
    retry_job,
    run_job,
)
from schemas.requests import RestoreJobRequest, RunJobRequest, UrlJobRequest
from services.document_cache import MemoryDocumentCache
from services.jobs import JobService
from services.results import OperationResult
from tests.doc_fixtures import FakeGateway, make_pdf, make_upload


class JobsEndpointUnitTests(unittest.TestCase):
    def setUp(self):
        self.gateway = FakeGateway()
        self.service = JobService(gateway=self.gateway, cache=MemoryDocumentCache())
        url_flag = patch("routes.jobs.is_url_input_enabled", return_value=True)
        url_flag.start()
        self.addCleanup(url_flag.stop)

    def _create(self, kind="summarize", filename="report.pdf", content_type="application/pdf", data=None):
        upload = make_upload(data if data is not None else make_pdf(["Hello"]), filename, content_type)
        return asyncio.run(
            create_file_job(kind=kind, instance_id="tool-1", file=upload, files=None, service=self.service)
        )

    def _run(self, job_id, payload=None):
        tasks = BackgroundTasks()
        out = run_job(job_id=job_id, background_tasks=tasks, payload=payload, service=self.service)
        self.assertEqual(out["status"], "RUNNING")
        for task in tasks.tasks:
            task.func(*task.args, **task.kwargs)
        return self.service.get(job_id)

    def test_upload_creates_ready_job(self):
        out = self._create()
        self.assertEqual(out["kind"], "SUMMARIZE")
        self.assertEqual(out["status"], "READY_TO_RUN")
        self.assertEqual(get_job(job_id=out["job_id"], service=self.service)["job_id"], out["job_id"])

    # User value: a wrong file type is answered with 415 and the failed job so the UI can explain it.
    def test_wrong_type_is_415(self):
        with self.assertRaises(HTTPException) as ctx:
            self._create(filename="notes.txt", content_type="text/plain", data=b"hi")
        self.assertEqual(ctx.exception.status_code, 415)
        self.assertEqual(ctx.exception.detail["error_code"], "INVALID_INPUT_TYPE")
        self.assertEqual(ctx.exception.detail["job"]["status"], "FAILED")

    def test_unknown_kind_is_400(self):
        with self.assertRaises(HTTPException) as ctx:
            self._create(kind="chat")
        self.assertEqual(ctx.exception.status_code, 400)

    def test_missing_file_is_400(self):
        with self.assertRaises(HTTPException) as ctx:
            asyncio.run(create_file_job(kind="summarize", instance_id=None, file=None, files=None, service=self.service))
        self.assertEqual(ctx.exception.status_code, 400)

    def test_run_completes_in_background(self):
        job_id = self._create()["job_id"]
        snap = self._run(job_id)
        self.assertEqual(snap["status"], "SUCCEEDED")

    def test_run_twice_is_409(self):
        job_id = self._create()["job_id"]
        run_job(job_id=job_id, background_tasks=BackgroundTasks(), payload=None, service=self.service)
        with self.assertRaises(HTTPException) as ctx:
            run_job(job_id=job_id, background_tasks=BackgroundTasks(), payload=None, service=self.service)
        self.assertEqual(ctx.exception.status_code, 409)
        self.assertEqual(ctx.exception.detail["error_code"], "STATE_CONFLICT")

    def test_run_missing_language_is_422(self):
        job_id = self._create(kind="translate")["job_id"]
        with self.assertRaises(HTTPException) as ctx:
            run_job(job_id=job_id, background_tasks=BackgroundTasks(), payload=RunJobRequest(), service=self.service)
        self.assertEqual(ctx.exception.status_code, 422)
        self.assertEqual(ctx.exception.detail["missing"], ["target_language"])
        self.assertEqual(self.service.get(job_id)["status"], "READY_TO_RUN")

    def test_unknown_job_is_404(self):
        for call in (
            lambda: get_job(job_id="nope", service=self.service),
            lambda: reset_job(job_id="nope", forget_cached=False, service=self.service),
            lambda: retry_job(job_id="nope", service=self.service),
        ):
            with self.assertRaises(HTTPException) as ctx:
                call()
            self.assertEqual(ctx.exception.status_code, 404)

    def test_reset_then_retry_conflicts(self):
        job_id = self._create()["job_id"]
        self.assertEqual(reset_job(job_id=job_id, forget_cached=False, service=self.service)["status"], "IDLE")
        with self.assertRaises(HTTPException) as ctx:
            retry_job(job_id=job_id, service=self.service)
        self.assertEqual(ctx.exception.status_code, 409)

    # User value: the translated PDF downloads as a file with a safe, recognizable name.
    def test_download_translated_document(self):
        self.gateway.result = OperationResult.success(
            {"translated_document": "data:application/pdf;base64,JVBERg==", "translated_text": "Hola", "page_count": 1}
        )
        job_id = self._create(kind="translate", filename="mi informe.pdf")["job_id"]
        self._run(job_id, RunJobRequest(target_language="Spanish"))
        response = download_job_artifact(job_id=job_id, index=0, service=self.service)
        self.assertEqual(response.body, b"%PDF")
        self.assertEqual(response.media_type, "application/pdf")
        self.assertEqual(
            response.headers["content-disposition"], "attachment; filename*=UTF-8''translated-mi%20informe.pdf"
        )

    def test_download_before_success_is_409(self):
        job_id = self._create(kind="translate")["job_id"]
        with self.assertRaises(HTTPException) as ctx:
            download_job_artifact(job_id=job_id, index=0, service=self.service)
        self.assertEqual(ctx.exception.status_code, 409)

    def test_download_missing_index_is_404(self):
        job_id = self._create()["job_id"]
        self._run(job_id)
        with self.assertRaises(HTTPException) as ctx:
            download_job_artifact(job_id=job_id, index=0, service=self.service)
        self.assertEqual(ctx.exception.status_code, 404)

    def test_url_job(self):
        out = create_url_job(
            payload=UrlJobRequest(kind="SUMMARIZE", url=" https://example.com/a.pdf ", instance_id="tool-1"),
            service=self.service,
        )
        self.assertEqual(out["input_source"], "url")

    def test_url_job_disabled_is_404(self):
        with patch("routes.jobs.is_url_input_enabled", return_value=False):
            with self.assertRaises(HTTPException) as ctx:
                create_url_job(payload=UrlJobRequest(kind="SUMMARIZE", url="https://example.com/a.pdf"), service=self.service)
        self.assertEqual(ctx.exception.detail["error_code"], "FEATURE_DISABLED")

    def test_url_job_for_images_is_422(self):
        with self.assertRaises(HTTPException) as ctx:
            create_url_job(payload=UrlJobRequest(kind="DETECT_OUTFIT", url="https://example.com/a.png"), service=self.service)
        self.assertEqual(ctx.exception.status_code, 422)

    def test_restore_empty_cache_is_404(self):
        with patch("routes.jobs.is_document_cache_enabled", return_value=True):
            with self.assertRaises(HTTPException) as ctx:
                restore_job(payload=RestoreJobRequest(kind="SUMMARIZE"), service=self.service)
        self.assertEqual(ctx.exception.detail["error_code"], "CACHE_EMPTY")

    def test_restore_after_upload(self):
        with patch("services.jobs.is_document_cache_enabled", return_value=True):
            self._create(filename="kept.pdf")
        with patch("routes.jobs.is_document_cache_enabled", return_value=True):
            out = restore_job(payload=RestoreJobRequest(kind="NARRATE", instance_id="narrate-1"), service=self.service)
        self.assertEqual(out["input_filenames"], ["kept.pdf"])
        self.assertEqual(out["status"], "READY_TO_RUN")


if __name__ == "__main__":
    unittest.main()
