# User value: This file keeps one predictable job per tool instance so users always know what is happening to their file.
import logging
import os
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Sequence
from urllib.parse import unquote, urlsplit

import redis
from fastapi import UploadFile

from schemas.job_contract import (
    ACCEPTED_MIME_TYPES,
    CONTRACT_VERSION,
    ERROR_INVALID_INPUT_TYPE,
    ERROR_MODEL_FAILURE,
    ERROR_VALIDATION_FAILURE,
    JOB_KIND_NARRATE,
    JOB_KINDS,
    JOB_STATUS_FAILED,
    JOB_STATUS_IDLE,
    JOB_STATUS_READY_TO_RUN,
    JOB_STATUS_RUNNING,
    JOB_STATUS_SUCCEEDED,
    MULTI_FILE_KINDS,
    PDF_MIME,
    REQUIRED_RUN_PARAMS,
    URL_INPUT_KINDS,
)
from services.document_cache import CachedDocument, DocumentCache, get_document_cache
from services.feature_flags import is_document_cache_enabled
from services.file_intake import intake_file, intake_files, mime_accepted
from services.gateway import OperationGateway, get_gateway
from services.payload_codec import is_valid_remote_url, make_url_reference
from services.presenter import downloadable, present
from services.results import OperationResult
from services.voices import is_known_voice
from utils.metrics import incr
from utils.request_id import bound_request_id, get_request_id
from utils.stage_logging import log_stage
from utils.status_machine import (
    EVENT_BEGIN_READ,
    EVENT_FAIL,
    EVENT_INPUT_REFERENCED,
    EVENT_READ_COMPLETE,
    EVENT_RESET,
    EVENT_RETRY,
    EVENT_RUN,
    EVENT_SUCCEED,
    TransitionError,
    apply_event,
)

logger = logging.getLogger("api.jobs")

INPUT_SOURCE_UPLOAD = "upload"
INPUT_SOURCE_URL = "url"
INPUT_SOURCE_CACHE = "cache"


class JobNotFound(LookupError):
    pass


class JobConflict(RuntimeError):
    pass


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Job:
    job_id: str
    instance_id: str
    kind: str
    status: str = JOB_STATUS_IDLE
    inputs: list[str] = field(default_factory=list)
    input_filenames: list[str] = field(default_factory=list)
    input_size_bytes: int = 0
    input_source: Optional[str] = None
    progress: float = 0.0
    params: dict = field(default_factory=dict)
    result: Optional[dict] = None
    error: Optional[dict] = None
    run_token: Optional[str] = None
    notices: list[str] = field(default_factory=list)
    request_id: Optional[str] = None
    created_at: str = field(default_factory=_utc_now_iso)
    updated_at: str = field(default_factory=_utc_now_iso)

    def snapshot(self) -> dict:
        return {
            "contract_version": CONTRACT_VERSION,
            "request_id": self.request_id,
            "job_id": self.job_id,
            "instance_id": self.instance_id,
            "kind": self.kind,
            "status": self.status,
            "progress": round(self.progress, 2),
            "input_filenames": list(self.input_filenames),
            "input_size_bytes": self.input_size_bytes,
            "input_source": self.input_source,
            "notices": list(self.notices),
            "params": dict(self.params),
            "result": self.result if self.status == JOB_STATUS_SUCCEEDED else None,
            "presentation": present(self.kind, self.result, self.input_filenames)
            if self.status == JOB_STATUS_SUCCEEDED
            else None,
            "error": self.error if self.status == JOB_STATUS_FAILED else None,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


def _filename_from_url(url: str) -> str:
    name = os.path.basename(unquote(urlsplit(url).path or ""))
    return name or "document.pdf"


class JobService:
    """In-process registry of jobs, one current job per feature instance."""

    def __init__(self, gateway: Optional[OperationGateway] = None, cache: Optional[DocumentCache] = None):
        self._gateway = gateway
        self._cache = cache
        self._lock = threading.Lock()
        self._jobs: dict[str, Job] = {}
        self._by_instance: dict[str, str] = {}

    @property
    def gateway(self) -> OperationGateway:
        if self._gateway is None:
            self._gateway = get_gateway()
        return self._gateway

    @property
    def cache(self) -> DocumentCache:
        if self._cache is None:
            self._cache = get_document_cache()
        return self._cache

    # ---------------------------------------------------------
    # INTERNALS
    # ---------------------------------------------------------
    def _transition(self, job: Job, event: str, *, context: str) -> None:
        previous = job.status
        job.status = apply_event(job.status, event, context=context, job_id=job.job_id)
        job.updated_at = _utc_now_iso()
        incr("job_transitions_total", kind=job.kind, event=event, to_status=job.status)
        log_stage(
            job_id=job.job_id,
            stage=context,
            event=job.status,
            kind=job.kind,
            instance_id=job.instance_id,
            error_kind=(job.error or {}).get("error_kind") if job.status == JOB_STATUS_FAILED else None,
            from_status=previous,
        )

    def _fail(self, job: Job, result: OperationResult, *, context: str) -> None:
        job.error = result.error_payload()
        job.result = None
        job.run_token = None
        self._transition(job, EVENT_FAIL, context=context)

    def _new_job(self, instance_id: str, kind: str) -> Job:
        return Job(
            job_id=uuid.uuid4().hex,
            instance_id=str(instance_id or kind.lower()),
            kind=kind,
            request_id=get_request_id(),
        )

    def _rejected(self, instance_id: str, kind: str, result: OperationResult, notices: Sequence[str] = ()) -> dict:
        """A rejected intake ends FAILED immediately; the job is never registered."""
        job = self._new_job(instance_id, kind)
        job.notices = list(notices)
        self._fail(job, result, context="JOB_INTAKE")
        incr("job_intake_rejected_total", kind=kind, error_kind=result.error_kind)
        return job.snapshot()

    def _register(self, job: Job) -> None:
        with self._lock:
            previous_id = self._by_instance.get(job.instance_id)
            previous = self._jobs.pop(previous_id, None) if previous_id else None
            self._jobs[job.job_id] = job
            self._by_instance[job.instance_id] = job.job_id
        if previous is not None:
            previous.inputs = []
            incr("job_superseded_total", kind=previous.kind)
            log_stage(
                job_id=previous.job_id,
                stage="JOB_SUPERSEDE",
                event="COMPLETED",
                kind=previous.kind,
                instance_id=previous.instance_id,
                superseded_by=job.job_id,
            )

    def _is_current(self, job: Job) -> bool:
        return self._jobs.get(job.job_id) is job

    def _require(self, job_id: str) -> Job:
        job = self._jobs.get(job_id)
        if job is None:
            raise JobNotFound(f"Job {job_id} not found")
        return job

    @staticmethod
    def _check_kind(kind: str) -> None:
        if kind not in JOB_KINDS:
            raise ValueError(f"Unknown job kind: {kind}")

    def _remember(self, job: Job) -> None:
        if not is_document_cache_enabled() or job.input_source != INPUT_SOURCE_UPLOAD or len(job.inputs) != 1:
            return
        if PDF_MIME not in ACCEPTED_MIME_TYPES.get(job.kind, ()):
            return
        try:
            self.cache.save(
                CachedDocument(
                    filename=job.input_filenames[0],
                    mime=PDF_MIME,
                    size_bytes=job.input_size_bytes,
                    payload=job.inputs[0],
                )
            )
        except redis.RedisError as e:
            logger.warning("document_cache_save_failed job_id=%s error=%s", job.job_id, e)
            return
        logger.info("document_cached job_id=%s filename=%s", job.job_id, job.input_filenames[0])

    def _on_progress(self, job: Job):
        def _update(pct: float) -> None:
            with self._lock:
                if self._is_current(job) and pct >= job.progress:
                    job.progress = min(100.0, float(pct))
                    job.updated_at = _utc_now_iso()

        return _update

    # ---------------------------------------------------------
    # INTAKE
    # ---------------------------------------------------------
    async def start_file_intake(self, instance_id: str, kind: str, upload: UploadFile) -> dict:
        self._check_kind(kind)
        accepted = ACCEPTED_MIME_TYPES[kind]
        if not mime_accepted(upload.content_type, accepted):
            return self._rejected(
                instance_id,
                kind,
                OperationResult.failure(
                    ERROR_INVALID_INPUT_TYPE,
                    f"Unsupported file type {upload.content_type or 'unknown'}; expected {', '.join(accepted)}",
                ),
            )

        job = self._new_job(instance_id, kind)
        job.input_source = INPUT_SOURCE_UPLOAD
        job.input_filenames = [str(upload.filename or "upload")]
        self._transition(job, EVENT_BEGIN_READ, context="JOB_INTAKE")
        self._register(job)

        read = await intake_file(upload, accepted, self._on_progress(job))
        with self._lock:
            if not self._is_current(job):
                logger.info("intake_discarded_superseded job_id=%s", job.job_id)
                return job.snapshot()
            if not read.ok:
                self._fail(job, read, context="JOB_INTAKE")
                return job.snapshot()
            intaked = read.value
            job.inputs = [intaked.payload]
            job.input_filenames = [intaked.filename]
            job.input_size_bytes = intaked.size_bytes
            job.progress = 100.0
            self._transition(job, EVENT_READ_COMPLETE, context="JOB_INTAKE")
            snapshot = job.snapshot()
        self._remember(job)
        return snapshot

    async def start_multi_file_intake(self, instance_id: str, kind: str, uploads: Sequence[UploadFile]) -> dict:
        self._check_kind(kind)
        if kind not in MULTI_FILE_KINDS:
            raise ValueError(f"Job kind {kind} takes a single file")
        accepted = ACCEPTED_MIME_TYPES[kind]
        if not any(mime_accepted(u.content_type, accepted) for u in uploads):
            names = [str(u.filename or "upload") for u in uploads]
            notices = [f"{len(names)} file(s) were skipped: {', '.join(f'{n} (not supported)' for n in names)}"] if names else []
            return self._rejected(
                instance_id,
                kind,
                OperationResult.failure(ERROR_INVALID_INPUT_TYPE, f"No supported files; expected {', '.join(accepted)}"),
                notices,
            )

        job = self._new_job(instance_id, kind)
        job.input_source = INPUT_SOURCE_UPLOAD
        job.input_filenames = [str(u.filename or "upload") for u in uploads if mime_accepted(u.content_type, accepted)]
        self._transition(job, EVENT_BEGIN_READ, context="JOB_INTAKE")
        self._register(job)

        read = await intake_files(uploads, accepted, self._on_progress(job))
        with self._lock:
            if not self._is_current(job):
                logger.info("intake_discarded_superseded job_id=%s", job.job_id)
                return job.snapshot()
            if not read.ok:
                self._fail(job, read, context="JOB_INTAKE")
                return job.snapshot()
            outcome = read.value
            job.inputs = [f.payload for f in outcome.files]
            job.input_filenames = [f.filename for f in outcome.files]
            job.input_size_bytes = sum(f.size_bytes for f in outcome.files)
            job.notices = [outcome.notice] if outcome.notice else []
            job.progress = 100.0
            self._transition(job, EVENT_READ_COMPLETE, context="JOB_INTAKE")
            return job.snapshot()

    def start_url_job(self, instance_id: str, kind: str, url: str) -> dict:
        self._check_kind(kind)
        if kind not in URL_INPUT_KINDS:
            return self._rejected(
                instance_id,
                kind,
                OperationResult.failure(ERROR_VALIDATION_FAILURE, f"Job kind {kind} does not accept links"),
            )
        if not is_valid_remote_url(url):
            return self._rejected(
                instance_id,
                kind,
                OperationResult.failure(ERROR_VALIDATION_FAILURE, "Please enter a valid http(s) URL"),
            )

        job = self._new_job(instance_id, kind)
        job.input_source = INPUT_SOURCE_URL
        job.inputs = [make_url_reference(url)]
        job.input_filenames = [_filename_from_url(url)]
        self._transition(job, EVENT_INPUT_REFERENCED, context="JOB_INTAKE")
        self._register(job)
        return job.snapshot()

    def restore_cached_document(self, instance_id: str, kind: str) -> Optional[dict]:
        """Start a job from the cached last document; None when nothing is cached."""
        self._check_kind(kind)
        if PDF_MIME not in ACCEPTED_MIME_TYPES[kind]:
            return self._rejected(
                instance_id,
                kind,
                OperationResult.failure(ERROR_INVALID_INPUT_TYPE, f"Job kind {kind} does not accept PDF documents"),
            )
        cached = self.cache.load()
        if cached is None:
            return None

        job = self._new_job(instance_id, kind)
        job.input_source = INPUT_SOURCE_CACHE
        job.inputs = [cached.payload]
        job.input_filenames = [cached.filename]
        job.input_size_bytes = cached.size_bytes
        self._transition(job, EVENT_INPUT_REFERENCED, context="JOB_RESTORE")
        self._register(job)
        return job.snapshot()

    # ---------------------------------------------------------
    # QUERIES
    # ---------------------------------------------------------
    def get(self, job_id: str) -> dict:
        with self._lock:
            return self._require(job_id).snapshot()

    def get_for_instance(self, instance_id: str) -> Optional[dict]:
        with self._lock:
            job_id = self._by_instance.get(instance_id)
            job = self._jobs.get(job_id) if job_id else None
            return job.snapshot() if job else None

    def download(self, job_id: str, index: int = 0):
        with self._lock:
            job = self._require(job_id)
            if job.status != JOB_STATUS_SUCCEEDED:
                raise JobConflict(f"Downloads are available only for SUCCEEDED jobs (current={job.status})")
            return downloadable(job.kind, job.result, job.input_filenames, index)

    # ---------------------------------------------------------
    # RUN
    # ---------------------------------------------------------
    @staticmethod
    def _validate_params(kind: str, params: dict) -> Optional[OperationResult]:
        missing = [name for name in REQUIRED_RUN_PARAMS.get(kind, ()) if not str(params.get(name) or "").strip()]
        if missing:
            return OperationResult.failure(
                ERROR_VALIDATION_FAILURE,
                f"Missing required parameter(s): {', '.join(missing)}",
                missing=missing,
            )
        if kind == JOB_KIND_NARRATE and not is_known_voice(params.get("voice_id")):
            return OperationResult.failure(ERROR_VALIDATION_FAILURE, f"Unknown voice: {params.get('voice_id')}")
        return None

    def request_run(self, job_id: str, params: Optional[dict] = None) -> OperationResult:
        """Move a READY_TO_RUN job to RUNNING. Value is the run token for ``execute_run``."""
        params = {k: v for k, v in (params or {}).items() if v is not None}
        with self._lock:
            job = self._require(job_id)
            if job.status == JOB_STATUS_RUNNING:
                incr("job_run_rejected_total", reason="already_running")
                raise JobConflict("A run is already in progress for this job")
            if job.status != JOB_STATUS_READY_TO_RUN:
                incr("job_run_rejected_total", reason="invalid_status")
                raise JobConflict(f"Run allowed only for READY_TO_RUN jobs (current={job.status})")

            invalid = self._validate_params(job.kind, params)
            if invalid is not None:
                incr("job_run_rejected_total", reason="validation")
                log_stage(
                    job_id=job.job_id,
                    stage="JOB_RUN",
                    event="REJECTED",
                    kind=job.kind,
                    instance_id=job.instance_id,
                    error_kind=invalid.error_kind,
                )
                return invalid

            job.params = params
            job.run_token = uuid.uuid4().hex
            job.request_id = get_request_id() or job.request_id
            self._transition(job, EVENT_RUN, context="JOB_RUN")
            return OperationResult.success(job.run_token)

    def execute_run(self, job_id: str, run_token: str) -> None:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.run_token != run_token:
                logger.info("run_skipped job_id=%s reason=stale_before_start", job_id)
                return
            kind, inputs, params, request_id = job.kind, list(job.inputs), dict(job.params), job.request_id

        with bound_request_id(request_id):
            try:
                result = self.gateway.run(kind, inputs, params)
            except Exception:
                logger.exception("run_crashed job_id=%s kind=%s", job_id, kind)
                result = OperationResult.failure(ERROR_MODEL_FAILURE, "Unexpected processing error")
            self._apply_result(job, run_token, result)

    def _apply_result(self, job: Job, run_token: str, result: OperationResult) -> None:
        with self._lock:
            if not self._is_current(job) or job.status != JOB_STATUS_RUNNING or job.run_token != run_token:
                incr("job_stale_results_total", kind=job.kind)
                log_stage(
                    job_id=job.job_id,
                    stage="JOB_RUN",
                    event="STALE_DISCARDED",
                    kind=job.kind,
                    instance_id=job.instance_id,
                    status=job.status,
                )
                return
            job.run_token = None
            if result.ok:
                job.result = result.value
                job.error = None
                self._transition(job, EVENT_SUCCEED, context="JOB_RUN")
            else:
                self._fail(job, result, context="JOB_RUN")

    # ---------------------------------------------------------
    # RESET / RETRY
    # ---------------------------------------------------------
    def reset(self, job_id: str, forget_cached: bool = False) -> dict:
        with self._lock:
            job = self._require(job_id)
            if job.status != JOB_STATUS_IDLE:
                job.inputs = []
                job.input_filenames = []
                job.input_size_bytes = 0
                job.input_source = None
                job.progress = 0.0
                job.params = {}
                job.result = None
                job.error = None
                job.run_token = None
                job.notices = []
                self._transition(job, EVENT_RESET, context="JOB_RESET")
            snapshot = job.snapshot()
        if forget_cached:
            self.cache.clear()
            logger.info("document_cache_cleared job_id=%s", job_id)
        return snapshot

    def retry(self, job_id: str) -> dict:
        with self._lock:
            job = self._require(job_id)
            if job.status != JOB_STATUS_FAILED:
                raise JobConflict(f"Retry allowed only for FAILED jobs (current={job.status})")
            if not job.inputs:
                raise JobConflict("Job no longer holds its input; start a new job")
            try:
                self._transition(job, EVENT_RETRY, context="JOB_RETRY")
            except TransitionError as exc:
                raise JobConflict(str(exc)) from exc
            job.error = None
            return job.snapshot()


_service: Optional[JobService] = None
_service_lock = threading.Lock()


def get_job_service() -> JobService:
    global _service
    with _service_lock:
        if _service is None:
            _service = JobService()
        return _service
