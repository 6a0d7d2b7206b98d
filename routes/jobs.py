# User value: This file lets users start, run, reset, retry and download document jobs from the browser.
import logging
from typing import List, Optional
from urllib.parse import quote

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import Response

from schemas.job_contract import ERROR_HTTP_STATUS, JOB_KINDS, JOB_STATUS_FAILED, MULTI_FILE_KINDS
from schemas.requests import RestoreJobRequest, RunJobRequest, UrlJobRequest
from schemas.responses import JobResponse
from services.feature_flags import is_document_cache_enabled, is_url_input_enabled
from services.jobs import JobConflict, JobNotFound, JobService, get_job_service
from services.payload_codec import PayloadError, decode_payload
from utils.metrics import incr
from utils.stage_logging import log_stage

router = APIRouter()
logger = logging.getLogger("api.jobs")


def _feature_disabled(name: str) -> HTTPException:
    return HTTPException(
        status_code=404,
        detail={"error_code": "FEATURE_DISABLED", "error_message": f"{name} is disabled"},
    )


def _not_found(job_id: str) -> HTTPException:
    return HTTPException(status_code=404, detail={"error_code": "JOB_NOT_FOUND", "error_message": f"Job {job_id} not found"})


def _conflict(exc: JobConflict) -> HTTPException:
    return HTTPException(status_code=409, detail={"error_code": "STATE_CONFLICT", "error_message": str(exc)})


# User value: surfaces rejected or failed intake with the right status so the browser can show why.
def _raise_if_failed(snapshot: dict) -> dict:
    if snapshot.get("status") != JOB_STATUS_FAILED:
        return snapshot
    error = snapshot.get("error") or {}
    error_kind = str(error.get("error_kind") or "")
    raise HTTPException(
        status_code=ERROR_HTTP_STATUS.get(error_kind, 422),
        detail={"error_code": error_kind, "error_message": error.get("message") or "Job failed", "job": snapshot},
    )


def _normalize_kind(kind: str) -> str:
    value = str(kind or "").strip().upper()
    if value not in JOB_KINDS:
        raise HTTPException(
            status_code=400,
            detail={"error_code": "INVALID_REQUEST", "error_message": f"Unknown job kind: {kind}"},
        )
    return value


@router.post("/jobs", response_model=JobResponse)
# User value: accepts dropped or selected files and reads them with visible progress.
async def create_file_job(
    kind: str = Form(...),
    instance_id: Optional[str] = Form(default=None),
    file: Optional[UploadFile] = File(default=None),
    files: Optional[List[UploadFile]] = File(default=None),
    service: JobService = Depends(get_job_service),
):
    kind_n = _normalize_kind(kind)
    uploads = [u for u in (files or []) if u is not None]
    if file is not None:
        uploads.insert(0, file)
    if not uploads:
        raise HTTPException(status_code=400, detail={"error_code": "INVALID_REQUEST", "error_message": "No file was uploaded"})

    if kind_n in MULTI_FILE_KINDS:
        snapshot = await service.start_multi_file_intake(instance_id, kind_n, uploads)
    else:
        if len(uploads) != 1:
            raise HTTPException(
                status_code=400,
                detail={"error_code": "INVALID_REQUEST", "error_message": f"Job kind {kind_n} takes exactly one file"},
            )
        snapshot = await service.start_file_intake(instance_id, kind_n, uploads[0])

    incr("api_jobs_created_total", kind=kind_n, source="upload", status=snapshot["status"])
    return _raise_if_failed(snapshot)


@router.post("/jobs/url", response_model=JobResponse)
# User value: lets users work on a PDF straight from a link without downloading it first.
def create_url_job(payload: UrlJobRequest, service: JobService = Depends(get_job_service)):
    if not is_url_input_enabled():
        raise _feature_disabled("URL input")
    snapshot = service.start_url_job(payload.instance_id, payload.kind, payload.url.strip())
    incr("api_jobs_created_total", kind=payload.kind, source="url", status=snapshot["status"])
    return _raise_if_failed(snapshot)


@router.post("/jobs/restore", response_model=JobResponse)
# User value: brings back the last uploaded PDF so users can continue without uploading again.
def restore_job(payload: RestoreJobRequest, service: JobService = Depends(get_job_service)):
    if not is_document_cache_enabled():
        raise _feature_disabled("Document cache")
    snapshot = service.restore_cached_document(payload.instance_id, payload.kind)
    if snapshot is None:
        raise HTTPException(
            status_code=404,
            detail={"error_code": "CACHE_EMPTY", "error_message": "No document has been uploaded yet"},
        )
    incr("api_jobs_created_total", kind=payload.kind, source="cache", status=snapshot["status"])
    return _raise_if_failed(snapshot)


@router.get("/jobs/{job_id}", response_model=JobResponse)
# User value: shares live status, progress and results so users know where their document stands.
def get_job(job_id: str, service: JobService = Depends(get_job_service)):
    try:
        return service.get(job_id)
    except JobNotFound as exc:
        raise _not_found(job_id) from exc


@router.post("/jobs/{job_id}/run", response_model=JobResponse, status_code=202)
# User value: starts processing only when the user asks and only with the choices it needs.
def run_job(
    job_id: str,
    background_tasks: BackgroundTasks,
    payload: Optional[RunJobRequest] = None,
    service: JobService = Depends(get_job_service),
):
    params = payload.model_dump(exclude_none=True) if payload is not None else {}
    log_stage(job_id=job_id, stage="JOB_RUN_REQUEST", event="STARTED", params=sorted(params))
    try:
        started = service.request_run(job_id, params)
    except JobNotFound as exc:
        raise _not_found(job_id) from exc
    except JobConflict as exc:
        raise _conflict(exc) from exc

    if not started.ok:
        raise HTTPException(
            status_code=started.http_status,
            detail={"error_code": started.error_kind, "error_message": started.message, **started.details},
        )

    background_tasks.add_task(service.execute_run, job_id, started.value)
    return service.get(job_id)


@router.post("/jobs/{job_id}/reset", response_model=JobResponse)
# User value: lets users start over at any point, optionally forgetting the remembered document.
def reset_job(
    job_id: str,
    forget_cached: bool = Query(default=False),
    service: JobService = Depends(get_job_service),
):
    try:
        return service.reset(job_id, forget_cached=forget_cached)
    except JobNotFound as exc:
        raise _not_found(job_id) from exc


@router.post("/jobs/{job_id}/retry", response_model=JobResponse)
# User value: lets users try a failed job again without re-uploading the file.
def retry_job(job_id: str, service: JobService = Depends(get_job_service)):
    try:
        return service.retry(job_id)
    except JobNotFound as exc:
        raise _not_found(job_id) from exc
    except JobConflict as exc:
        raise _conflict(exc) from exc


@router.get("/jobs/{job_id}/download")
# User value: gives users the translated PDF, narration audio or page image as a real file.
def download_job_artifact(
    job_id: str,
    index: int = Query(default=0, ge=0),
    service: JobService = Depends(get_job_service),
):
    try:
        artifact = service.download(job_id, index)
    except JobNotFound as exc:
        raise _not_found(job_id) from exc
    except JobConflict as exc:
        raise _conflict(exc) from exc

    if not artifact or not artifact[0]:
        raise HTTPException(
            status_code=404,
            detail={"error_code": "RESOURCE_NOT_FOUND", "error_message": f"No downloadable artifact at index {index}"},
        )
    payload, filename = artifact
    try:
        mime, data = decode_payload(payload)
    except PayloadError as exc:
        logger.error("download_payload_corrupt job_id=%s index=%s error=%s", job_id, index, exc)
        raise

    incr("api_jobs_download_total", mime=mime)
    return Response(
        content=data,
        media_type=mime,
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}"},
    )
