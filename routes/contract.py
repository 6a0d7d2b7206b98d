# User value: This file lets the browser check which job kinds, statuses and errors the API speaks.
from fastapi import APIRouter

from schemas.job_contract import (
    ACCEPTED_MIME_TYPES,
    CANONICAL_FIELDS,
    CONTRACT_VERSION,
    ERROR_HTTP_STATUS,
    ERROR_KINDS,
    JOB_KINDS,
    JOB_STATUSES,
    MULTI_FILE_KINDS,
    NARRATION_TEXT_BUDGET,
    REQUIRED_RUN_PARAMS,
    TERMINAL_STATUSES,
    TRANSLATION_TEXT_BUDGET,
    URL_INPUT_KINDS,
)
from config import MAX_UPLOAD_FILE_SIZE_MB
from services.feature_flags import (
    is_document_cache_enabled,
    is_url_input_enabled,
    is_voice_samples_enabled,
)

router = APIRouter()


@router.get("/contract/job-status")
# User value: keeps job/status fields consistent across every document tool view.
def job_status_contract():
    return {
        "contract_version": CONTRACT_VERSION,
        "job_kinds": list(JOB_KINDS),
        "job_statuses": list(JOB_STATUSES),
        "terminal_statuses": list(TERMINAL_STATUSES),
        "error_kinds": list(ERROR_KINDS),
        "error_http_status": dict(ERROR_HTTP_STATUS),
        "canonical_fields": list(CANONICAL_FIELDS),
        "accepted_mime_types": {kind: list(mimes) for kind, mimes in ACCEPTED_MIME_TYPES.items()},
        "multi_file_kinds": list(MULTI_FILE_KINDS),
        "url_input_kinds": list(URL_INPUT_KINDS),
        "required_run_params": {kind: list(names) for kind, names in REQUIRED_RUN_PARAMS.items()},
        "text_budgets": {
            "narration": NARRATION_TEXT_BUDGET,
            "translation": TRANSLATION_TEXT_BUDGET,
        },
        "max_upload_file_size_mb": MAX_UPLOAD_FILE_SIZE_MB,
        "capabilities": {
            "document_cache_enabled": is_document_cache_enabled(),
            "url_input_enabled": is_url_input_enabled(),
            "voice_samples_enabled": is_voice_samples_enabled(),
        },
    }
