# User value: This file keeps job kinds, statuses and error kinds identical across every document tool.
CONTRACT_VERSION = "2026-10-17-doc-toolkit-1"

JOB_KIND_SUMMARIZE = "SUMMARIZE"
JOB_KIND_TRANSLATE = "TRANSLATE"
JOB_KIND_NARRATE = "NARRATE"
JOB_KIND_DETECT_OUTFIT = "DETECT_OUTFIT"
JOB_KIND_CONVERT_TO_IMAGES = "CONVERT_TO_IMAGES"
JOB_KIND_CONVERT_FROM_IMAGES = "CONVERT_FROM_IMAGES"

JOB_KINDS = (
    JOB_KIND_SUMMARIZE,
    JOB_KIND_TRANSLATE,
    JOB_KIND_NARRATE,
    JOB_KIND_DETECT_OUTFIT,
    JOB_KIND_CONVERT_TO_IMAGES,
    JOB_KIND_CONVERT_FROM_IMAGES,
)

JOB_STATUS_IDLE = "IDLE"
JOB_STATUS_READING_INPUT = "READING_INPUT"
JOB_STATUS_READY_TO_RUN = "READY_TO_RUN"
JOB_STATUS_RUNNING = "RUNNING"
JOB_STATUS_SUCCEEDED = "SUCCEEDED"
JOB_STATUS_FAILED = "FAILED"

JOB_STATUSES = (
    JOB_STATUS_IDLE,
    JOB_STATUS_READING_INPUT,
    JOB_STATUS_READY_TO_RUN,
    JOB_STATUS_RUNNING,
    JOB_STATUS_SUCCEEDED,
    JOB_STATUS_FAILED,
)

TERMINAL_STATUSES = (
    JOB_STATUS_SUCCEEDED,
    JOB_STATUS_FAILED,
)

ERROR_INVALID_INPUT_TYPE = "INVALID_INPUT_TYPE"
ERROR_INPUT_TOO_LARGE = "INPUT_TOO_LARGE"
ERROR_READ_FAILURE = "READ_FAILURE"
ERROR_FETCH_FAILURE = "FETCH_FAILURE"
ERROR_INVALID_REMOTE_CONTENT_TYPE = "INVALID_REMOTE_CONTENT_TYPE"
ERROR_EXTRACTION_FAILURE = "EXTRACTION_FAILURE"
ERROR_MODEL_FAILURE = "MODEL_FAILURE"
ERROR_EMPTY_DOCUMENT = "EMPTY_DOCUMENT"
ERROR_VALIDATION_FAILURE = "VALIDATION_FAILURE"

ERROR_KINDS = (
    ERROR_INVALID_INPUT_TYPE,
    ERROR_INPUT_TOO_LARGE,
    ERROR_READ_FAILURE,
    ERROR_FETCH_FAILURE,
    ERROR_INVALID_REMOTE_CONTENT_TYPE,
    ERROR_EXTRACTION_FAILURE,
    ERROR_MODEL_FAILURE,
    ERROR_EMPTY_DOCUMENT,
    ERROR_VALIDATION_FAILURE,
)

# HTTP status used when a failed result object is returned directly to a client.
ERROR_HTTP_STATUS = {
    ERROR_INVALID_INPUT_TYPE: 415,
    ERROR_INPUT_TOO_LARGE: 413,
    ERROR_READ_FAILURE: 422,
    ERROR_FETCH_FAILURE: 502,
    ERROR_INVALID_REMOTE_CONTENT_TYPE: 422,
    ERROR_EXTRACTION_FAILURE: 422,
    ERROR_MODEL_FAILURE: 502,
    ERROR_EMPTY_DOCUMENT: 422,
    ERROR_VALIDATION_FAILURE: 422,
}

PDF_MIME = "application/pdf"
IMAGE_MIME_WILDCARD = "image/*"

ACCEPTED_MIME_TYPES = {
    JOB_KIND_SUMMARIZE: (PDF_MIME,),
    JOB_KIND_TRANSLATE: (PDF_MIME,),
    JOB_KIND_NARRATE: (PDF_MIME,),
    JOB_KIND_CONVERT_TO_IMAGES: (PDF_MIME,),
    JOB_KIND_DETECT_OUTFIT: (IMAGE_MIME_WILDCARD,),
    JOB_KIND_CONVERT_FROM_IMAGES: (IMAGE_MIME_WILDCARD,),
}

# Kinds whose intake takes a collection of files instead of a single one.
MULTI_FILE_KINDS = (JOB_KIND_CONVERT_FROM_IMAGES,)

# Kinds that accept a remote `url:` reference instead of an upload.
URL_INPUT_KINDS = (
    JOB_KIND_SUMMARIZE,
    JOB_KIND_TRANSLATE,
    JOB_KIND_NARRATE,
    JOB_KIND_CONVERT_TO_IMAGES,
)

# Run parameters that must be present before a job may enter RUNNING.
REQUIRED_RUN_PARAMS = {
    JOB_KIND_TRANSLATE: ("target_language",),
    JOB_KIND_NARRATE: ("voice_id",),
}

NARRATION_TEXT_BUDGET = 10_000
TRANSLATION_TEXT_BUDGET = 15_000

CANONICAL_FIELDS = (
    "contract_version",
    "request_id",
    "job_id",
    "instance_id",
    "kind",
    "status",
    "progress",
    "input_filenames",
    "input_size_bytes",
    "input_source",
    "notices",
    "params",
    "result",
    "presentation",
    "error",
    "created_at",
    "updated_at",
)
