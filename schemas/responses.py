# User value: This file fixes the shape of job replies so the browser can always render status, errors and results.
from pydantic import BaseModel, Field
from typing import Any, List, Literal, Optional


class JobError(BaseModel):
    error_kind: str
    message: str


class JobResponse(BaseModel):
    # User value: shares live status so users know exactly where their document stands.
    contract_version: str
    request_id: Optional[str] = None
    job_id: str
    instance_id: str
    kind: str
    status: Literal["IDLE", "READING_INPUT", "READY_TO_RUN", "RUNNING", "SUCCEEDED", "FAILED"]
    progress: float = Field(default=0.0, ge=0.0, le=100.0)
    input_filenames: List[str] = Field(default_factory=list)
    input_size_bytes: int = Field(default=0, ge=0)
    input_source: Optional[str] = None
    # User value: tells users which files were skipped without failing the whole drop.
    notices: List[str] = Field(default_factory=list)
    params: dict = Field(default_factory=dict)
    result: Optional[dict] = None
    presentation: Optional[dict] = None
    error: Optional[JobError] = None
    created_at: str
    updated_at: str


class OperationResponse(BaseModel):
    ok: bool
    value: Optional[Any] = None
    error_kind: Optional[str] = None
    message: Optional[str] = None
    details: Optional[dict] = None


class VoiceInfo(BaseModel):
    id: str
    name: str
    gender: str


class CachedDocumentInfo(BaseModel):
    filename: str
    mime: str
    size_bytes: int = Field(default=0, ge=0)
    size_label: str
    saved_at: str = ""
