# User value: This file defines what users may send to the document tools so bad requests fail early and clearly.
from pydantic import BaseModel, Field
from typing import List, Literal, Optional, Union

JobKind = Literal[
    "SUMMARIZE",
    "TRANSLATE",
    "NARRATE",
    "DETECT_OUTFIT",
    "CONVERT_TO_IMAGES",
    "CONVERT_FROM_IMAGES",
]


class UrlJobRequest(BaseModel):
    kind: JobKind
    url: str = Field(..., min_length=1)
    instance_id: Optional[str] = None


class RestoreJobRequest(BaseModel):
    kind: JobKind
    instance_id: Optional[str] = None


class RunJobRequest(BaseModel):
    # User value: carries the choices users make before running, like language or narrator voice.
    target_language: Optional[str] = None
    voice_id: Optional[str] = None


class ShoppingItem(BaseModel):
    item_id: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)


class OperationRequest(BaseModel):
    # User value: lets integrations call a single document tool directly without managing a job.
    payload: Optional[str] = None
    payloads: List[str] = Field(default_factory=list)
    target_language: Optional[str] = None
    voice_id: Optional[str] = None
    items: List[Union[ShoppingItem, str]] = Field(default_factory=list)


class VoiceSampleRequest(BaseModel):
    voice_id: str = Field(..., min_length=1)
    name: Optional[str] = None
