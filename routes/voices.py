# User value: This endpoint lists narrator voices and lets users hear one before converting a document.
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from schemas.requests import VoiceSampleRequest
from schemas.responses import VoiceInfo
from services.feature_flags import is_voice_samples_enabled
from services.gateway import OperationGateway, get_gateway
from services.voices import DEFAULT_VOICE_ID, voice_catalog
from utils.metrics import incr

router = APIRouter(prefix="/voices", tags=["voices"])


@router.get("", response_model=List[VoiceInfo])
def list_voices():
    return voice_catalog()


@router.get("/default")
def default_voice():
    return {"voice_id": DEFAULT_VOICE_ID}


@router.post("/sample")
# User value: plays a short greeting in the chosen voice so users can pick a narrator with confidence.
def voice_sample(body: VoiceSampleRequest, gateway: OperationGateway = Depends(get_gateway)):
    if not is_voice_samples_enabled():
        raise HTTPException(
            status_code=404,
            detail={"error_code": "FEATURE_DISABLED", "error_message": "Voice samples are disabled"},
        )
    result = gateway.voice_sample(body.voice_id, body.name)
    incr("api_voice_samples_total", outcome="ok" if result.ok else result.error_kind)
    if not result.ok:
        raise HTTPException(
            status_code=result.http_status,
            detail={"error_code": result.error_kind, "error_message": result.message},
        )
    return result.value
