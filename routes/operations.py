# User value: This endpoint runs one document tool directly and always answers with a clear result object.
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from schemas.requests import OperationRequest
from schemas.responses import OperationResponse
from services.gateway import OperationGateway, get_gateway
from services.results import OperationResult
from utils.stage_logging import log_stage

router = APIRouter()

OPERATIONS = (
    "summarize",
    "translate",
    "narrate",
    "detect_and_segment",
    "shopping_suggestions",
    "detect_outfit",
    "convert_to_images",
    "convert_from_images",
    "extract_full_text",
)


def _require_payload(body: OperationRequest) -> str:
    if not body.payload:
        raise HTTPException(
            status_code=422,
            detail={"error_code": "VALIDATION_FAILURE", "error_message": "payload is required for this operation"},
        )
    return body.payload


# User value: maps each tool name to its gateway call so every tool behaves the same way.
def _dispatch(gateway: OperationGateway, operation: str, body: OperationRequest) -> OperationResult:
    if operation == "summarize":
        return gateway.summarize(_require_payload(body))
    if operation == "translate":
        return gateway.translate(_require_payload(body), body.target_language)
    if operation == "narrate":
        return gateway.narrate(_require_payload(body), body.voice_id)
    if operation == "detect_and_segment":
        return gateway.detect_and_segment(_require_payload(body))
    if operation == "shopping_suggestions":
        items = [i if isinstance(i, str) else i.model_dump() for i in body.items]
        return gateway.shopping_suggestions(items)
    if operation == "detect_outfit":
        return gateway.detect_outfit(_require_payload(body))
    if operation == "convert_to_images":
        return gateway.convert_to_images(_require_payload(body))
    if operation == "convert_from_images":
        return gateway.convert_from_images(body.payloads)
    return gateway.extract_full_text(_require_payload(body))


@router.post("/operations/{operation}", response_model=OperationResponse)
# User value: gives integrations a stateless way to call any document tool.
def run_operation(operation: str, body: OperationRequest, gateway: OperationGateway = Depends(get_gateway)):
    op = str(operation or "").strip().lower()
    if op not in OPERATIONS:
        raise HTTPException(
            status_code=404,
            detail={"error_code": "RESOURCE_NOT_FOUND", "error_message": f"Unknown operation: {operation}"},
        )

    result = _dispatch(gateway, op, body)
    log_stage(
        job_id=f"op-{op}",
        stage="OPERATION",
        event="COMPLETED" if result.ok else "FAILED",
        operation=op,
        error_kind=result.error_kind,
    )
    return JSONResponse(status_code=result.http_status, content=result.to_dict())
