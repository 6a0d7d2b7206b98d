import json
import logging
from datetime import datetime, timezone
from typing import Any

from utils.request_id import get_request_id

logger = logging.getLogger("api.stage")


def _norm(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)):
        return "|".join(str(v) for v in value)
    return str(value)


def log_stage(
    *,
    job_id: str,
    stage: str,
    event: str,
    kind: str | None = None,
    instance_id: str | None = None,
    error_kind: str | None = None,
    error: str | None = None,
    **extra: Any,
) -> None:
    payload = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "job_id": job_id,
        "stage": stage,
        "event": event.upper(),
    }

    request_id = get_request_id()
    if request_id:
        payload["request_id"] = request_id
    if kind:
        payload["kind"] = kind
    if instance_id:
        payload["instance_id"] = instance_id
    if error_kind:
        payload["error_kind"] = error_kind
    if error:
        payload["error"] = error

    for key, value in extra.items():
        norm = _norm(value)
        if norm is not None:
            payload[key] = norm

    msg = json.dumps(payload, ensure_ascii=False)
    if error or payload["event"] == "FAILED":
        logger.error("stage_event %s", msg)
    else:
        logger.info("stage_event %s", msg)
