# User value: This file keeps every document tool moving through the same predictable job lifecycle.
import logging
from typing import Optional

from schemas.job_contract import (
    JOB_STATUS_IDLE,
    JOB_STATUS_READING_INPUT,
    JOB_STATUS_READY_TO_RUN,
    JOB_STATUS_RUNNING,
    JOB_STATUS_SUCCEEDED,
    JOB_STATUS_FAILED,
)

logger = logging.getLogger("api.status_machine")

EVENT_BEGIN_READ = "BEGIN_READ"
EVENT_READ_COMPLETE = "READ_COMPLETE"
EVENT_INPUT_REFERENCED = "INPUT_REFERENCED"
EVENT_RUN = "RUN"
EVENT_SUCCEED = "SUCCEED"
EVENT_FAIL = "FAIL"
EVENT_RETRY = "RETRY"
EVENT_RESET = "RESET"

# (current status, event) -> next status. RESET is handled separately.
_TRANSITIONS = {
    (JOB_STATUS_IDLE, EVENT_BEGIN_READ): JOB_STATUS_READING_INPUT,
    (JOB_STATUS_IDLE, EVENT_INPUT_REFERENCED): JOB_STATUS_READY_TO_RUN,
    (JOB_STATUS_IDLE, EVENT_FAIL): JOB_STATUS_FAILED,
    (JOB_STATUS_READING_INPUT, EVENT_READ_COMPLETE): JOB_STATUS_READY_TO_RUN,
    (JOB_STATUS_READING_INPUT, EVENT_FAIL): JOB_STATUS_FAILED,
    (JOB_STATUS_READY_TO_RUN, EVENT_RUN): JOB_STATUS_RUNNING,
    (JOB_STATUS_RUNNING, EVENT_SUCCEED): JOB_STATUS_SUCCEEDED,
    (JOB_STATUS_RUNNING, EVENT_FAIL): JOB_STATUS_FAILED,
    (JOB_STATUS_FAILED, EVENT_RETRY): JOB_STATUS_READY_TO_RUN,
}


class TransitionError(Exception):
    def __init__(self, current: str, event: str):
        super().__init__(f"Event {event} is not allowed while job is {current}")
        self.current = current
        self.event = event


# User value: This step keeps the document tool flow accurate and dependable.
def _norm(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip().upper()
    return s or None


def next_status(current: Optional[str], event: str) -> Optional[str]:
    """Return the status reached by applying ``event`` to ``current``.

    RESET always lands on IDLE. Unknown or disallowed combinations return None.
    """
    event_n = _norm(event)
    if event_n == EVENT_RESET:
        return JOB_STATUS_IDLE
    current_n = _norm(current) or JOB_STATUS_IDLE
    return _TRANSITIONS.get((current_n, event_n))


# User value: This step keeps the document tool flow accurate and dependable.
def is_allowed_transition(current: Optional[str], event: str) -> bool:
    return next_status(current, event) is not None


def apply_event(current: Optional[str], event: str, *, context: str, job_id: str = "") -> str:
    target = next_status(current, event)
    if target is None:
        logger.warning(
            "status_transition_blocked context=%s job_id=%s current=%s event=%s",
            context,
            job_id,
            _norm(current),
            _norm(event),
        )
        raise TransitionError(_norm(current) or JOB_STATUS_IDLE, _norm(event) or "")

    if _norm(current) == JOB_STATUS_IDLE and target == JOB_STATUS_IDLE:
        logger.info("status_transition_noop context=%s job_id=%s status=%s", context, job_id, target)

    return target
