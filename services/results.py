# User value: This file gives every tool one predictable success/failure shape so users always see a clear outcome.
from dataclasses import dataclass, field
from typing import Any, Optional

from schemas.job_contract import ERROR_HTTP_STATUS, ERROR_KINDS


@dataclass(frozen=True)
class OperationResult:
    ok: bool
    value: Any = None
    error_kind: Optional[str] = None
    message: str = ""
    details: dict = field(default_factory=dict)

    @classmethod
    def success(cls, value: Any) -> "OperationResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error_kind: str, message: str, **details: Any) -> "OperationResult":
        if error_kind not in ERROR_KINDS:
            raise ValueError(f"Unknown error kind: {error_kind}")
        return cls(ok=False, error_kind=error_kind, message=message, details=details)

    @property
    def http_status(self) -> int:
        if self.ok:
            return 200
        return ERROR_HTTP_STATUS.get(self.error_kind, 500)

    def error_payload(self) -> dict | None:
        if self.ok:
            return None
        return {"error_kind": self.error_kind, "message": self.message}

    def to_dict(self) -> dict:
        if self.ok:
            return {"ok": True, "value": self.value}
        body = {"ok": False, "error_kind": self.error_kind, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body
