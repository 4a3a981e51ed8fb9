from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from tokenomy.runtime.errors import ApplyError


@dataclass(slots=True)
class ApiError(Exception):
    status_code: int
    code: str
    message: str
    details: Dict[str, Any]

    @staticmethod
    def bad_request(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(400, code, message, details or {})

    @staticmethod
    def forbidden(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(403, code, message, details or {})

    @staticmethod
    def not_found(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(404, code, message, details or {})

    @staticmethod
    def conflict(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(409, code, message, details or {})

    @staticmethod
    def internal(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(500, code, message, details or {})

    def to_json(self) -> Dict[str, Any]:
        return {"ok": False, "error": {"code": self.code, "message": self.message, "details": self.details}}


_STATUS_BY_APPLY_CODE = {
    "invalid_tx": 400,
    "invalid_payload": 400,
    "invalid_proof": 400,
    "forbidden": 403,
    "invalid_state": 409,
}


def api_error_from_apply(e: ApplyError) -> ApiError:
    """Map a domain rejection onto an HTTP error, keeping its reason as the error code."""
    status = _STATUS_BY_APPLY_CODE.get(str(e.code), 400)
    details = e.details if isinstance(e.details, dict) else {}
    return ApiError(status, str(e.reason), f"{e.code}:{e.reason}", dict(details))


__all__ = ["ApiError", "api_error_from_apply"]
