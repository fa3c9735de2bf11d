from dataclasses import dataclass
from typing import Any, Optional

from rest_framework import status
from rest_framework.exceptions import APIException, NotFound, PermissionDenied, ValidationError

# 실패 분류 코드
INVALID = "invalid"
FORBIDDEN = "forbidden"
NOT_FOUND = "not_found"
CONFLICT = "conflict"
BACKEND = "backend"


@dataclass(frozen=True)
class OpResult:
    success: bool
    error: Optional[str] = None
    code: Optional[str] = None
    changed: bool = True  # 실제 DB 변화가 있었는지

    @classmethod
    def ok(cls, changed: bool = True) -> "OpResult":
        return cls(success=True, changed=changed)

    @classmethod
    def fail(cls, error: str, code: str) -> "OpResult":
        return cls(success=False, error=error, code=code, changed=False)


class Conflict(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Already in the requested state."
    default_code = "conflict"


class ServiceUnavailable(APIException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Service temporarily unavailable, try again later."
    default_code = "service_unavailable"


_EXCEPTIONS = {
    INVALID: lambda msg: ValidationError({"detail": msg}),
    FORBIDDEN: PermissionDenied,
    NOT_FOUND: NotFound,
    CONFLICT: Conflict,
    BACKEND: ServiceUnavailable,
}


def raise_for_result(result: Any) -> None:
    """실패한 결과 객체를 DRF 예외로 변환한다. 성공이면 아무것도 하지 않는다."""
    if result.success:
        return
    factory = _EXCEPTIONS.get(result.code or INVALID, _EXCEPTIONS[INVALID])
    raise factory(result.error)
