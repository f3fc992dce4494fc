# backend/roamplan/core/errors.py

from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse

from roamplan.core.logger import logger


class RoamplanError(Exception):
    """
    Base error for the API.

    Carries an HTTP status, a stable machine-readable code and an optional
    hint telling the client how to fix the request.
    """

    def __init__(
        self,
        message: str,
        code: str = "ROAMPLAN_ERROR",
        status_code: int = 500,
        suggestion: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.suggestion = suggestion
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"detail": self.message, "code": self.code}
        if self.suggestion:
            result["suggestion"] = self.suggestion
        if self.details:
            result["details"] = self.details
        return result


# ---------------------------------------------------------------------------
# AUTH
# ---------------------------------------------------------------------------
class AuthenticationError(RoamplanError):
    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(
            message=message,
            code="UNAUTHORIZED",
            status_code=401,
            suggestion="Sign in again and send the token as 'Authorization: Bearer <token>'",
        )


class ForbiddenError(RoamplanError):
    def __init__(self, message: str = "Admin privileges required"):
        super().__init__(message=message, code="FORBIDDEN", status_code=403)


# ---------------------------------------------------------------------------
# RESOURCES
# ---------------------------------------------------------------------------
class NotFoundError(RoamplanError):
    def __init__(self, resource: str, resource_id: Any):
        super().__init__(
            message=f"{resource} not found: {resource_id}",
            code="NOT_FOUND",
            status_code=404,
            details={"resource": resource, "id": resource_id},
        )


class ConflictError(RoamplanError):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="CONFLICT", status_code=409, details=details)


class ValidationFailedError(RoamplanError):
    def __init__(self, message: str, suggestion: Optional[str] = None):
        super().__init__(
            message=message,
            code="VALIDATION_FAILED",
            status_code=422,
            suggestion=suggestion,
        )


class DisclosureMissingError(RoamplanError):
    """Raised when a sponsored item has no paid-placement disclosure."""

    def __init__(self):
        super().__init__(
            message="Sponsored items require a disclosure label",
            code="DISCLOSURE_MISSING",
            status_code=422,
            suggestion="Set 'disclosure', e.g. 'Sponsored by <partner>'",
        )


# ---------------------------------------------------------------------------
# UPLOADS
# ---------------------------------------------------------------------------
class UploadRejectedError(RoamplanError):
    def __init__(self, message: str, status_code: int = 415, suggestion: Optional[str] = None):
        super().__init__(
            message=message,
            code="UPLOAD_REJECTED",
            status_code=status_code,
            suggestion=suggestion,
        )


# ---------------------------------------------------------------------------
# UPSTREAM / THROTTLING
# ---------------------------------------------------------------------------
class PartnerUnavailableError(RoamplanError):
    def __init__(self, partner_id: int, reason: str):
        super().__init__(
            message=f"Partner {partner_id} is unavailable and no cached offers exist",
            code="PARTNER_UNAVAILABLE",
            status_code=503,
            suggestion="Retry later",
            details={"partner_id": partner_id, "reason": reason},
        )


class RateLimitExceededError(RoamplanError):
    def __init__(self, retry_after: int):
        super().__init__(
            message="Too many requests",
            code="RATE_LIMITED",
            status_code=429,
            suggestion=f"Retry after {retry_after} seconds",
        )
        self.retry_after = retry_after


# ---------------------------------------------------------------------------
# HANDLER
# ---------------------------------------------------------------------------
async def roamplan_error_handler(request: Request, exc: RoamplanError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} -> {exc.code}: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.code}: {exc.message}")

    headers = None
    if isinstance(exc, RateLimitExceededError):
        headers = {"Retry-After": str(exc.retry_after)}

    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


def internal_error_response(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unexpected error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"detail": "An unexpected error occurred", "code": "INTERNAL_ERROR"},
    )
