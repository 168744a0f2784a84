"""Application exception classes and handlers."""

import math
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = 400,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


# --- Validation (400) ---


class InvalidMessageError(AppException):
    """Visitor message is empty after trimming."""

    def __init__(self, message: str = "Message text must not be empty") -> None:
        super().__init__(message=message, code="INVALID_MESSAGE", status_code=400)


# --- Not Found (404) ---


class SessionNotFoundError(AppException):
    """Chat session is unknown, expired or already ended."""

    def __init__(self) -> None:
        super().__init__(
            message="Session not found or expired",
            code="SESSION_NOT_FOUND",
            status_code=404,
            details={"should_restart": True},
        )


# --- Rate Limit (429) ---


class RateLimitedError(AppException):
    """Admission rejected by a sliding-window limiter."""

    def __init__(self, retry_after_ms: int) -> None:
        super().__init__(
            message="Too many messages. Please wait a moment.",
            code="RATE_LIMITED",
            status_code=429,
            details={"retry_after_ms": retry_after_ms},
        )
        self.retry_after_ms = retry_after_ms


# --- Conversation engine ---


class EngineError(AppException):
    """Base error for conversation engine calls."""

    def __init__(
        self, message: str, code: str = "ENGINE_ERROR", status_code: int = 502
    ) -> None:
        super().__init__(message=message, code=code, status_code=status_code)


class EngineUnavailableError(EngineError):
    """Engine unreachable, timed out or answering with a server error."""

    def __init__(self, message: str = "Conversation engine unavailable") -> None:
        super().__init__(message=message, code="ENGINE_UNAVAILABLE", status_code=503)


class EngineSessionNotFoundError(EngineError):
    """Engine no longer knows the conversation (expired on its side)."""

    def __init__(self, engine_session_id: str) -> None:
        super().__init__(
            message=f"Engine session {engine_session_id} not found",
            code="ENGINE_SESSION_NOT_FOUND",
            status_code=404,
        )
        self.engine_session_id = engine_session_id


class EngineResponseError(EngineError):
    """Engine answered with a payload that could not be understood."""

    def __init__(self, message: str = "Malformed engine response") -> None:
        super().__init__(message=message, code="ENGINE_BAD_RESPONSE", status_code=502)


# --- Internal ---


class InvalidTransitionError(AppException):
    """Chat adapter state machine received an event it has no edge for."""

    def __init__(self, state: str, event: str) -> None:
        super().__init__(
            message=f"No transition from {state} on {event}",
            code="INVALID_TRANSITION",
            status_code=500,
        )
        self.state = state
        self.event = event


# --- Exception Handlers ---


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Central exception handler for AppException."""
    headers: dict[str, str] = {}
    if isinstance(exc, RateLimitedError):
        headers["Retry-After"] = str(math.ceil(exc.retry_after_ms / 1000))
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": {
                "code": exc.code,
                "message": exc.message,
                **exc.details,
            },
        },
        headers=headers or None,
    )


async def rate_limit_exceeded_handler(
    request: Request, exc: RateLimitExceeded
) -> JSONResponse:
    """Render slowapi's coarse per-IP rejection like our own limiter."""
    return await app_exception_handler(request, RateLimitedError(retry_after_ms=60_000))


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render request validation failures in the common error envelope."""
    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "error": {
                "code": "VALIDATION_ERROR",
                "message": "Invalid request",
                "fields": [
                    {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
                    for err in exc.errors()
                ],
            },
        },
    )
