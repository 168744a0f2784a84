"""Unified API response envelopes for the chat widget."""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict

T = TypeVar("T")


class ErrorDetail(BaseModel):
    """Error body; extra keys (``retry_after_ms``, ``should_restart``) pass through."""

    model_config = ConfigDict(extra="allow")

    code: str
    message: str


class ErrorResponse(BaseModel):
    """Envelope rendered by the central exception handlers."""

    success: bool = False
    error: ErrorDetail


class ApiResponse(BaseModel, Generic[T]):
    """Success response with status, message, and data."""

    status: int = 200
    message: str = "Success"
    data: T | None = None


def success_response(
    data: Any, status: int = 200, message: str = "Success"
) -> dict[str, Any]:
    """Build a success response dict for returning from endpoints."""
    return {"status": status, "message": message, "data": data}
