"""
Error response models.

Every failed request returns the same envelope:

    {"success": false, "error": {"code": "...", "message": "...", "details": {...}}}

`details` is present only when there is something to report; for request
validation failures it maps each field to a list of messages.
"""

from typing import Any, Optional

from pydantic import BaseModel


class ErrorBody(BaseModel):
    """The `error` object of the envelope."""

    code: str
    message: str
    details: Optional[dict[str, Any]] = None


class ErrorResponse(BaseModel):
    """Standard error response format."""

    success: bool = False
    error: ErrorBody
