"""API models package."""

from .errors import ErrorBody, ErrorResponse
from .responses import SuccessResponse, ok

__all__ = [
    "ErrorBody",
    "ErrorResponse",
    "SuccessResponse",
    "ok",
]
