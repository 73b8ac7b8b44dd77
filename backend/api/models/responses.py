"""
Success response envelope.

Routes declare `response_model=SuccessResponse[Payload]` and return
`ok(payload)`.
"""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel


T = TypeVar("T")


class SuccessResponse(BaseModel, Generic[T]):
    """Standard success response format."""

    success: bool = True
    data: T


def ok(data: Any) -> dict[str, Any]:
    """Wrap a payload in the success envelope."""
    return {"success": True, "data": data}
