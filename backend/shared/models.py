"""
Shared data models used across modules.

These models are shared infrastructure, not business logic.
Module-specific models should stay in their respective module directories.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """
    Base model for anything that crosses the HTTP boundary.

    The mobile client speaks camelCase JSON; Python code keeps snake_case
    attribute names. Both spellings are accepted on input.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class AuthenticatedUser(BaseModel):
    """
    Represents an authenticated user in the system.

    This model is populated from access token claims and made available
    to route handlers via dependency injection.
    """

    id: str = Field(..., description="User ID (UUID)")
    email: Optional[str] = Field(None, description="User's email address, if known")

    model_config = {
        "frozen": True,
        "extra": "ignore",
    }
