"""
Pydantic bases shared by request and response schemas.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

__all__ = ["BaseSchema", "BaseResponseSchema"]


class BaseSchema(BaseModel):
    """
    Strips surrounding whitespace from strings and re-validates on assignment.

    Enum fields keep their Enum members (``BookingStatus.PENDING``, not
    ``"pending"``) so services can compare against the model enums directly.
    """

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
        validate_assignment=True,
    )


class BaseResponseSchema(BaseSchema):
    """Read model for any stored row."""

    id: str = Field(..., description="Row id (UUID string)")
    created_at: datetime = Field(..., description="When the row was stored, naive UTC")
