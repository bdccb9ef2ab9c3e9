"""
Standard Response Models

Provides consistent response wrappers for all API endpoints.
"""

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class StandardResponse(BaseModel, Generic[T]):
    """Standard response wrapper for single resource"""

    success: bool = Field(default=True, description="Whether the operation was successful")
    data: T | None = Field(default=None, description="Response data")
    message: str | None = Field(default=None, description="Optional success message")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "success": True,
                "data": {"canAssign": True, "reason": None},
                "message": "Assignment checked",
            }
        }
    )
