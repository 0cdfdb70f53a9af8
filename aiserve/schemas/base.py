# ==============================================================================
# BASE SCHEMAS - Common Schema Patterns
# ==============================================================================
# Foundation schemas for API responses and health reporting
# ==============================================================================

from __future__ import annotations

from datetime import datetime
from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field


# Type variable for generic response types
T = TypeVar("T")


class BaseSchema(BaseModel):
    """
    Base schema with common configuration.

    All API schemas inherit from this class to ensure consistent
    serialization behavior, including reading ORM attributes.
    """

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        use_enum_values=True,
        protected_namespaces=(),  # model_id / model_name fields
    )


class TimestampSchema(BaseSchema):
    """Schema with automatic timestamp fields."""

    created_at: Optional[datetime] = Field(
        None,
        description="Record creation timestamp"
    )
    updated_at: Optional[datetime] = Field(
        None,
        description="Last update timestamp"
    )


class APIResponse(BaseModel, Generic[T]):
    """
    Standard API response wrapper.

    Attributes:
        success: Whether the request was successful
        message: Optional status message
        data: Response payload
        errors: Optional error details
    """

    success: bool = Field(
        True,
        description="Whether the request was successful"
    )
    message: Optional[str] = Field(
        None,
        description="Status message"
    )
    data: Optional[T] = Field(
        None,
        description="Response data"
    )
    errors: Optional[List[dict[str, Any]]] = Field(
        None,
        description="Error details if any"
    )

    @classmethod
    def ok(
        cls,
        data: T,
        message: Optional[str] = None,
    ) -> "APIResponse[T]":
        """Create a successful response."""
        return cls(success=True, data=data, message=message)


class HealthResponse(BaseSchema):
    """Health check response schema."""

    status: str = Field(
        ...,
        description="Health status"
    )
    version: str = Field(
        ...,
        description="Application version"
    )
    database: str = Field(
        ...,
        description="Database connection status"
    )


class PoolStatusResponse(BaseSchema):
    """Connection pool occupancy and unit of work counters."""

    size: int = Field(..., description="Pooled connections")
    max_overflow: int = Field(..., description="Allowed overflow connections")
    checked_out: int = Field(..., description="Connections held by open units of work")
    checked_in: int = Field(..., description="Idle connections in the pool")
    overflow: int = Field(..., description="Overflow connections currently open")
    available: int = Field(..., description="Connections that can still be acquired")
    stats: dict[str, int] = Field(
        default_factory=dict,
        description="Unit of work lifetime counters",
    )
