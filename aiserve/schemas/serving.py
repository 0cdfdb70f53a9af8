# ==============================================================================
# SERVING SCHEMAS - Model Endpoints & Predictions
# ==============================================================================
# Request/Response schemas for the model registry and prediction log
# ==============================================================================

from __future__ import annotations

from typing import Optional

from pydantic import Field, field_validator

from aiserve.schemas.base import BaseSchema, TimestampSchema


class ModelEndpointCreate(BaseSchema):
    """Schema for registering a model endpoint."""

    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        pattern=r"^[a-z0-9][a-z0-9._-]*$",
        description="Unique endpoint name (lowercase, digits, . _ -)",
    )
    version: str = Field(
        "1",
        min_length=1,
        max_length=50,
        description="Model version label",
    )
    framework: str = Field(
        ...,
        min_length=1,
        max_length=50,
        description="Serving framework (pytorch, onnx, sklearn, ...)",
    )
    description: Optional[str] = Field(
        None,
        max_length=2000,
        description="Endpoint description",
    )

    @field_validator("framework")
    @classmethod
    def lowercase_framework(cls, v: str) -> str:
        return v.strip().lower()


class ModelEndpointUpdate(BaseSchema):
    """Schema for updating a model endpoint."""

    version: Optional[str] = Field(
        None,
        min_length=1,
        max_length=50,
        description="Model version label",
    )
    description: Optional[str] = Field(
        None,
        max_length=2000,
        description="Endpoint description",
    )
    is_active: Optional[bool] = Field(
        None,
        description="Whether predictions may be recorded",
    )

    @field_validator("version", "is_active")
    @classmethod
    def reject_explicit_null(cls, v):
        """Omit a field to leave it unchanged; null is not a value for it."""
        if v is None:
            raise ValueError("may be omitted but not null")
        return v


class ModelEndpointResponse(TimestampSchema):
    """Schema for model endpoint response."""

    id: str = Field(..., description="Endpoint unique identifier")
    name: str = Field(..., description="Endpoint name")
    version: str = Field(..., description="Model version label")
    framework: str = Field(..., description="Serving framework")
    description: Optional[str] = Field(None, description="Endpoint description")
    is_active: bool = Field(..., description="Whether endpoint is active")
    owner_id: str = Field(..., description="Registering client ID")


class PredictionCreate(BaseSchema):
    """Schema for recording a prediction."""

    model_id: str = Field(
        ...,
        min_length=1,
        description="Endpoint that served the request",
    )
    input_text: str = Field(
        ...,
        min_length=1,
        max_length=100000,
        description="Model input",
    )
    output_text: Optional[str] = Field(
        None,
        max_length=100000,
        description="Model output",
    )
    score: Optional[float] = Field(
        None,
        ge=0,
        le=1,
        description="Confidence score",
    )
    latency_ms: int = Field(
        0,
        ge=0,
        description="Inference latency in milliseconds",
    )
    status: str = Field(
        "succeeded",
        pattern="^(succeeded|failed)$",
        description="Prediction status",
    )


class PredictionResponse(TimestampSchema):
    """Schema for prediction response."""

    id: str = Field(..., description="Prediction unique identifier")
    model_id: str = Field(..., description="Serving endpoint ID")
    owner_id: str = Field(..., description="Submitting client ID")
    input_text: str = Field(..., description="Model input")
    output_text: Optional[str] = Field(None, description="Model output")
    score: Optional[float] = Field(None, description="Confidence score")
    latency_ms: int = Field(..., description="Inference latency in milliseconds")
    status: str = Field(..., description="Prediction status")


class PredictionSummary(BaseSchema):
    """Per-model aggregate of a client's predictions."""

    model_id: str = Field(..., description="Endpoint ID")
    model_name: str = Field(..., description="Endpoint name")
    total: int = Field(..., description="Recorded predictions")
    failed: int = Field(..., description="Failed predictions")
    mean_latency_ms: float = Field(..., description="Mean latency in milliseconds")
