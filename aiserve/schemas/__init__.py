# ==============================================================================
# SCHEMAS PACKAGE INITIALIZATION
# ==============================================================================

"""
Pydantic Schemas
================

Request validation and response serialization:
- base: Response wrapper, health and pool status
- serving: Model endpoints and predictions
"""

from aiserve.schemas.base import (
    APIResponse,
    BaseSchema,
    HealthResponse,
    PoolStatusResponse,
    TimestampSchema,
)
from aiserve.schemas.serving import (
    ModelEndpointCreate,
    ModelEndpointResponse,
    ModelEndpointUpdate,
    PredictionCreate,
    PredictionResponse,
    PredictionSummary,
)

__all__ = [
    "APIResponse",
    "BaseSchema",
    "HealthResponse",
    "PoolStatusResponse",
    "TimestampSchema",
    "ModelEndpointCreate",
    "ModelEndpointResponse",
    "ModelEndpointUpdate",
    "PredictionCreate",
    "PredictionResponse",
    "PredictionSummary",
]
