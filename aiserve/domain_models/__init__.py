# ==============================================================================
# DOMAIN MODELS PACKAGE INITIALIZATION
# ==============================================================================

"""
Domain Models
=============

SQLAlchemy ORM models for database entities:
- ModelEndpoint: Registered models available for inference
- Prediction: Recorded inference requests and results
"""

from aiserve.domain_models.base import SQLBase, TimestampMixin
from aiserve.domain_models.serving import ModelEndpoint, Prediction, PredictionStatus

__all__ = [
    "SQLBase",
    "TimestampMixin",
    "ModelEndpoint",
    "Prediction",
    "PredictionStatus",
]
