# ==============================================================================
# SERVICES PACKAGE INITIALIZATION
# ==============================================================================

"""
Business Services
=================

Service classes operating on a unit of work:
- ModelEndpointService: Model registry
- PredictionService: Prediction log
"""

from aiserve.services.serving_service import ModelEndpointService, PredictionService

__all__ = [
    "ModelEndpointService",
    "PredictionService",
]
