# ==============================================================================
# API V1 ENDPOINTS PACKAGE
# ==============================================================================

"""
API V1 Endpoints
================

Version 1 API endpoint implementations.
"""

from aiserve.api.v1.models import router as models_router
from aiserve.api.v1.predictions import router as predictions_router

__all__ = [
    "models_router",
    "predictions_router",
]
