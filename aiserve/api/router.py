# ==============================================================================
# MAIN API ROUTER - Route Aggregation
# ==============================================================================

from __future__ import annotations

from fastapi import APIRouter

from aiserve.core.settings import settings
from aiserve.api.v1 import models_router, predictions_router

api_router = APIRouter()

api_router.include_router(models_router, prefix=settings.API_V1_PREFIX)
api_router.include_router(predictions_router, prefix=settings.API_V1_PREFIX)
