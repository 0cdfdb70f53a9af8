# ==============================================================================
# REPOSITORIES PACKAGE INITIALIZATION
# ==============================================================================

"""
Repository Pattern Implementation
=================================

Data access bound to a unit of work:
- BaseRepository: Generic CRUD operations
- ModelEndpointRepository / PredictionRepository: Serving data
"""

from aiserve.database.repositories.base_repository import BaseRepository
from aiserve.database.repositories.serving_repository import (
    ModelEndpointRepository,
    PredictionRepository,
)

# Registered on every unit of work handed out by the application
REPOSITORIES = {
    "model_endpoints": ModelEndpointRepository,
    "predictions": PredictionRepository,
}

__all__ = [
    "BaseRepository",
    "ModelEndpointRepository",
    "PredictionRepository",
    "REPOSITORIES",
]
