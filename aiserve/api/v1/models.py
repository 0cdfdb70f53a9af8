# ==============================================================================
# MODEL ENDPOINTS - Model Registry Routes
# ==============================================================================

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Query, status

from aiserve.api.dependencies import CurrentClientID, ManagerDep, UnitOfWorkDep
from aiserve.schemas.base import APIResponse
from aiserve.schemas.serving import (
    ModelEndpointCreate,
    ModelEndpointResponse,
    ModelEndpointUpdate,
)
from aiserve.services.serving_service import ModelEndpointService

router = APIRouter(prefix="/models", tags=["Models"])


@router.post(
    "",
    response_model=APIResponse[ModelEndpointResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Register model endpoint",
    description="Register a model so predictions can be recorded against it.",
)
async def register_model(
    client_id: CurrentClientID,
    schema: ModelEndpointCreate,
    manager: ManagerDep,
) -> APIResponse[ModelEndpointResponse]:
    """Register a model endpoint owned by the caller."""
    endpoint = await manager.run(
        lambda uow: ModelEndpointService(uow).register(client_id, schema)
    )
    return APIResponse.ok(data=endpoint, message="Model endpoint registered")


@router.get(
    "",
    response_model=APIResponse[List[ModelEndpointResponse]],
    summary="List model endpoints",
)
async def list_models(
    uow: UnitOfWorkDep,
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    active_only: bool = Query(False),
) -> APIResponse[List[ModelEndpointResponse]]:
    """List registered model endpoints."""
    endpoints = await ModelEndpointService(uow).list_all(skip, limit, active_only)
    return APIResponse.ok(data=endpoints)


@router.get(
    "/{model_id}",
    response_model=APIResponse[ModelEndpointResponse],
    summary="Get model endpoint",
)
async def get_model(
    model_id: str,
    uow: UnitOfWorkDep,
) -> APIResponse[ModelEndpointResponse]:
    """Get a model endpoint by ID."""
    endpoint = await ModelEndpointService(uow).get(model_id)
    return APIResponse.ok(data=endpoint)


@router.patch(
    "/{model_id}",
    response_model=APIResponse[ModelEndpointResponse],
    summary="Update model endpoint",
)
async def update_model(
    model_id: str,
    client_id: CurrentClientID,
    schema: ModelEndpointUpdate,
    manager: ManagerDep,
) -> APIResponse[ModelEndpointResponse]:
    """Update version, description or status of an owned endpoint."""
    endpoint = await manager.run(
        lambda uow: ModelEndpointService(uow).update(model_id, client_id, schema)
    )
    return APIResponse.ok(data=endpoint, message="Model endpoint updated")


@router.post(
    "/{model_id}/deactivate",
    response_model=APIResponse[ModelEndpointResponse],
    summary="Deactivate model endpoint",
)
async def deactivate_model(
    model_id: str,
    client_id: CurrentClientID,
    manager: ManagerDep,
) -> APIResponse[ModelEndpointResponse]:
    """Stop accepting predictions for an owned endpoint."""
    endpoint = await manager.run(
        lambda uow: ModelEndpointService(uow).deactivate(model_id, client_id)
    )
    return APIResponse.ok(data=endpoint, message="Model endpoint deactivated")
