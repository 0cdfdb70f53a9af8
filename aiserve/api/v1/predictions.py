# ==============================================================================
# PREDICTION ENDPOINTS - Prediction Log Routes
# ==============================================================================

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Query, status

from aiserve.api.dependencies import CurrentClientID, ManagerDep, UnitOfWorkDep
from aiserve.schemas.base import APIResponse
from aiserve.schemas.serving import (
    PredictionCreate,
    PredictionResponse,
    PredictionSummary,
)
from aiserve.services.serving_service import PredictionService

router = APIRouter(prefix="/predictions", tags=["Predictions"])


@router.post(
    "",
    response_model=APIResponse[PredictionResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Record prediction",
    description="Record an inference request and its result.",
)
async def record_prediction(
    client_id: CurrentClientID,
    schema: PredictionCreate,
    manager: ManagerDep,
) -> APIResponse[PredictionResponse]:
    """Record a prediction against an active model endpoint."""
    prediction = await manager.run(
        lambda uow: PredictionService(uow).record(client_id, schema)
    )
    return APIResponse.ok(data=prediction, message="Prediction recorded")


@router.get(
    "",
    response_model=APIResponse[List[PredictionResponse]],
    summary="List predictions",
)
async def list_predictions(
    client_id: CurrentClientID,
    uow: UnitOfWorkDep,
    model_id: Optional[str] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
) -> APIResponse[List[PredictionResponse]]:
    """List the caller's predictions."""
    predictions = await PredictionService(uow).list_for_owner(
        client_id, skip, limit, model_id
    )
    return APIResponse.ok(data=predictions)


@router.get(
    "/summary",
    response_model=APIResponse[List[PredictionSummary]],
    summary="Prediction summary",
    description="Per-model counts, failures and mean latency for the caller.",
)
async def prediction_summary(
    client_id: CurrentClientID,
    uow: UnitOfWorkDep,
) -> APIResponse[List[PredictionSummary]]:
    """Summarize the caller's predictions per model."""
    summary = await PredictionService(uow).summary(client_id)
    return APIResponse.ok(data=summary)


@router.get(
    "/{prediction_id}",
    response_model=APIResponse[PredictionResponse],
    summary="Get prediction",
)
async def get_prediction(
    prediction_id: str,
    client_id: CurrentClientID,
    uow: UnitOfWorkDep,
) -> APIResponse[PredictionResponse]:
    """Get one of the caller's predictions."""
    prediction = await PredictionService(uow).get(prediction_id, client_id)
    return APIResponse.ok(data=prediction)
