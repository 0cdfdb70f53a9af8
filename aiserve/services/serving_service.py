# ==============================================================================
# SERVING SERVICES - Model Registry & Prediction Log
# ==============================================================================
# Business logic running inside one unit of work
# ==============================================================================

from __future__ import annotations

from typing import List, Optional

from aiserve.core.exceptions import (
    AlreadyExistsError,
    AuthorizationError,
    BadRequestError,
    NotFoundError,
)
from aiserve.database.repositories import ModelEndpointRepository, PredictionRepository
from aiserve.database.unit_of_work import UnitOfWork
from aiserve.domain_models.serving import ModelEndpoint
from aiserve.schemas.serving import (
    ModelEndpointCreate,
    ModelEndpointResponse,
    ModelEndpointUpdate,
    PredictionCreate,
    PredictionResponse,
    PredictionSummary,
)


class ModelEndpointService:
    """
    Model registry operations.

    All reads and writes share the given unit of work; committing is
    the caller's scope's job.
    """

    def __init__(self, uow: UnitOfWork) -> None:
        self._repo: ModelEndpointRepository = uow.get_repository("model_endpoints")

    async def register(
        self,
        owner_id: str,
        schema: ModelEndpointCreate,
    ) -> ModelEndpointResponse:
        """
        Register a new model endpoint.

        A concurrent registration of the same name that slips past the
        lookup fails at flush with an integrity PersistenceError.

        Raises:
            AlreadyExistsError: If the name is taken
        """
        if await self._repo.get_by_name(schema.name) is not None:
            raise AlreadyExistsError(
                message=f"Model endpoint '{schema.name}' already exists",
                resource_type="model_endpoint",
            )

        data = schema.model_dump()
        data["owner_id"] = owner_id
        data["is_active"] = True

        endpoint = await self._repo.create(data)
        return ModelEndpointResponse.model_validate(endpoint)

    async def _load(self, model_id: str) -> ModelEndpoint:
        endpoint = await self._repo.get_by_id(model_id)
        if endpoint is None:
            raise NotFoundError(
                message="Model endpoint not found",
                resource_type="model_endpoint",
                resource_id=model_id,
            )
        return endpoint

    async def _load_owned(self, model_id: str, owner_id: str) -> ModelEndpoint:
        endpoint = await self._load(model_id)
        if endpoint.owner_id != owner_id:
            raise AuthorizationError(message="Not authorized to modify this model endpoint")
        return endpoint

    async def get(self, model_id: str) -> ModelEndpointResponse:
        """
        Get an endpoint by ID.

        Raises:
            NotFoundError: If endpoint not found
        """
        return ModelEndpointResponse.model_validate(await self._load(model_id))

    async def list_all(
        self,
        skip: int = 0,
        limit: int = 20,
        active_only: bool = False,
    ) -> List[ModelEndpointResponse]:
        """List endpoints ordered by name."""
        filters = {"is_active": True} if active_only else None
        endpoints = await self._repo.get_all(
            skip=skip,
            limit=limit,
            filters=filters,
            sort_by="name",
        )
        return [ModelEndpointResponse.model_validate(e) for e in endpoints]

    async def update(
        self,
        model_id: str,
        owner_id: str,
        schema: ModelEndpointUpdate,
    ) -> ModelEndpointResponse:
        """
        Update an endpoint owned by ``owner_id``.

        Raises:
            NotFoundError: If endpoint not found
            AuthorizationError: If the caller does not own it
        """
        await self._load_owned(model_id, owner_id)
        endpoint = await self._repo.update(model_id, schema.model_dump(exclude_unset=True))
        return ModelEndpointResponse.model_validate(endpoint)

    async def deactivate(self, model_id: str, owner_id: str) -> ModelEndpointResponse:
        """Stop accepting predictions for an endpoint."""
        await self._load_owned(model_id, owner_id)
        endpoint = await self._repo.update(model_id, {"is_active": False})
        return ModelEndpointResponse.model_validate(endpoint)


class PredictionService:
    """Prediction log operations, scoped to the submitting client."""

    def __init__(self, uow: UnitOfWork) -> None:
        self._models: ModelEndpointRepository = uow.get_repository("model_endpoints")
        self._repo: PredictionRepository = uow.get_repository("predictions")

    async def record(
        self,
        owner_id: str,
        schema: PredictionCreate,
    ) -> PredictionResponse:
        """
        Record a prediction against an active endpoint.

        Raises:
            NotFoundError: If the endpoint does not exist
            BadRequestError: If the endpoint is inactive
        """
        endpoint = await self._models.get_by_id(schema.model_id)
        if endpoint is None:
            raise NotFoundError(
                message="Model endpoint not found",
                resource_type="model_endpoint",
                resource_id=schema.model_id,
            )
        if not endpoint.is_active:
            raise BadRequestError(
                message=f"Model endpoint '{endpoint.name}' is inactive",
                details={"model_id": endpoint.id},
            )

        data = schema.model_dump()
        data["owner_id"] = owner_id

        prediction = await self._repo.create(data)
        return PredictionResponse.model_validate(prediction)

    async def get(self, prediction_id: str, owner_id: str) -> PredictionResponse:
        """
        Get one of the caller's predictions.

        Raises:
            NotFoundError: If missing or owned by another client
        """
        prediction = await self._repo.get_by_id(prediction_id)
        if prediction is None or prediction.owner_id != owner_id:
            raise NotFoundError(
                message="Prediction not found",
                resource_type="prediction",
                resource_id=prediction_id,
            )
        return PredictionResponse.model_validate(prediction)

    async def list_for_owner(
        self,
        owner_id: str,
        skip: int = 0,
        limit: int = 20,
        model_id: Optional[str] = None,
    ) -> List[PredictionResponse]:
        """List the caller's predictions, newest first."""
        filters = {"owner_id": owner_id}
        if model_id:
            filters["model_id"] = model_id

        predictions = await self._repo.get_all(
            skip=skip,
            limit=limit,
            filters=filters,
            sort_by="created_at",
            sort_order="desc",
        )
        return [PredictionResponse.model_validate(p) for p in predictions]

    async def summary(self, owner_id: str) -> List[PredictionSummary]:
        """Per-model counts and mean latency for the caller."""
        rows = await self._repo.summarize_for_owner(owner_id)
        return [PredictionSummary.model_validate(row) for row in rows]
