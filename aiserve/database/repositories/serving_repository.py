# ==============================================================================
# SERVING REPOSITORIES - Model Endpoints & Predictions
# ==============================================================================

from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy import case, func, select

from aiserve.database.repositories.base_repository import BaseRepository
from aiserve.domain_models.serving import ModelEndpoint, Prediction, PredictionStatus


class ModelEndpointRepository(BaseRepository[ModelEndpoint]):
    """Data access for registered model endpoints."""

    model = ModelEndpoint

    async def get_by_name(self, name: str) -> Optional[ModelEndpoint]:
        """Find an endpoint by its unique name."""
        return await self._uow.scalar(
            select(ModelEndpoint).where(ModelEndpoint.name == name)
        )


class PredictionRepository(BaseRepository[Prediction]):
    """Data access for recorded predictions."""

    model = Prediction

    async def summarize_for_owner(self, owner_id: str) -> List[Dict[str, Any]]:
        """
        Aggregate an owner's predictions per model.

        Returns:
            One dict per model: model_id, model_name, total, failed,
            mean_latency_ms
        """
        failed = func.sum(
            case((Prediction.status == PredictionStatus.FAILED, 1), else_=0)
        )
        query = (
            select(
                Prediction.model_id,
                ModelEndpoint.name,
                func.count(Prediction.id),
                failed,
                func.avg(Prediction.latency_ms),
            )
            .join(ModelEndpoint, ModelEndpoint.id == Prediction.model_id)
            .where(Prediction.owner_id == owner_id)
            .group_by(Prediction.model_id, ModelEndpoint.name)
            .order_by(ModelEndpoint.name)
        )
        result = await self._uow.execute(query)
        return [
            {
                "model_id": model_id,
                "model_name": name,
                "total": int(total),
                "failed": int(failed_count or 0),
                "mean_latency_ms": float(mean_latency or 0.0),
            }
            for model_id, name, total, failed_count, mean_latency in result.all()
        ]
