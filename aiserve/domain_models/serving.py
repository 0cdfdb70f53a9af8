# ==============================================================================
# SERVING MODELS - Model Registry & Prediction Log
# ==============================================================================
# Served model endpoints and the predictions recorded against them
# ==============================================================================

from __future__ import annotations

from typing import List, Optional

from sqlalchemy import Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from aiserve.domain_models.base import SQLBase, TimestampMixin


class PredictionStatus:
    """Prediction status constants."""
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class ModelEndpoint(SQLBase, TimestampMixin):
    """
    A model made available for inference.

    Attributes:
        name: Unique endpoint name used by clients
        version: Model version label
        framework: Serving framework (e.g. pytorch, onnx, sklearn)
        description: Optional free text
        is_active: Whether new predictions may be recorded
        owner_id: Client that registered the endpoint

    Relationships:
        predictions: Predictions recorded for this endpoint
    """

    __tablename__ = "model_endpoints"

    name: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        nullable=False,
    )
    version: Mapped[str] = mapped_column(
        String(50),
        default="1",
        nullable=False,
    )
    framework: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )
    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    is_active: Mapped[bool] = mapped_column(
        default=True,
        nullable=False,
    )
    owner_id: Mapped[str] = mapped_column(
        String(100),
        index=True,
        nullable=False,
    )

    predictions: Mapped[List["Prediction"]] = relationship(
        "Prediction",
        back_populates="model",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<ModelEndpoint(id={self.id}, name={self.name}, version={self.version})>"


class Prediction(SQLBase, TimestampMixin):
    """
    One inference request and its result.

    Attributes:
        model_id: Endpoint that served the request
        owner_id: Client that submitted the request
        input_text: Model input
        output_text: Model output (None on failure)
        score: Optional confidence score
        latency_ms: Inference latency in milliseconds
        status: succeeded or failed
    """

    __tablename__ = "predictions"

    model_id: Mapped[str] = mapped_column(
        ForeignKey("model_endpoints.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    owner_id: Mapped[str] = mapped_column(
        String(100),
        index=True,
        nullable=False,
    )
    input_text: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    output_text: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    score: Mapped[Optional[float]] = mapped_column(
        Float,
        nullable=True,
    )
    latency_ms: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        default=PredictionStatus.SUCCEEDED,
        nullable=False,
    )

    model: Mapped["ModelEndpoint"] = relationship(
        "ModelEndpoint",
        back_populates="predictions",
    )

    def __repr__(self) -> str:
        return f"<Prediction(id={self.id}, model_id={self.model_id}, status={self.status})>"
