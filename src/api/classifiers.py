"""
Classifier Lifecycle API Endpoints

GET  /v1/classifiers/current - Generation currently used for classification
POST /v1/classifiers/train   - Train a new generation when the rules allow
POST /v1/classifiers/cleanup - Delete superseded generations

These endpoints are the external trigger for training and cleanup; the
coordinator itself runs no background timer.
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from src.api.dependencies import get_coordinator, get_records_provider, http_error
from src.classifiers.coordinator import ClassifierCoordinatorProtocol, RecordsProvider
from src.core.exceptions import ClassifierCoordinatorError

API_PREFIX = "/v1/classifiers"
LIFECYCLE_TAG = "classifiers"


# =============================================================================
# Request/Response Models (Pydantic)
# =============================================================================


class ClassifierResponse(BaseModel):
    classifier_id: str
    name: str
    created: str
    status: str | None
    url: str = ""
    language: str = "en"
    status_description: str = ""
    training_minutes: int | None = None


class TrainRequest(BaseModel):
    force: bool = Field(default=False, description="Skip training checks and train")


class TrainResponse(BaseModel):
    should_train: bool
    reason: str
    training: bool
    classifier_id: str | None = None
    record_count: int = 0
    truncated_from: int | None = None


class CleanupResponse(BaseModel):
    deleted_count: int
    deleted_ids: list[str]
    failed_ids: list[str]


# =============================================================================
# Router Definition
# =============================================================================


classifiers_router = APIRouter(prefix=API_PREFIX, tags=[LIFECYCLE_TAG])


@classifiers_router.get("/current", response_model=ClassifierResponse)
async def current_classifier(
    coordinator: Annotated[ClassifierCoordinatorProtocol, Depends(get_coordinator)],
) -> ClassifierResponse:
    """Resolve the current generation (cache first)."""
    try:
        classifier = await coordinator.current_classifier()
    except ClassifierCoordinatorError as e:
        raise http_error(e) from e

    data: dict[str, Any] = classifier.to_dict()
    return ClassifierResponse(
        **data, training_minutes=classifier.training_duration_minutes()
    )


@classifiers_router.post("/train", response_model=TrainResponse)
async def train_classifier(
    request: TrainRequest,
    coordinator: Annotated[ClassifierCoordinatorProtocol, Depends(get_coordinator)],
    records_provider: Annotated[RecordsProvider, Depends(get_records_provider)],
) -> TrainResponse:
    """Start a new generation if needed.

    Requests made through the API always count as data-ready.
    """
    try:
        outcome = await coordinator.ensure_trained(records_provider, force=request.force)
    except ClassifierCoordinatorError as e:
        raise http_error(e) from e

    return TrainResponse(
        should_train=outcome.should_train,
        reason=outcome.reason,
        training=outcome.training_started,
        classifier_id=outcome.classifier.classifier_id if outcome.classifier else None,
        record_count=outcome.record_count,
        truncated_from=outcome.truncated_from,
    )


@classifiers_router.post("/cleanup", response_model=CleanupResponse)
async def cleanup_classifiers(
    coordinator: Annotated[ClassifierCoordinatorProtocol, Depends(get_coordinator)],
) -> CleanupResponse:
    """Delete all but the newest Available and newest other generation."""
    try:
        result = await coordinator.cleanup()
    except ClassifierCoordinatorError as e:
        raise http_error(e) from e

    return CleanupResponse(
        deleted_count=result.deleted_count,
        deleted_ids=list(result.deleted_ids),
        failed_ids=list(result.failed_ids),
    )
