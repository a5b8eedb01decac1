"""
Shared API dependencies and error translation.

Patterns Applied:
- Dependency injection via Depends(); tests override get_coordinator and
  get_records_provider with fakes
- One place mapping coordinator errors to HTTP status codes
"""

from __future__ import annotations

from collections.abc import Sequence

from fastapi import HTTPException, Request, status

from src.classifiers.coordinator import ClassifierCoordinatorProtocol, RecordsProvider
from src.classifiers.exceptions import (
    ClassifierCleanupError,
    ClassifierNotAvailableError,
    ClassifierNotFoundError,
    InsufficientDataError,
    NoClassifiersFoundError,
    NoneAvailableError,
    QuotaExceededError,
    TrainingDataValidationError,
    TransientServiceError,
)
from src.classifiers.models import TrainingRecord
from src.classifiers.training_data import TrainingDataBuilder
from src.core.exceptions import ClassifierCoordinatorError, ConfigurationError
from src.core.logging import get_logger

logger = get_logger(__name__)

ERROR_NOT_CONFIGURED = "Classifier service is not configured"
ERROR_NO_DOCUMENT_SOURCE = "Training document source is not configured"

# Order matters: subclasses before their bases
STATUS_BY_ERROR: tuple[tuple[type[Exception], int], ...] = (
    (NoClassifiersFoundError, status.HTTP_404_NOT_FOUND),
    (NoneAvailableError, status.HTTP_404_NOT_FOUND),
    (ClassifierNotFoundError, status.HTTP_404_NOT_FOUND),
    (ClassifierNotAvailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (InsufficientDataError, status.HTTP_422_UNPROCESSABLE_CONTENT),
    (TrainingDataValidationError, status.HTTP_422_UNPROCESSABLE_CONTENT),
    (QuotaExceededError, status.HTTP_429_TOO_MANY_REQUESTS),
    (TransientServiceError, status.HTTP_502_BAD_GATEWAY),
    (ClassifierCleanupError, status.HTTP_502_BAD_GATEWAY),
    (ConfigurationError, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def http_error(error: ClassifierCoordinatorError) -> HTTPException:
    """Translate a coordinator error into an HTTPException."""
    code = status.HTTP_502_BAD_GATEWAY
    for error_type, mapped in STATUS_BY_ERROR:
        if isinstance(error, error_type):
            code = mapped
            break
    logger.warning("request_failed", error=error.message, status_code=code)
    return HTTPException(status_code=code, detail=error.message)


def get_coordinator(request: Request) -> ClassifierCoordinatorProtocol:
    """Dependency provider for the coordinator created in the lifespan."""
    coordinator: ClassifierCoordinatorProtocol | None = getattr(
        request.app.state, "coordinator", None
    )
    if coordinator is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=ERROR_NOT_CONFIGURED,
        )
    return coordinator


def get_records_provider(request: Request) -> RecordsProvider:
    """Dependency provider gathering training records from the document source."""
    source = getattr(request.app.state, "document_source", None)
    builder: TrainingDataBuilder | None = getattr(request.app.state, "training_builder", None)
    if source is None or builder is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=ERROR_NO_DOCUMENT_SOURCE,
        )
    limit = builder.limits.max_classes * 2

    async def provide() -> Sequence[TrainingRecord]:
        documents = await source.fetch_documents(limit=limit)
        return builder.build(documents)

    return provide
