"""
Cloudbot Classifier Coordinator - Health API Routes

GET /health - liveness, always 200 while the process serves requests
GET /ready  - 200 once a classifier service client is wired up, else 503.
              Also reports the document source (needed only for training)
              and whatever generation the coordinator has cached. The
              probe never calls the remote classifier service.
"""

from typing import Any

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from src.core.logging import SERVICE_NAME, get_logger

router = APIRouter(tags=["health"])

logger = get_logger(__name__)


class HealthResponse(BaseModel):
    status: str
    version: str
    service: str


class CachedClassifierInfo(BaseModel):
    selected_id: str | None = None
    selected_status: str | None = None
    training_id: str | None = None


class ReadinessResponse(BaseModel):
    status: str
    checks: dict[str, bool]
    classifier: CachedClassifierInfo | None = None


class HealthService:
    """Readiness flags flipped by the lifespan handler as clients come up."""

    def __init__(self, version: str = "0.1.0"):
        self._version = version
        self._flags = {
            "classifier_service_configured": False,
            "document_source_configured": False,
        }

    def set_classifier_service_configured(self, configured: bool) -> None:
        self._flags["classifier_service_configured"] = configured

    def set_document_source_configured(self, configured: bool) -> None:
        self._flags["document_source_configured"] = configured

    def check_health(self) -> dict[str, Any]:
        return {"status": "healthy", "version": self._version, "service": SERVICE_NAME}

    def check_readiness(self) -> tuple[dict[str, Any], bool]:
        """Returns (payload, ready). Only the classifier service gates readiness."""
        ready = self._flags["classifier_service_configured"]
        payload: dict[str, Any] = {
            "status": "ready" if ready else "not_ready",
            "checks": dict(self._flags),
        }
        return payload, ready


_health_service = HealthService()


def get_health_service() -> HealthService:
    return _health_service


def describe_cached_classifier(coordinator: Any) -> CachedClassifierInfo | None:
    """Summarize the coordinator's cache, or None when there is no coordinator."""
    if coordinator is None:
        return None
    selected = coordinator.cached_classifier()
    training = coordinator.current_training()
    return CachedClassifierInfo(
        selected_id=selected.classifier_id if selected else None,
        selected_status=selected.status.value if selected and selected.status else None,
        training_id=training.classifier_id if training else None,
    )


@router.get("/health", response_model=HealthResponse, summary="Liveness probe")
async def health_check() -> HealthResponse:
    data = get_health_service().check_health()
    logger.debug("health_check", status=data["status"])
    return HealthResponse(**data)


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    responses={
        200: {"description": "Classifier service client configured"},
        503: {"description": "Classifier service is not configured"},
    },
    summary="Readiness probe",
)
async def readiness_check(request: Request) -> JSONResponse:
    data, ready = get_health_service().check_readiness()

    info = describe_cached_classifier(getattr(request.app.state, "coordinator", None))
    if info is not None:
        data["classifier"] = info.model_dump()

    logger.debug("readiness_check", status=data["status"], ready=ready)
    return JSONResponse(
        content=data,
        status_code=status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE,
    )
