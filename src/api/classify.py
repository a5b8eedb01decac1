"""
Classification API Endpoints

POST /v1/classify - Classify a phrase with the current classifier generation
POST /v1/search   - Find stored objects matching a search phrase

Patterns Applied:
- FastAPI router
- Pydantic request/response models with full type annotations
- Dependency injection pattern with get_coordinator()
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, field_validator

from src.api.dependencies import get_coordinator, http_error
from src.classifiers.coordinator import ClassifierCoordinatorProtocol
from src.classifiers.models import ClassificationResult, ObjectMatch
from src.core.exceptions import ClassifierCoordinatorError

# =============================================================================
# Constants
# =============================================================================

API_PREFIX = "/v1"
CLASSIFY_TAG = "classify"
CLASSIFY_SUMMARY = "Classify a phrase with the current classifier"
SEARCH_SUMMARY = "Search stored objects by natural language phrase"

ERROR_TEXT_EMPTY = "Text cannot be empty or whitespace"

DESC_TEXT = "Natural language phrase to classify"
DESC_PHRASE = "Search phrase describing the stored object"


# =============================================================================
# Request/Response Models (Pydantic)
# =============================================================================


def _not_blank(value: str) -> str:
    if not value.strip():
        raise ValueError(ERROR_TEXT_EMPTY)
    return value


class ClassifyRequest(BaseModel):
    """Request body for phrase classification."""

    text: str = Field(
        ...,
        min_length=1,
        description=DESC_TEXT,
        examples=["sunset at the beach"],
    )

    @field_validator("text")
    @classmethod
    def validate_text_not_whitespace(cls, v: str) -> str:
        return _not_blank(v)


class ClassMatchResponse(BaseModel):
    class_name: str
    confidence: float = Field(ge=0.0, le=1.0)


class ClassifyResponse(BaseModel):
    """Response body for phrase classification."""

    classifier_id: str = Field(description="Generation that produced the result")
    text: str
    top_class: str
    classes: list[ClassMatchResponse]

    @classmethod
    def from_result(cls, result: ClassificationResult) -> ClassifyResponse:
        return cls(
            classifier_id=result.classifier_id,
            text=result.text,
            top_class=result.top_class,
            classes=[
                ClassMatchResponse(class_name=c.class_name, confidence=c.confidence)
                for c in result.classes
            ],
        )


class SearchRequest(BaseModel):
    """Request body for object search."""

    phrase: str = Field(..., min_length=1, description=DESC_PHRASE)

    @field_validator("phrase")
    @classmethod
    def validate_phrase_not_whitespace(cls, v: str) -> str:
        return _not_blank(v)


class ObjectMatchResponse(BaseModel):
    container_name: str
    object_name: str
    confidence: float = Field(ge=0.0, le=1.0)

    @classmethod
    def from_match(cls, match: ObjectMatch) -> ObjectMatchResponse:
        return cls(
            container_name=match.container_name,
            object_name=match.object_name,
            confidence=match.confidence,
        )


class SearchResponse(BaseModel):
    phrase: str
    matches: list[ObjectMatchResponse]


# =============================================================================
# Router Definition
# =============================================================================


classify_router = APIRouter(prefix=API_PREFIX, tags=[CLASSIFY_TAG])


@classify_router.post(
    "/classify",
    response_model=ClassifyResponse,
    summary=CLASSIFY_SUMMARY,
    responses={
        200: {"description": "Phrase classified"},
        404: {"description": "No classifier exists or none is usable"},
        503: {"description": "Classifier is still training"},
    },
)
async def classify_text(
    request: ClassifyRequest,
    coordinator: Annotated[ClassifierCoordinatorProtocol, Depends(get_coordinator)],
) -> ClassifyResponse:
    """Classify a phrase with the current generation."""
    try:
        result = await coordinator.classify(request.text)
    except ClassifierCoordinatorError as e:
        raise http_error(e) from e
    return ClassifyResponse.from_result(result)


@classify_router.post(
    "/search",
    response_model=SearchResponse,
    summary=SEARCH_SUMMARY,
    responses={
        200: {"description": "Matches found (possibly none)"},
        404: {"description": "No classifier exists or none is usable"},
        503: {"description": "Classifier is still training"},
    },
)
async def search_objects(
    request: SearchRequest,
    coordinator: Annotated[ClassifierCoordinatorProtocol, Depends(get_coordinator)],
) -> SearchResponse:
    """Return the stored objects whose class matches the phrase."""
    try:
        matches = await coordinator.search(request.phrase)
    except ClassifierCoordinatorError as e:
        raise http_error(e) from e
    return SearchResponse(
        phrase=request.phrase,
        matches=[ObjectMatchResponse.from_match(m) for m in matches],
    )
