"""
Natural Language Classifier Service Client

HTTP client for the remote natural language classifier (NLC v1) service:
list / status / create / delete / classify.

Patterns Applied:
- Connection pooling (single httpx.AsyncClient per client instance)
- Custom namespaced exceptions mapped from HTTP status codes
- Protocol for duck typing so the coordinator can run against
  FakeClassifierServiceClient in tests

The client never retries: retry policy belongs to the caller, and the
coordinator self-heals through cache invalidation instead.
"""

from __future__ import annotations

import asyncio
import csv
import io
import json
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Final, Protocol, runtime_checkable

import httpx

from src.classifiers.exceptions import (
    ClassifierForbiddenError,
    ClassifierNotAvailableError,
    ClassifierNotFoundError,
    ClassifierServiceError,
    QuotaExceededError,
    TrainingDataValidationError,
    TransientServiceError,
)
from src.classifiers.models import (
    ClassificationResult,
    Classifier,
    ClassifierStatus,
    ClassMatch,
    TrainingRecord,
)

# =============================================================================
# Module Constants
# =============================================================================

DEFAULT_TIMEOUT: Final[float] = 30.0
DEFAULT_LANGUAGE: Final[str] = "en"

ENDPOINT_CLASSIFIERS: Final[str] = "/v1/classifiers"

# Status codes with a dedicated meaning for this service
HTTP_FORBIDDEN: Final[int] = 403
HTTP_NOT_FOUND: Final[int] = 404
HTTP_CONFLICT: Final[int] = 409
HTTP_PAYLOAD_TOO_LARGE: Final[int] = 413
HTTP_TOO_MANY_REQUESTS: Final[int] = 429
QUOTA_STATUS_CODES: Final[frozenset[int]] = frozenset(
    {HTTP_CONFLICT, HTTP_PAYLOAD_TOO_LARGE, HTTP_TOO_MANY_REQUESTS}
)


# =============================================================================
# Payload helpers
# =============================================================================


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp from the service into an aware datetime."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_classifier(data: Mapping[str, Any]) -> Classifier:
    """Build a Classifier from a list entry or a status payload."""
    return Classifier(
        classifier_id=data["classifier_id"],
        name=data.get("name", ""),
        created=parse_timestamp(data["created"]),
        status=ClassifierStatus.parse(data.get("status")),
        url=data.get("url", ""),
        language=data.get("language", DEFAULT_LANGUAGE),
        status_description=data.get("status_description", ""),
    )


def parse_classification(data: Mapping[str, Any]) -> ClassificationResult:
    """Build a ClassificationResult from a classify payload."""
    classes = tuple(
        ClassMatch(
            class_name=item.get("class_name", ""),
            confidence=float(item.get("confidence", 0.0)),
        )
        for item in data.get("classes", [])
    )
    return ClassificationResult(
        classifier_id=data.get("classifier_id", ""),
        text=data.get("text", ""),
        top_class=data.get("top_class", classes[0].class_name if classes else ""),
        classes=classes,
    )


def training_data_csv(records: Iterable[TrainingRecord]) -> str:
    """Render training records in the service's CSV format: text,class[,class...]."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    for record in records:
        writer.writerow([record.text, *record.classes])
    return buffer.getvalue()


# =============================================================================
# Protocol for Duck Typing
# =============================================================================


@runtime_checkable
class ClassifierServiceClientProtocol(Protocol):
    """Operations the coordinator consumes from the classifier service."""

    async def list_classifiers(self) -> list[Classifier]:
        """List every classifier on the account (no status)."""
        ...

    async def get_status(self, classifier_id: str) -> Classifier:
        """Fetch one classifier including its status."""
        ...

    async def create_classifier(
        self,
        training_data: Sequence[TrainingRecord],
        name: str,
        language: str = DEFAULT_LANGUAGE,
    ) -> Classifier:
        """Start training a new generation."""
        ...

    async def delete_classifier(self, classifier_id: str) -> None:
        """Delete one generation."""
        ...

    async def classify(self, classifier_id: str, text: str) -> ClassificationResult:
        """Classify a phrase with a specific generation."""
        ...


# =============================================================================
# NLCClient Implementation
# =============================================================================


class NLCClient:
    """HTTP client for the natural language classifier service.

    Uses connection pooling and HTTP basic auth.

    Attributes:
        base_url: Service API root, e.g. https://.../natural-language-classifier/api
        timeout: Per-request timeout in seconds
    """

    def __init__(
        self,
        base_url: str,
        username: str,
        password: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the classifier service client.

        Args:
            base_url: Service API root
            username: Service username
            password: Service password
            timeout: Per-request timeout in seconds
            transport: Optional transport override (tests use httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

        # Connection pooling: single client instance
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            auth=httpx.BasicAuth(username, password),
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    async def __aenter__(self) -> NLCClient:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def list_classifiers(self) -> list[Classifier]:
        data = await self._request("GET", ENDPOINT_CLASSIFIERS, operation="list")
        return [parse_classifier(item) for item in data.get("classifiers", [])]

    async def get_status(self, classifier_id: str) -> Classifier:
        data = await self._request(
            "GET", f"{ENDPOINT_CLASSIFIERS}/{classifier_id}", operation="status"
        )
        return parse_classifier(data)

    async def create_classifier(
        self,
        training_data: Sequence[TrainingRecord],
        name: str,
        language: str = DEFAULT_LANGUAGE,
    ) -> Classifier:
        """Submit training data and start training a new generation.

        Args:
            training_data: Records to train with
            name: Logical classifier name
            language: Training language

        Returns:
            The new generation (normally in Training status)

        Raises:
            QuotaExceededError: Account cannot host another classifier
            TrainingDataValidationError: Service rejected the data
        """
        metadata = json.dumps({"language": language, "name": name})
        files = {
            "training_metadata": (
                "training_metadata.json",
                metadata.encode("utf-8"),
                "application/json",
            ),
            "training_data": (
                "training_data.csv",
                training_data_csv(training_data).encode("utf-8"),
                "text/csv",
            ),
        }
        data = await self._request(
            "POST", ENDPOINT_CLASSIFIERS, operation="create", files=files
        )
        return parse_classifier(data)

    async def delete_classifier(self, classifier_id: str) -> None:
        await self._request(
            "DELETE", f"{ENDPOINT_CLASSIFIERS}/{classifier_id}", operation="delete"
        )

    async def classify(self, classifier_id: str, text: str) -> ClassificationResult:
        data = await self._request(
            "POST",
            f"{ENDPOINT_CLASSIFIERS}/{classifier_id}/classify",
            operation="classify",
            json={"text": text},
        )
        return parse_classification(data)

    async def close(self) -> None:
        """Close the HTTP client connection pool."""
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        operation: str,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """Execute one request and map failures to namespaced errors.

        Args:
            method: HTTP method
            path: Path relative to base_url
            operation: Operation name used for error mapping and messages
            **kwargs: Forwarded to httpx.AsyncClient.request

        Returns:
            Decoded JSON body ({} for empty bodies)
        """
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            msg = f"Timeout calling classifier service ({operation} {path}): {e}"
            raise TransientServiceError(msg) from e
        except httpx.TransportError as e:
            msg = f"Failed to reach classifier service at {self.base_url}: {e}"
            raise TransientServiceError(msg) from e

        if response.status_code >= 400:
            raise self._map_error(operation, response)

        if not response.content:
            return {}
        result: dict[str, Any] = response.json()
        return result

    @staticmethod
    def _map_error(operation: str, response: httpx.Response) -> ClassifierServiceError:
        """Translate an error response into the matching exception.

        Extracted to keep _request simple.
        """
        code = response.status_code
        detail = _error_detail(response)
        msg = f"Classifier service {operation} failed ({code}): {detail}"

        if code >= 500:
            return TransientServiceError(msg, status_code=code)
        if code == HTTP_NOT_FOUND:
            return ClassifierNotFoundError(msg, status_code=code)
        if code == HTTP_FORBIDDEN:
            return ClassifierForbiddenError(msg, status_code=code)
        if operation == "classify" and code == HTTP_CONFLICT:
            return ClassifierNotAvailableError(msg, status_code=code)
        if operation == "create":
            if code in QUOTA_STATUS_CODES:
                return QuotaExceededError(msg, status_code=code)
            return TrainingDataValidationError(msg, status_code=code)
        return ClassifierServiceError(msg, status_code=code)


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict):
        return str(body.get("description") or body.get("error") or body)
    return str(body)


# =============================================================================
# FakeClassifierServiceClient for Testing
# =============================================================================


class FakeClassifierServiceClient:
    """In-memory classifier service for unit tests and local runs.

    Implements ClassifierServiceClientProtocol. Classifiers are returned by
    list_classifiers() in insertion order, which stands in for the service's
    unsorted list order.

    Usage:
        fake = FakeClassifierServiceClient([classifier_a, classifier_b])
        fake.status_errors["b"] = TransientServiceError("boom")
        await fake.get_status("b")  # raises
    """

    def __init__(
        self,
        classifiers: Iterable[Classifier] | None = None,
        classify_results: Mapping[str, ClassificationResult] | None = None,
        now: datetime | None = None,
    ) -> None:
        self._classifiers: dict[str, Classifier] = {
            c.classifier_id: c for c in classifiers or []
        }
        self._classify_results = dict(classify_results or {})
        self._now = now
        self._next_id = 0

        self.list_error: Exception | None = None
        self.create_error: Exception | None = None
        self.classify_error: Exception | None = None
        self.status_errors: dict[str, Exception] = {}
        self.delete_errors: dict[str, Exception] = {}

        self.list_calls = 0
        self.status_calls: list[str] = []
        self.created: list[tuple[str, list[TrainingRecord]]] = []
        self.deleted: list[str] = []
        self.classify_calls: list[tuple[str, str]] = []

    @property
    def classifiers(self) -> list[Classifier]:
        return list(self._classifiers.values())

    def add(self, classifier: Classifier) -> None:
        self._classifiers[classifier.classifier_id] = classifier

    def set_status(self, classifier_id: str, status: ClassifierStatus) -> None:
        self._classifiers[classifier_id] = replace(
            self._classifiers[classifier_id], status=status
        )

    def set_classify_result(self, classifier_id: str, result: ClassificationResult) -> None:
        self._classify_results[classifier_id] = result

    async def list_classifiers(self) -> list[Classifier]:
        await asyncio.sleep(0)
        self.list_calls += 1
        if self.list_error:
            raise self.list_error
        return [replace(c, status=None) for c in self._classifiers.values()]

    async def get_status(self, classifier_id: str) -> Classifier:
        await asyncio.sleep(0)
        self.status_calls.append(classifier_id)
        if classifier_id in self.status_errors:
            raise self.status_errors[classifier_id]
        if classifier_id not in self._classifiers:
            raise ClassifierNotFoundError(
                f"Classifier {classifier_id} not found", status_code=HTTP_NOT_FOUND
            )
        return self._classifiers[classifier_id]

    async def create_classifier(
        self,
        training_data: Sequence[TrainingRecord],
        name: str,
        language: str = DEFAULT_LANGUAGE,
    ) -> Classifier:
        await asyncio.sleep(0)
        if self.create_error:
            raise self.create_error
        self._next_id += 1
        classifier = Classifier(
            classifier_id=f"fake-classifier-{self._next_id}",
            name=name,
            created=self._now or datetime.now(timezone.utc),
            status=ClassifierStatus.TRAINING,
            language=language,
        )
        self._classifiers[classifier.classifier_id] = classifier
        self.created.append((name, list(training_data)))
        return classifier

    async def delete_classifier(self, classifier_id: str) -> None:
        await asyncio.sleep(0)
        if classifier_id in self.delete_errors:
            raise self.delete_errors[classifier_id]
        if self._classifiers.pop(classifier_id, None) is None:
            raise ClassifierNotFoundError(
                f"Classifier {classifier_id} not found", status_code=HTTP_NOT_FOUND
            )
        self.deleted.append(classifier_id)

    async def classify(self, classifier_id: str, text: str) -> ClassificationResult:
        await asyncio.sleep(0)
        self.classify_calls.append((classifier_id, text))
        if self.classify_error:
            raise self.classify_error
        classifier = self._classifiers.get(classifier_id)
        if classifier is None:
            raise ClassifierNotFoundError(
                f"Classifier {classifier_id} not found", status_code=HTTP_NOT_FOUND
            )
        if not classifier.is_available:
            raise ClassifierNotAvailableError(
                f"Classifier {classifier_id} is not available",
                status_code=HTTP_CONFLICT,
                classifier_id=classifier_id,
            )
        if classifier_id in self._classify_results:
            return self._classify_results[classifier_id]
        return ClassificationResult(classifier_id=classifier_id, text=text, top_class="")
