"""
Tests for NLCClient.

Requests go through httpx.MockTransport, so no connection is opened.

- Payload parsing (list, status, classify)
- Multipart create request (metadata JSON + CSV training data)
- Status code to exception mapping
- Transport failures and timeouts become TransientServiceError
"""

from __future__ import annotations

import base64
import json
from collections.abc import Callable
from datetime import datetime, timezone

import httpx
import pytest

from src.classifiers.exceptions import (
    ClassifierForbiddenError,
    ClassifierNotAvailableError,
    ClassifierNotFoundError,
    ClassifierServiceError,
    QuotaExceededError,
    TrainingDataValidationError,
    TransientServiceError,
)
from src.classifiers.models import ClassifierStatus, TrainingRecord
from src.clients.nlc_client import (
    ClassifierServiceClientProtocol,
    FakeClassifierServiceClient,
    NLCClient,
    parse_timestamp,
    training_data_csv,
)

BASE_URL = "https://nlc.example.com/natural-language-classifier/api"
USERNAME = "nlc-user"
PASSWORD = "nlc-pass"

CLASSIFIER_PAYLOAD = {
    "classifier_id": "10D41B-nlc-1",
    "name": "cloudbot-obj-storage-classifier",
    "language": "en",
    "created": "2024-05-01T10:00:00.000Z",
    "url": f"{BASE_URL}/v1/classifiers/10D41B-nlc-1",
}

Handler = Callable[[httpx.Request], httpx.Response]


def make_client(handler: Handler) -> NLCClient:
    return NLCClient(BASE_URL, USERNAME, PASSWORD, transport=httpx.MockTransport(handler))


def respond(status_code: int, payload: object | None = None) -> Handler:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, json=payload if payload is not None else {})

    return handler


# =============================================================================
# Payload helpers
# =============================================================================


class TestHelpers:
    def test_parse_timestamp_zulu(self) -> None:
        parsed = parse_timestamp("2024-05-01T10:00:00.000Z")
        assert parsed == datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)

    def test_parse_timestamp_naive_is_utc(self) -> None:
        assert parse_timestamp("2024-05-01T10:00:00").tzinfo is timezone.utc

    def test_training_data_csv_quotes(self) -> None:
        csv_text = training_data_csv(
            [
                TrainingRecord(text="sunset, beach", classes=("/photos/a.jpg",)),
                TrainingRecord(text="dog", classes=("/pets/b.jpg", "/pets/c.jpg")),
            ]
        )
        assert csv_text == '"sunset, beach",/photos/a.jpg\ndog,/pets/b.jpg,/pets/c.jpg\n'


# =============================================================================
# Successful calls
# =============================================================================


class TestRequests:
    def test_implements_protocol(self) -> None:
        assert isinstance(make_client(respond(200)), ClassifierServiceClientProtocol)
        assert isinstance(FakeClassifierServiceClient(), ClassifierServiceClientProtocol)

    @pytest.mark.asyncio
    async def test_list_classifiers(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"classifiers": [CLASSIFIER_PAYLOAD]})

        async with make_client(handler) as client:
            classifiers = await client.list_classifiers()

        assert seen[0].method == "GET"
        assert seen[0].url.path.endswith("/v1/classifiers")
        expected_auth = base64.b64encode(f"{USERNAME}:{PASSWORD}".encode()).decode()
        assert seen[0].headers["authorization"] == f"Basic {expected_auth}"
        assert classifiers[0].classifier_id == "10D41B-nlc-1"
        assert classifiers[0].status is None

    @pytest.mark.asyncio
    async def test_get_status(self) -> None:
        payload = {**CLASSIFIER_PAYLOAD, "status": "Training", "status_description": "busy"}

        async with make_client(respond(200, payload)) as client:
            classifier = await client.get_status("10D41B-nlc-1")

        assert classifier.status is ClassifierStatus.TRAINING
        assert classifier.status_description == "busy"
        assert classifier.created.tzinfo is not None

    @pytest.mark.asyncio
    async def test_create_sends_multipart(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={**CLASSIFIER_PAYLOAD, "status": "Training"})

        records = [TrainingRecord(text="sunset", classes=("/photos/a.jpg",))]
        async with make_client(handler) as client:
            classifier = await client.create_classifier(records, "cloudbot-obj-storage-classifier")

        request = seen[0]
        body = request.content.decode()
        assert request.method == "POST"
        assert request.headers["content-type"].startswith("multipart/form-data")
        assert 'name="training_metadata"' in body
        assert 'name="training_data"' in body
        assert json.dumps({"language": "en", "name": "cloudbot-obj-storage-classifier"}) in body
        assert "sunset,/photos/a.jpg" in body
        assert classifier.is_training

    @pytest.mark.asyncio
    async def test_classify(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={
                    "classifier_id": "10D41B-nlc-1",
                    "text": "beach",
                    "top_class": "/photos/a.jpg",
                    "classes": [
                        {"class_name": "/photos/a.jpg", "confidence": 0.8},
                        {"class_name": "/photos/b.jpg", "confidence": 0.2},
                    ],
                },
            )

        async with make_client(handler) as client:
            result = await client.classify("10D41B-nlc-1", "beach")

        assert seen[0].url.path.endswith("/v1/classifiers/10D41B-nlc-1/classify")
        assert json.loads(seen[0].content) == {"text": "beach"}
        assert result.top_class == "/photos/a.jpg"
        assert [c.confidence for c in result.classes] == [0.8, 0.2]

    @pytest.mark.asyncio
    async def test_delete_with_empty_body(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "DELETE"
            return httpx.Response(200)

        async with make_client(handler) as client:
            assert await client.delete_classifier("10D41B-nlc-1") is None


# =============================================================================
# Error mapping
# =============================================================================


class TestErrorMapping:
    @pytest.mark.asyncio
    async def test_not_found(self) -> None:
        async with make_client(respond(404, {"description": "not found"})) as client:
            with pytest.raises(ClassifierNotFoundError, match="not found") as exc_info:
                await client.get_status("missing")
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_forbidden_delete(self) -> None:
        async with make_client(respond(403)) as client:
            with pytest.raises(ClassifierForbiddenError):
                await client.delete_classifier("x")

    @pytest.mark.asyncio
    async def test_classify_conflict_is_not_available(self) -> None:
        async with make_client(respond(409, {"error": "still training"})) as client:
            with pytest.raises(ClassifierNotAvailableError, match="still training"):
                await client.classify("x", "beach")

    @pytest.mark.parametrize("status_code", [409, 413, 429])
    @pytest.mark.asyncio
    async def test_create_quota(self, status_code: int) -> None:
        async with make_client(respond(status_code)) as client:
            with pytest.raises(QuotaExceededError):
                await client.create_classifier([], "name")

    @pytest.mark.asyncio
    async def test_create_bad_data(self) -> None:
        async with make_client(respond(400, {"description": "bad csv"})) as client:
            with pytest.raises(TrainingDataValidationError, match="bad csv"):
                await client.create_classifier([], "name")

    @pytest.mark.asyncio
    async def test_server_error_is_transient(self) -> None:
        async with make_client(respond(503)) as client:
            with pytest.raises(TransientServiceError) as exc_info:
                await client.list_classifiers()
        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_other_client_error(self) -> None:
        async with make_client(respond(400)) as client:
            with pytest.raises(ClassifierServiceError) as exc_info:
                await client.list_classifiers()
        assert type(exc_info.value) is ClassifierServiceError

    @pytest.mark.asyncio
    async def test_connection_error_is_transient(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async with make_client(handler) as client:
            with pytest.raises(TransientServiceError, match="Failed to reach"):
                await client.list_classifiers()

    @pytest.mark.asyncio
    async def test_timeout_is_transient(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        async with make_client(handler) as client:
            with pytest.raises(TransientServiceError, match="Timeout"):
                await client.get_status("x")
