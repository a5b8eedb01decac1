"""
Classification and lifecycle API endpoint tests.

The coordinator dependency is overridden with a ClassifierCoordinator wired
to FakeClassifierServiceClient, so no network connection is made.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import timedelta

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.api.classifiers import classifiers_router
from src.api.classify import classify_router
from src.api.dependencies import get_coordinator, get_records_provider
from src.classifiers.coordinator import ClassifierCoordinator, CoordinatorConfig
from src.classifiers.exceptions import ClassifierForbiddenError
from src.classifiers.models import (
    ClassificationResult,
    ClassifierStatus,
    ClassMatch,
    TrainingRecord,
)
from src.clients.nlc_client import FakeClassifierServiceClient

# =============================================================================
# Constants
# =============================================================================

CLASSIFIER_NAME = "cloudbot-obj-storage-classifier"
CLASSIFY_ENDPOINT = "/v1/classify"
SEARCH_ENDPOINT = "/v1/search"
CURRENT_ENDPOINT = "/v1/classifiers/current"
TRAIN_ENDPOINT = "/v1/classifiers/train"
CLEANUP_ENDPOINT = "/v1/classifiers/cleanup"

PHRASE = "sunset at the beach"

HTTP_200_OK = 200
HTTP_404_NOT_FOUND = 404
HTTP_422_UNPROCESSABLE_CONTENT = 422
HTTP_502_BAD_GATEWAY = 502
HTTP_503_SERVICE_UNAVAILABLE = 503


# =============================================================================
# Test Fixtures
# =============================================================================


@pytest.fixture
def fake_client(now) -> FakeClassifierServiceClient:
    return FakeClassifierServiceClient(now=now)


@pytest.fixture
def coordinator(fake_client, clock) -> ClassifierCoordinator:
    return ClassifierCoordinator(
        fake_client,
        CoordinatorConfig(classifier_name=CLASSIFIER_NAME, result_limit=2),
        clock=clock,
    )


@pytest.fixture
def training_records() -> list[TrainingRecord]:
    return [TrainingRecord(text=f"phrase {i}", classes=("/photos/a.jpg",)) for i in range(6)]


@pytest.fixture
def app(coordinator, training_records) -> FastAPI:
    app = FastAPI()
    app.include_router(classify_router)
    app.include_router(classifiers_router)

    async def provide() -> Sequence[TrainingRecord]:
        return training_records

    app.dependency_overrides[get_coordinator] = lambda: coordinator
    app.dependency_overrides[get_records_provider] = lambda: provide
    return app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


def add_available(fake_client: FakeClassifierServiceClient, make_classifier) -> None:
    fake_client.add(make_classifier("A", ClassifierStatus.AVAILABLE, age=timedelta(days=2)))
    fake_client.set_classify_result(
        "A",
        ClassificationResult(
            classifier_id="A",
            text=PHRASE,
            top_class="/photos/beach.jpg",
            classes=(
                ClassMatch("/photos/beach.jpg", 0.8),
                ClassMatch("/photos/dunes.jpg", 0.15),
                ClassMatch("/photos/lake.jpg", 0.05),
            ),
        ),
    )


# =============================================================================
# POST /v1/classify
# =============================================================================


class TestClassifyEndpoint:
    def test_classify(self, client, fake_client, make_classifier) -> None:
        add_available(fake_client, make_classifier)

        response = client.post(CLASSIFY_ENDPOINT, json={"text": PHRASE})

        assert response.status_code == HTTP_200_OK
        data = response.json()
        assert data["classifier_id"] == "A"
        assert data["top_class"] == "/photos/beach.jpg"
        assert len(data["classes"]) == 3

    @pytest.mark.parametrize("text", ["", "   "])
    def test_blank_text_rejected(self, client, text: str) -> None:
        response = client.post(CLASSIFY_ENDPOINT, json={"text": text})
        assert response.status_code == HTTP_422_UNPROCESSABLE_CONTENT

    def test_no_classifiers(self, client) -> None:
        response = client.post(CLASSIFY_ENDPOINT, json={"text": PHRASE})

        assert response.status_code == HTTP_404_NOT_FOUND
        assert CLASSIFIER_NAME in response.json()["detail"]

    def test_training_only(self, client, fake_client, make_classifier) -> None:
        fake_client.add(make_classifier("T", ClassifierStatus.TRAINING, age=timedelta(minutes=5)))

        response = client.post(CLASSIFY_ENDPOINT, json={"text": PHRASE})

        assert response.status_code == HTTP_503_SERVICE_UNAVAILABLE


# =============================================================================
# POST /v1/search
# =============================================================================


class TestSearchEndpoint:
    def test_search_limits_results(self, client, fake_client, make_classifier) -> None:
        add_available(fake_client, make_classifier)

        response = client.post(SEARCH_ENDPOINT, json={"phrase": PHRASE})

        assert response.status_code == HTTP_200_OK
        data = response.json()
        assert data["phrase"] == PHRASE
        assert [m["object_name"] for m in data["matches"]] == ["beach.jpg", "dunes.jpg"]
        assert data["matches"][0]["container_name"] == "photos"

    def test_missing_phrase(self, client) -> None:
        response = client.post(SEARCH_ENDPOINT, json={})
        assert response.status_code == HTTP_422_UNPROCESSABLE_CONTENT


# =============================================================================
# Lifecycle endpoints
# =============================================================================


class TestLifecycleEndpoints:
    def test_current(self, client, fake_client, make_classifier) -> None:
        add_available(fake_client, make_classifier)

        response = client.get(CURRENT_ENDPOINT)

        assert response.status_code == HTTP_200_OK
        data = response.json()
        assert data["classifier_id"] == "A"
        assert data["status"] == "Available"
        assert data["training_minutes"] is None

    def test_train_first_generation(self, client, fake_client) -> None:
        response = client.post(TRAIN_ENDPOINT, json={})

        assert response.status_code == HTTP_200_OK
        data = response.json()
        assert data["should_train"] is True
        assert data["training"] is True
        assert data["classifier_id"] == "fake-classifier-1"
        assert data["record_count"] == 6
        assert len(fake_client.created) == 1

    def test_train_skipped_while_training(self, client, fake_client, make_classifier) -> None:
        fake_client.add(make_classifier("T", ClassifierStatus.TRAINING, age=timedelta(hours=3)))

        response = client.post(TRAIN_ENDPOINT, json={"force": False})

        assert response.json()["training"] is False
        assert fake_client.created == []

    def test_train_insufficient_data(self, app, client, fake_client) -> None:
        async def provide_few() -> Sequence[TrainingRecord]:
            return [TrainingRecord(text="one", classes=("/photos/a.jpg",))]

        app.dependency_overrides[get_records_provider] = lambda: provide_few

        response = client.post(TRAIN_ENDPOINT, json={"force": True})

        assert response.status_code == HTTP_422_UNPROCESSABLE_CONTENT
        assert fake_client.created == []

    def test_cleanup(self, client, fake_client, make_classifier) -> None:
        fake_client.add(make_classifier("new", ClassifierStatus.AVAILABLE, age=timedelta(days=1)))
        fake_client.add(make_classifier("old", ClassifierStatus.AVAILABLE, age=timedelta(days=2)))

        response = client.post(CLEANUP_ENDPOINT)

        assert response.status_code == HTTP_200_OK
        assert response.json() == {"deleted_count": 1, "deleted_ids": ["old"], "failed_ids": []}

    def test_cleanup_all_failed(self, client, fake_client, make_classifier) -> None:
        fake_client.add(make_classifier("new", ClassifierStatus.AVAILABLE, age=timedelta(days=1)))
        fake_client.add(make_classifier("old", ClassifierStatus.AVAILABLE, age=timedelta(days=2)))
        fake_client.delete_errors["old"] = ClassifierForbiddenError("forbidden", status_code=403)

        response = client.post(CLEANUP_ENDPOINT)

        assert response.status_code == HTTP_502_BAD_GATEWAY


# =============================================================================
# Unconfigured dependencies
# =============================================================================


class TestUnconfigured:
    def test_no_coordinator(self) -> None:
        app = FastAPI()
        app.include_router(classify_router)
        app.include_router(classifiers_router)
        client = TestClient(app)

        assert client.post(CLASSIFY_ENDPOINT, json={"text": PHRASE}).status_code == 503
        assert client.post(TRAIN_ENDPOINT, json={}).status_code == 503
