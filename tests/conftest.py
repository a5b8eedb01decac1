"""Shared fixtures: a fixed clock and a classifier generation factory."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone

import pytest

from src.classifiers.models import Classifier, ClassifierStatus

CLASSIFIER_NAME = "cloudbot-obj-storage-classifier"
NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

ClassifierFactory = Callable[..., Classifier]


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def clock() -> Callable[[], datetime]:
    return lambda: NOW


@pytest.fixture
def make_classifier() -> ClassifierFactory:
    """Build a generation created `age` before NOW."""

    def factory(
        classifier_id: str,
        status: ClassifierStatus | None = ClassifierStatus.AVAILABLE,
        age: timedelta = timedelta(days=1),
        name: str = CLASSIFIER_NAME,
    ) -> Classifier:
        return Classifier(
            classifier_id=classifier_id,
            name=name,
            created=NOW - age,
            status=status,
        )

    return factory
