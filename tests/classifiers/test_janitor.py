"""
Tests for ClassifierJanitor and the retention policy.

Keeps the newest Available and the newest non-Available generation.
Deletions are best-effort; only a pass where every delete fails raises.
"""

from __future__ import annotations

from datetime import timedelta

import pytest

from src.classifiers.cache import ClassifierCache
from src.classifiers.exceptions import (
    ClassifierCleanupError,
    ClassifierForbiddenError,
    TransientServiceError,
)
from src.classifiers.janitor import ClassifierJanitor, CleanupResult, partition_for_cleanup
from src.classifiers.models import Classifier, ClassifierStatus
from src.classifiers.selector import ClassifierSelector
from src.clients.nlc_client import FakeClassifierServiceClient

CLASSIFIER_NAME = "cloudbot-obj-storage-classifier"

AVAILABLE = ClassifierStatus.AVAILABLE
TRAINING = ClassifierStatus.TRAINING
FAILED = ClassifierStatus.FAILED


def make_janitor(
    classifiers: list[Classifier],
) -> tuple[ClassifierJanitor, FakeClassifierServiceClient]:
    client = FakeClassifierServiceClient(classifiers)
    selector = ClassifierSelector(client, ClassifierCache(CLASSIFIER_NAME))
    return ClassifierJanitor(client, selector), client


# =============================================================================
# Retention policy
# =============================================================================


class TestPartitionForCleanup:
    def test_keeps_newest_of_each_bucket(self, make_classifier) -> None:
        generations = [
            make_classifier("a1", AVAILABLE, age=timedelta(days=1)),
            make_classifier("a2", AVAILABLE, age=timedelta(days=2)),
            make_classifier("a3", AVAILABLE, age=timedelta(days=3)),
            make_classifier("t1", TRAINING, age=timedelta(hours=1)),
            make_classifier("f1", FAILED, age=timedelta(days=4)),
        ]

        doomed = partition_for_cleanup(generations)

        assert [c.classifier_id for c in doomed] == ["a2", "a3", "f1"]

    def test_single_bucket_keeps_one(self, make_classifier) -> None:
        generations = [
            make_classifier("f1", FAILED, age=timedelta(days=1)),
            make_classifier("t1", TRAINING, age=timedelta(days=2)),
            make_classifier("f2", FAILED, age=timedelta(days=3)),
        ]

        doomed = partition_for_cleanup(generations)

        assert len(doomed) == len(generations) - 1
        assert "f1" not in {c.classifier_id for c in doomed}

    def test_nothing_to_delete(self, make_classifier) -> None:
        generations = [make_classifier("a1", AVAILABLE), make_classifier("t1", TRAINING)]
        assert partition_for_cleanup(generations) == []

    def test_never_more_than_count_minus_two(self, make_classifier) -> None:
        generations = [
            make_classifier(f"a{i}", AVAILABLE, age=timedelta(days=i)) for i in range(1, 5)
        ] + [make_classifier(f"t{i}", TRAINING, age=timedelta(hours=i)) for i in range(1, 4)]

        assert len(partition_for_cleanup(generations)) == len(generations) - 2


# =============================================================================
# Cleanup pass
# =============================================================================


class TestCleanup:
    @pytest.mark.asyncio
    async def test_same_timestamp_deletes_second(self, make_classifier) -> None:
        janitor, client = make_janitor(
            [
                make_classifier("A", AVAILABLE, age=timedelta(days=3)),
                make_classifier("B", AVAILABLE, age=timedelta(days=3)),
                make_classifier("C", TRAINING, age=timedelta(days=1)),
            ]
        )

        result = await janitor.cleanup()

        assert result.deleted_count == 1
        assert client.deleted == ["B"]
        assert {c.classifier_id for c in client.classifiers} == {"A", "C"}

    @pytest.mark.asyncio
    async def test_second_pass_deletes_nothing(self, make_classifier) -> None:
        janitor, client = make_janitor(
            [
                make_classifier("a1", AVAILABLE, age=timedelta(days=1)),
                make_classifier("a2", AVAILABLE, age=timedelta(days=2)),
                make_classifier("f1", FAILED, age=timedelta(days=3)),
                make_classifier("f2", FAILED, age=timedelta(days=4)),
            ]
        )

        first = await janitor.cleanup()
        second = await janitor.cleanup()

        assert first.deleted_count == 2
        assert second == CleanupResult()

    @pytest.mark.asyncio
    async def test_other_names_untouched(self, make_classifier) -> None:
        janitor, client = make_janitor(
            [
                make_classifier("mine", AVAILABLE),
                make_classifier("theirs-1", AVAILABLE, name="other"),
                make_classifier("theirs-2", AVAILABLE, age=timedelta(days=5), name="other"),
            ]
        )

        result = await janitor.cleanup()

        assert result.deleted_count == 0
        assert client.deleted == []

    @pytest.mark.asyncio
    async def test_partial_failure_is_tolerated(self, make_classifier) -> None:
        janitor, client = make_janitor(
            [
                make_classifier("a1", AVAILABLE, age=timedelta(days=1)),
                make_classifier("a2", AVAILABLE, age=timedelta(days=2)),
                make_classifier("a3", AVAILABLE, age=timedelta(days=3)),
            ]
        )
        client.delete_errors["a2"] = ClassifierForbiddenError("forbidden", status_code=403)

        result = await janitor.cleanup()

        assert result.deleted_ids == ("a3",)
        assert result.failed_ids == ("a2",)

    @pytest.mark.asyncio
    async def test_all_deletes_failing_raises(self, make_classifier) -> None:
        janitor, client = make_janitor(
            [
                make_classifier("a1", AVAILABLE, age=timedelta(days=1)),
                make_classifier("a2", AVAILABLE, age=timedelta(days=2)),
            ]
        )
        client.delete_errors["a2"] = TransientServiceError("down")

        with pytest.raises(ClassifierCleanupError) as exc_info:
            await janitor.cleanup()
        assert exc_info.value.failed_ids == ("a2",)

    @pytest.mark.asyncio
    async def test_status_failure_aborts_before_deleting(self, make_classifier) -> None:
        janitor, client = make_janitor(
            [
                make_classifier("a1", AVAILABLE, age=timedelta(days=1)),
                make_classifier("a2", AVAILABLE, age=timedelta(days=2)),
            ]
        )
        client.status_errors["a1"] = TransientServiceError("status down")

        with pytest.raises(TransientServiceError):
            await janitor.cleanup()
        assert client.deleted == []

    @pytest.mark.asyncio
    async def test_uses_prefetched_generations(self, make_classifier) -> None:
        generations = [
            make_classifier("a1", AVAILABLE, age=timedelta(days=1)),
            make_classifier("a2", AVAILABLE, age=timedelta(days=2)),
        ]
        janitor, client = make_janitor(generations)

        result = await janitor.cleanup(generations)

        assert result.deleted_ids == ("a2",)
        assert client.list_calls == 0
