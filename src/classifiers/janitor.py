"""
Classifier Janitor - retention policy for classifier generations.

Keeps the newest Available generation and the newest non-Available one
(Training, Failed, ...). Everything else under the logical name is deleted,
so at most two generations survive a pass.

Deletion is best-effort: each delete is independent, a failure is logged
and collected, and the pass only fails when every deletion failed.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from src.classifiers.exceptions import ClassifierCleanupError
from src.classifiers.models import Classifier
from src.classifiers.selector import ClassifierSelector, bounded_call, sort_newest_first
from src.core.logging import get_logger

if TYPE_CHECKING:
    from src.clients.nlc_client import ClassifierServiceClientProtocol

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class CleanupResult:
    """Outcome of a cleanup pass.

    Attributes:
        deleted_ids: Generations actually removed
        failed_ids: Generations whose deletion failed
    """

    deleted_ids: tuple[str, ...] = field(default_factory=tuple)
    failed_ids: tuple[str, ...] = field(default_factory=tuple)

    @property
    def deleted_count(self) -> int:
        return len(self.deleted_ids)


def partition_for_cleanup(generations: list[Classifier]) -> list[Classifier]:
    """Pick the generations the retention policy does not keep.

    Args:
        generations: All generations of one name, with status

    Returns:
        Generations to delete, Available bucket first, each newest first
    """
    available = sort_newest_first([c for c in generations if c.is_available])
    other = sort_newest_first([c for c in generations if not c.is_available])
    return available[1:] + other[1:]


class ClassifierJanitor:
    """Deletes superseded generations of one logical name."""

    def __init__(
        self,
        client: ClassifierServiceClientProtocol,
        selector: ClassifierSelector,
        call_timeout: float | None = None,
    ) -> None:
        """Initialize the janitor.

        Args:
            client: Classifier service client
            selector: Selector for the same name (provides the status fan-out)
            call_timeout: Upper bound in seconds for each delete call
        """
        self._client = client
        self._selector = selector
        self._call_timeout = call_timeout

    @property
    def name(self) -> str:
        return self._selector.name

    async def cleanup(self, generations: list[Classifier] | None = None) -> CleanupResult:
        """Delete everything but the newest Available and newest other generation.

        Args:
            generations: Pre-fetched generations; fetched when omitted

        Returns:
            CleanupResult with the number of removed generations

        Raises:
            ClassifierServiceError: The list/status fan-out failed
            ClassifierCleanupError: Every deletion failed
        """
        if generations is None:
            generations = await self._selector.fetch_generations()

        doomed = partition_for_cleanup(generations)
        if not doomed:
            logger.info("cleanup_nothing_to_delete", name=self.name)
            return CleanupResult()

        logger.info(
            "cleanup_started",
            name=self.name,
            to_delete=[c.classifier_id for c in doomed],
        )

        results = await asyncio.gather(
            *(
                bounded_call(
                    self._client.delete_classifier(c.classifier_id),
                    self._call_timeout,
                    "delete",
                )
                for c in doomed
            ),
            return_exceptions=True,
        )

        deleted: list[str] = []
        failed: list[str] = []
        for classifier, result in zip(doomed, results):
            if isinstance(result, BaseException):
                failed.append(classifier.classifier_id)
                logger.error(
                    "cleanup_delete_failed",
                    name=self.name,
                    classifier_id=classifier.classifier_id,
                    error=str(result),
                )
            else:
                deleted.append(classifier.classifier_id)
                logger.info(
                    "cleanup_deleted",
                    name=self.name,
                    classifier_id=classifier.classifier_id,
                )

        if len(failed) == len(doomed):
            msg = f"Failed to delete any of {len(doomed)} old classifiers under [{self.name}]"
            raise ClassifierCleanupError(msg, failed_ids=tuple(failed))

        return CleanupResult(
            deleted_ids=tuple(deleted),
            failed_ids=tuple(failed),
        )
