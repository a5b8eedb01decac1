"""
Classifier Selector - resolves which generation is "current".

Selection rules (first match wins):
1. Cached Available generation -> returned without any remote call
2. list() filtered by exact name; empty -> NoClassifiersFoundError
3. status() for every generation concurrently; any failure fails the pass
4. Sorted by created, newest first (stable for ties)
5. Newest Available -> cached as selected
6. Else newest Training -> cached as training fallback
7. Else NoneAvailableError

Pattern: all-or-nothing fan-out. A partial picture could resurrect a
since-deleted generation, so one failed or timed-out status call fails the
whole pass and clears the cache.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from dataclasses import replace
from typing import TYPE_CHECKING, TypeVar

from src.classifiers.cache import ClassifierCache
from src.classifiers.exceptions import (
    NoClassifiersFoundError,
    NoneAvailableError,
    TransientServiceError,
)
from src.classifiers.models import Classifier
from src.core.logging import get_logger

if TYPE_CHECKING:
    from src.clients.nlc_client import ClassifierServiceClientProtocol

logger = get_logger(__name__)

T = TypeVar("T")


async def bounded_call(
    call: Awaitable[T],
    timeout: float | None,
    operation: str,
) -> T:
    """Await a remote call with an upper time bound.

    Args:
        call: The pending remote call
        timeout: Seconds to wait, None for no bound
        operation: Name used in the error message

    Raises:
        TransientServiceError: If the call did not finish in time
    """
    if timeout is None:
        return await call
    try:
        return await asyncio.wait_for(call, timeout)
    except asyncio.TimeoutError as e:
        msg = f"Classifier service {operation} timed out after {timeout}s"
        raise TransientServiceError(msg) from e


def sort_newest_first(classifiers: list[Classifier]) -> list[Classifier]:
    """Sort by created descending; equal timestamps keep their list order."""
    return sorted(classifiers, key=lambda c: c.created, reverse=True)


class ClassifierSelector:
    """Selects the generation used for live classification.

    Usage:
        selector = ClassifierSelector(client, ClassifierCache(name))
        classifier = await selector.select_current()
    """

    __slots__ = ("_client", "_cache", "_call_timeout")

    def __init__(
        self,
        client: ClassifierServiceClientProtocol,
        cache: ClassifierCache,
        call_timeout: float | None = None,
    ) -> None:
        """Initialize the selector.

        Args:
            client: Classifier service client
            cache: Cache for the logical name this selector resolves
            call_timeout: Upper bound in seconds for each remote call
        """
        self._client = client
        self._cache = cache
        self._call_timeout = call_timeout

    @property
    def name(self) -> str:
        return self._cache.name

    async def fetch_generations(self) -> list[Classifier]:
        """List all generations of the logical name with their status.

        Returns:
            Generations sorted newest first; empty if none exist

        Raises:
            ClassifierServiceError: If list() or any status() call fails
        """
        summaries = await bounded_call(
            self._client.list_classifiers(), self._call_timeout, "list"
        )
        matching = [c for c in summaries if c.name == self.name]
        if not matching:
            return []

        detailed = await asyncio.gather(
            *(
                bounded_call(
                    self._client.get_status(c.classifier_id),
                    self._call_timeout,
                    "status",
                )
                for c in matching
            )
        )

        # Status payloads may omit the name; the list entry is authoritative.
        generations = sort_newest_first(
            [
                detail if detail.name == summary.name else replace(detail, name=summary.name)
                for summary, detail in zip(matching, detailed)
            ]
        )
        logger.debug(
            "classifier_generations_fetched",
            name=self.name,
            generations=[
                {"id": c.classifier_id, "status": c.status, "created": c.created.isoformat()}
                for c in generations
            ],
        )
        return generations

    async def select_current(self) -> Classifier:
        """Resolve the current generation, cache first.

        Returns:
            Newest Available generation, or newest Training one as fallback

        Raises:
            NoClassifiersFoundError: No generation exists under the name
            NoneAvailableError: Generations exist but none is usable
            ClassifierServiceError: A remote call failed (cache is cleared)
        """
        cached = self._cache.selected
        if cached is not None:
            return cached

        try:
            generations = await self.fetch_generations()
        except Exception:
            self._cache.invalidate()
            logger.error("classifier_selection_failed", name=self.name)
            raise

        if not generations:
            self._cache.invalidate()
            raise NoClassifiersFoundError(self.name)

        return self._pick(generations)

    def _pick(self, generations: list[Classifier]) -> Classifier:
        """Apply the availability/recency rules to sorted generations."""
        for classifier in generations:
            if classifier.is_available:
                self._cache.store_selected(classifier)
                logger.info(
                    "classifier_selected",
                    name=self.name,
                    classifier_id=classifier.classifier_id,
                )
                return classifier

        for classifier in generations:
            if classifier.is_training:
                self._cache.store_training(classifier)
                logger.info(
                    "classifier_training_fallback",
                    name=self.name,
                    classifier_id=classifier.classifier_id,
                    training_minutes=classifier.training_duration_minutes(),
                )
                return classifier

        self._cache.invalidate()
        logger.error("no_classifier_available", name=self.name)
        raise NoneAvailableError(self.name)
