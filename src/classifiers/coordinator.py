"""
Classifier Lifecycle Coordinator.

One coordinator manages one logical classifier name. It wires the selector,
cache, scheduler and janitor around a single classifier service client and
exposes the operations callers use:

- classify(text)      -> ClassificationResult from the current generation
- search(phrase)      -> stored objects matched by the phrase
- ensure_trained(...) -> start a new generation when the rules allow
- cleanup()           -> delete superseded generations

Pattern: Facade with dependency injection. Configuration arrives as an
explicit CoordinatorConfig; there is no module-level client or settings
object, so several coordinators can live in one process.

The coordinator owns no timer. Periodic cleanup and training are driven by
the caller (API endpoint, batch trainer, cron).
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from src.classifiers.cache import ClassifierCache
from src.classifiers.exceptions import ClassifierNotAvailableError
from src.classifiers.janitor import ClassifierJanitor, CleanupResult
from src.classifiers.models import (
    ClassificationResult,
    Classifier,
    ObjectMatch,
    TrainingRecord,
    split_class_name,
)
from src.classifiers.scheduler import TrainingOutcome, TrainingScheduler
from src.classifiers.selector import ClassifierSelector, bounded_call
from src.core.config import DEFAULT_CLASSIFIER_NAME
from src.core.logging import get_logger
from src.core.tracing import get_tracer, record_classifier

if TYPE_CHECKING:
    from src.clients.nlc_client import ClassifierServiceClientProtocol

logger = get_logger(__name__)
tracer = get_tracer(__name__)

RecordsProvider = Callable[[], Awaitable[Sequence[TrainingRecord]]]


# =============================================================================
# Configuration
# =============================================================================


@dataclass(frozen=True, slots=True)
class CoordinatorConfig:
    """Settings for one coordinator.

    Attributes:
        classifier_name: Logical name shared by all generations
        training_frequency_ms: Minimum milliseconds between trainings
        confidence_min: Lowest confidence a search match may have
        result_limit: Most matches a search returns
        min_records: Fewest training records accepted
        max_records: Most training records submitted
        call_timeout: Seconds allowed for each remote call, None for no bound
    """

    classifier_name: str = DEFAULT_CLASSIFIER_NAME
    training_frequency_ms: int = 60 * 60 * 1000
    confidence_min: float = 0.0
    result_limit: int = 3
    min_records: int = 5
    max_records: int = 15000
    call_timeout: float | None = 30.0

    @property
    def training_frequency(self) -> timedelta:
        return timedelta(milliseconds=self.training_frequency_ms)


# =============================================================================
# Protocol Definition
# =============================================================================


@runtime_checkable
class ClassifierCoordinatorProtocol(Protocol):
    """Contract the API layer depends on."""

    @property
    def name(self) -> str:
        ...

    async def classify(self, text: str) -> ClassificationResult:
        ...

    async def search(self, phrase: str) -> list[ObjectMatch]:
        ...

    async def current_classifier(self) -> Classifier:
        ...

    async def ensure_trained(
        self,
        records_provider: RecordsProvider,
        force: bool = False,
        data_ready: bool = True,
    ) -> TrainingOutcome:
        ...

    async def cleanup(self) -> CleanupResult:
        ...


# =============================================================================
# Main Implementation
# =============================================================================


class ClassifierCoordinator:
    """Coordinates selection, training and cleanup for one logical name.

    Example:
        async with NLCClient(url, user, password) as client:
            coordinator = ClassifierCoordinator(client, CoordinatorConfig())
            result = await coordinator.classify("sunset at the beach")
    """

    def __init__(
        self,
        client: ClassifierServiceClientProtocol,
        config: CoordinatorConfig | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the coordinator and its components.

        Args:
            client: Classifier service client
            config: Coordinator configuration (defaults apply when omitted)
            clock: Returns the current aware datetime
        """
        self._config = config or CoordinatorConfig()
        self._client = client
        self._clock = clock or (lambda: datetime.now(timezone.utc))

        self._cache = ClassifierCache(self._config.classifier_name)
        self._selector = ClassifierSelector(
            client, self._cache, call_timeout=self._config.call_timeout
        )
        self._scheduler = TrainingScheduler(
            client,
            self._config.classifier_name,
            training_frequency=self._config.training_frequency,
            min_records=self._config.min_records,
            max_records=self._config.max_records,
            call_timeout=self._config.call_timeout,
            clock=self._clock,
        )
        self._janitor = ClassifierJanitor(
            client, self._selector, call_timeout=self._config.call_timeout
        )

    @property
    def name(self) -> str:
        return self._config.classifier_name

    @property
    def config(self) -> CoordinatorConfig:
        return self._config

    @property
    def cache(self) -> ClassifierCache:
        return self._cache

    @property
    def scheduler(self) -> TrainingScheduler:
        return self._scheduler

    def invalidate(self) -> None:
        """Drop the cached selection; the next call re-resolves remotely."""
        self._cache.invalidate()
        logger.info("classifier_cache_invalidated", name=self.name)

    def current_training(self) -> Classifier | None:
        """The cached training-in-progress generation, if any."""
        return self._cache.training

    def cached_classifier(self) -> Classifier | None:
        """The cached selection, without a remote call."""
        return self._cache.selected

    async def current_classifier(self) -> Classifier:
        """Resolve the current generation (cache first).

        Raises:
            NoClassifiersFoundError, NoneAvailableError, ClassifierServiceError
        """
        with tracer.start_as_current_span("classifier.select") as span:
            classifier = await self._selector.select_current()
            record_classifier(span, classifier)
            return classifier

    async def classify(self, text: str) -> ClassificationResult:
        """Classify a phrase with the current generation.

        Args:
            text: Natural language phrase

        Returns:
            ClassificationResult from the remote service

        Raises:
            ClassifierNotAvailableError: Only a Training generation exists
            NoClassifiersFoundError, NoneAvailableError: Nothing to select
            ClassifierServiceError: Remote failure (cache is cleared)
        """
        with tracer.start_as_current_span("classifier.classify") as span:
            classifier = await self._selector.select_current()
            record_classifier(span, classifier)

            if classifier.is_training:
                minutes = classifier.training_duration_minutes(self._clock())
                logger.info(
                    "classifier_not_ready",
                    name=self.name,
                    classifier_id=classifier.classifier_id,
                    training_minutes=minutes,
                )
                raise ClassifierNotAvailableError(
                    f"There is not an available classifier under [{self.name}] at this time",
                    classifier_id=classifier.classifier_id,
                    training_minutes=minutes,
                )

            try:
                result = await bounded_call(
                    self._client.classify(classifier.classifier_id, text),
                    self._config.call_timeout,
                    "classify",
                )
            except Exception:
                self._cache.invalidate()
                logger.error(
                    "classify_failed",
                    name=self.name,
                    classifier_id=classifier.classifier_id,
                )
                raise

            logger.debug(
                "classify_complete",
                classifier_id=classifier.classifier_id,
                top_class=result.top_class,
            )
            return result

    async def search(self, phrase: str) -> list[ObjectMatch]:
        """Find stored objects matching a search phrase.

        Classes below confidence_min are skipped, at most result_limit
        matches are returned, and class names that do not follow the
        "/<container>/<object>" convention are ignored.

        Raises:
            Same as classify()
        """
        result = await self.classify(phrase)

        matches: list[ObjectMatch] = []
        for match in result.classes:
            if match.confidence < self._config.confidence_min:
                continue
            parts = split_class_name(match.class_name)
            if parts is None:
                logger.warning("search_class_name_invalid", class_name=match.class_name)
                continue
            matches.append(
                ObjectMatch(
                    container_name=parts[0],
                    object_name=parts[1],
                    confidence=match.confidence,
                )
            )
            if len(matches) >= self._config.result_limit:
                break

        logger.info("search_complete", phrase=phrase, matches=len(matches))
        return matches

    async def ensure_trained(
        self,
        records_provider: RecordsProvider,
        force: bool = False,
        data_ready: bool = True,
        generations: list[Classifier] | None = None,
    ) -> TrainingOutcome:
        """Start a new generation when the training rules allow it.

        Args:
            records_provider: Gathers training records; only called when training
            force: Train regardless of the other rules
            data_ready: Whether the triggering event carries usable data
            generations: Pre-fetched generations; fetched when omitted

        Returns:
            TrainingOutcome (classifier is None when training was skipped)

        Raises:
            InsufficientDataError: Too few training records
            ClassifierServiceError: Remote failure
        """
        with tracer.start_as_current_span("classifier.ensure_trained") as span:
            if generations is None:
                generations = await self._selector.fetch_generations()

            decision = self._scheduler.decide(force, data_ready, generations)
            span.set_attribute("training.should_train", decision.should_train)
            if not decision.should_train:
                return TrainingOutcome(should_train=False, reason=decision.reason)

            records = await records_provider()
            return await self._scheduler.train_new_classifier(records, reason=decision.reason)

    async def cleanup(self) -> CleanupResult:
        """Delete superseded generations.

        Returns:
            CleanupResult with the number of removed generations

        Raises:
            ClassifierServiceError: The list/status fan-out failed
            ClassifierCleanupError: Every deletion failed
        """
        with tracer.start_as_current_span("classifier.cleanup") as span:
            result = await self._janitor.cleanup()
            span.set_attribute("cleanup.deleted", result.deleted_count)

            cached = self._cache.entry
            cached_ids = {
                c.classifier_id for c in (cached.selected, cached.training) if c is not None
            }
            if cached_ids & set(result.deleted_ids):
                self.invalidate()

            return result
