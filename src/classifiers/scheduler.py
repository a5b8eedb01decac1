"""
Training Scheduler - decides when a new generation should be trained.

Decision order (first matching rule wins):
1. force flag set                          -> train
2. data not ready (trigger lacks fields)   -> skip
3. no existing generations                 -> train
4. newest generation within frequency      -> skip
5. any generation already Training         -> skip
6. otherwise                               -> train

Training itself validates record-count bounds before calling create():
too few records fails with InsufficientDataError, too many are truncated
with a warning.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Final

from src.classifiers.exceptions import InsufficientDataError
from src.classifiers.models import Classifier, TrainingRecord
from src.classifiers.selector import bounded_call, sort_newest_first
from src.core.logging import get_logger

if TYPE_CHECKING:
    from src.clients.nlc_client import ClassifierServiceClientProtocol

logger = get_logger(__name__)

# =============================================================================
# Constants
# =============================================================================

DEFAULT_TRAINING_FREQUENCY: Final[timedelta] = timedelta(hours=1)
DEFAULT_MIN_RECORDS: Final[int] = 5
DEFAULT_MAX_RECORDS: Final[int] = 15000

REASON_FORCED: Final[str] = "force training flag is set"
REASON_DATA_NOT_READY: Final[str] = "training data is not ready"
REASON_NO_CLASSIFIERS: Final[str] = "there are no preexisting classifiers"
REASON_TOO_RECENT: Final[str] = "training frequency was not exceeded"
REASON_ALREADY_TRAINING: Final[str] = "a classifier is already training"
REASON_CONDITIONS_MET: Final[str] = "all conditions are met"


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True, slots=True)
class TrainingDecision:
    """Whether to train, and the rule that decided it."""

    should_train: bool
    reason: str


@dataclass(frozen=True, slots=True)
class TrainingOutcome:
    """Result of one ensure-trained pass.

    Attributes:
        should_train: Scheduler decision
        reason: Rule that produced the decision
        classifier: Newly created generation, None if nothing was trained
        record_count: Records submitted to create()
        truncated_from: Original record count when truncation happened
    """

    should_train: bool
    reason: str
    classifier: Classifier | None = None
    record_count: int = 0
    truncated_from: int | None = None

    @property
    def training_started(self) -> bool:
        return self.classifier is not None


# =============================================================================
# Scheduler
# =============================================================================


class TrainingScheduler:
    """Decides on and starts training runs for one logical name."""

    def __init__(
        self,
        client: ClassifierServiceClientProtocol,
        name: str,
        training_frequency: timedelta = DEFAULT_TRAINING_FREQUENCY,
        min_records: int = DEFAULT_MIN_RECORDS,
        max_records: int = DEFAULT_MAX_RECORDS,
        call_timeout: float | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the scheduler.

        Args:
            client: Classifier service client
            name: Logical classifier name
            training_frequency: Minimum time between two trainings
            min_records: Fewest records a training run accepts
            max_records: Most records submitted to a training run
            call_timeout: Upper bound in seconds for the create call
            clock: Returns the current aware datetime (tests inject a fixed one)
        """
        if min_records > max_records:
            msg = f"min_records ({min_records}) exceeds max_records ({max_records})"
            raise ValueError(msg)
        self._client = client
        self._name = name
        self._training_frequency = training_frequency
        self._min_records = min_records
        self._max_records = max_records
        self._call_timeout = call_timeout
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def name(self) -> str:
        return self._name

    def decide(
        self,
        force: bool,
        data_ready: bool,
        existing: Sequence[Classifier],
    ) -> TrainingDecision:
        """Evaluate the training rules.

        Args:
            force: Skip every check and train
            data_ready: Whether the triggering event carries usable data
            existing: Generations of this name with their status

        Returns:
            TrainingDecision with the deciding rule as reason
        """
        decision = self._evaluate(force, data_ready, existing)
        logger.info(
            "training_decision",
            name=self._name,
            should_train=decision.should_train,
            reason=decision.reason,
        )
        return decision

    def should_train(
        self,
        force: bool,
        data_ready: bool,
        existing: Sequence[Classifier],
    ) -> bool:
        return self.decide(force, data_ready, existing).should_train

    def _evaluate(
        self,
        force: bool,
        data_ready: bool,
        existing: Sequence[Classifier],
    ) -> TrainingDecision:
        if force:
            return TrainingDecision(True, REASON_FORCED)
        if not data_ready:
            return TrainingDecision(False, REASON_DATA_NOT_READY)
        if not existing:
            return TrainingDecision(True, REASON_NO_CLASSIFIERS)

        most_recent = sort_newest_first(list(existing))[0]
        if self._clock() - most_recent.created < self._training_frequency:
            return TrainingDecision(False, REASON_TOO_RECENT)

        if any(c.is_training for c in existing):
            return TrainingDecision(False, REASON_ALREADY_TRAINING)

        return TrainingDecision(True, REASON_CONDITIONS_MET)

    async def train_new_classifier(
        self,
        records: Sequence[TrainingRecord],
        reason: str = REASON_CONDITIONS_MET,
    ) -> TrainingOutcome:
        """Validate record counts and start training a new generation.

        Args:
            records: Training records gathered for this run
            reason: Decision reason carried into the outcome

        Returns:
            TrainingOutcome with the created generation

        Raises:
            InsufficientDataError: Fewer than min_records records
            ClassifierServiceError: create() failed
        """
        total = len(records)
        if total < self._min_records:
            logger.error(
                "training_insufficient_data",
                name=self._name,
                records=total,
                min_records=self._min_records,
            )
            msg = (
                f"not enough training records to train [{self._name}]: "
                f"{total} < {self._min_records}"
            )
            raise InsufficientDataError(msg)

        truncated_from: int | None = None
        if total > self._max_records:
            logger.warning(
                "training_records_truncated",
                name=self._name,
                records=total,
                max_records=self._max_records,
            )
            records = records[: self._max_records]
            truncated_from = total

        logger.info("training_started", name=self._name, records=len(records))
        classifier = await bounded_call(
            self._client.create_classifier(list(records), self._name),
            self._call_timeout,
            "create",
        )
        logger.info(
            "training_submitted",
            name=self._name,
            classifier_id=classifier.classifier_id,
            status=classifier.status,
        )

        return TrainingOutcome(
            should_train=True,
            reason=reason,
            classifier=classifier,
            record_count=len(records),
            truncated_from=truncated_from,
        )
