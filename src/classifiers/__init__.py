"""Classifier lifecycle components: selection, caching, training, cleanup."""
from src.classifiers.cache import CacheEntry, ClassifierCache
from src.classifiers.coordinator import (
    ClassifierCoordinator,
    ClassifierCoordinatorProtocol,
    CoordinatorConfig,
)
from src.classifiers.exceptions import (
    ClassifierCleanupError,
    ClassifierForbiddenError,
    ClassifierNotAvailableError,
    ClassifierNotFoundError,
    ClassifierServiceError,
    InsufficientDataError,
    NoClassifiersFoundError,
    NoneAvailableError,
    QuotaExceededError,
    TrainingDataValidationError,
    TransientServiceError,
)
from src.classifiers.janitor import ClassifierJanitor, CleanupResult
from src.classifiers.models import (
    ClassificationResult,
    Classifier,
    ClassifierStatus,
    ClassMatch,
    ObjectMatch,
    TrainingRecord,
)
from src.classifiers.scheduler import TrainingDecision, TrainingOutcome, TrainingScheduler
from src.classifiers.selector import ClassifierSelector
from src.classifiers.training_data import TrainingDataBuilder, TrainingDataLimits

__all__ = [
    "CacheEntry",
    "ClassMatch",
    "ClassificationResult",
    "Classifier",
    "ClassifierCache",
    "ClassifierCleanupError",
    "ClassifierCoordinator",
    "ClassifierCoordinatorProtocol",
    "ClassifierForbiddenError",
    "ClassifierJanitor",
    "ClassifierNotAvailableError",
    "ClassifierNotFoundError",
    "ClassifierSelector",
    "ClassifierServiceError",
    "ClassifierStatus",
    "CleanupResult",
    "CoordinatorConfig",
    "InsufficientDataError",
    "NoClassifiersFoundError",
    "NoneAvailableError",
    "ObjectMatch",
    "QuotaExceededError",
    "TrainingDataBuilder",
    "TrainingDataLimits",
    "TrainingDataValidationError",
    "TrainingDecision",
    "TrainingOutcome",
    "TrainingRecord",
    "TrainingScheduler",
    "TransientServiceError",
]
