"""
Custom exceptions for the classifiers module.

All exception classes end with "Error" and do not shadow built-in
exception names. Remote failures derive from ClassifierServiceError;
coordinator outcomes (nothing to select, not enough data) derive
directly from ClassifierCoordinatorError.
"""

from __future__ import annotations

from src.core.exceptions import ClassifierCoordinatorError


# =============================================================================
# Remote service errors
# =============================================================================


class ClassifierServiceError(ClassifierCoordinatorError):
    """Raised when the remote classifier service rejects or fails a call.

    Attributes:
        message: Human-readable error description.
        status_code: HTTP status code if the error came from a response.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ClassifierNotFoundError(ClassifierServiceError):
    """Raised when a classifier id is unknown to the service."""


class ClassifierForbiddenError(ClassifierServiceError):
    """Raised when the service refuses an operation (typically delete)."""


class ClassifierNotAvailableError(ClassifierServiceError):
    """Raised when a classifier exists but is not ready to classify.

    Attributes:
        classifier_id: Generation that is not ready, if known.
        training_minutes: Minutes spent training so far, if training.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        classifier_id: str | None = None,
        training_minutes: int | None = None,
    ) -> None:
        super().__init__(message, status_code=status_code)
        self.classifier_id = classifier_id
        self.training_minutes = training_minutes


class TransientServiceError(ClassifierServiceError):
    """Raised on timeouts, connection failures and 5xx responses."""


class QuotaExceededError(ClassifierServiceError):
    """Raised when the account cannot host another classifier."""


class TrainingDataValidationError(ClassifierServiceError):
    """Raised when the service rejects submitted training data."""


# =============================================================================
# Coordinator outcomes
# =============================================================================


class NoClassifiersFoundError(ClassifierCoordinatorError):
    """Raised when no classifier exists under the logical name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"No classifiers found under [{name}]")
        self.name = name


class NoneAvailableError(ClassifierCoordinatorError):
    """Raised when classifiers exist but none is Available or Training."""

    def __init__(self, name: str) -> None:
        super().__init__(f"No classifiers available under [{name}]")
        self.name = name


class InsufficientDataError(ClassifierCoordinatorError):
    """Raised when there is not enough training data to train.

    Fatal to the current training attempt only.
    """


class ClassifierCleanupError(ClassifierCoordinatorError):
    """Raised when every deletion of a cleanup pass failed.

    Attributes:
        failed_ids: Classifier ids that could not be deleted.
    """

    def __init__(self, message: str, failed_ids: tuple[str, ...]) -> None:
        super().__init__(message)
        self.failed_ids = failed_ids
