"""
Cloudbot Classifier Coordinator - Custom Exceptions

Namespaced exceptions so nothing shadows builtins like ConnectionError
or TimeoutError. Classifier-specific errors live in src.classifiers.exceptions
and derive from ClassifierCoordinatorError.
"""


class ClassifierCoordinatorError(Exception):
    """Base exception for the classifier coordinator.

    All custom exceptions inherit from this base class.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class ConfigurationError(ClassifierCoordinatorError):
    """Raised when configuration is invalid or missing.

    Fatal: surfaced before any remote call is attempted.
    """

    def __init__(self, message: str, missing: list[str] | None = None) -> None:
        super().__init__(message)
        self.missing = missing or []
