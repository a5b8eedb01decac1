"""
Domain models for the classifier lifecycle.

A Classifier is one generation of a logical classifier hosted by the remote
natural language classification service. Several generations share a name;
`created` is the only recency ordering.

Class names follow the "/<container>/<object>" convention shared by the
training data builder and the search path splitting.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Final

# =============================================================================
# Constants
# =============================================================================

CLASS_NAME_SEPARATOR: Final[str] = "/"
CLASS_NAME_SEGMENTS: Final[int] = 2


# =============================================================================
# Enums
# =============================================================================


class ClassifierStatus(str, Enum):
    """Remote-controlled lifecycle state of a classifier generation."""

    TRAINING = "Training"
    AVAILABLE = "Available"
    FAILED = "Failed"
    UNAVAILABLE = "Unavailable"
    NON_EXISTENT = "NonExistent"

    @classmethod
    def parse(cls, value: str | None) -> ClassifierStatus | None:
        """Map a remote status string to a ClassifierStatus.

        Unknown values are treated as Unavailable; None stays None (list
        summaries do not carry a status).
        """
        if value is None:
            return None
        try:
            return cls(value)
        except ValueError:
            return cls.UNAVAILABLE


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True, slots=True)
class Classifier:
    """One generation of a remotely trained classifier.

    Attributes:
        classifier_id: Opaque id assigned by the remote service
        name: Logical name shared by all generations
        created: Creation timestamp set by the remote service
        status: Lifecycle state, None when only the summary is known
        url: Resource URL reported by the service
        language: Training language
        status_description: Free-form status detail from the service
    """

    classifier_id: str
    name: str
    created: datetime
    status: ClassifierStatus | None = None
    url: str = ""
    language: str = "en"
    status_description: str = ""

    @property
    def is_available(self) -> bool:
        return self.status is ClassifierStatus.AVAILABLE

    @property
    def is_training(self) -> bool:
        return self.status is ClassifierStatus.TRAINING

    def training_duration_minutes(self, now: datetime | None = None) -> int | None:
        """Whole minutes spent training so far, or None if not training.

        Args:
            now: Reference time (defaults to current UTC time)

        Returns:
            floor((now - created) in minutes), never below 0
        """
        if not self.is_training:
            return None
        now = now or datetime.now(timezone.utc)
        minutes = math.floor((now - self.created).total_seconds() / 60)
        return max(minutes, 0)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the JSON shape used by the API layer."""
        return {
            "classifier_id": self.classifier_id,
            "name": self.name,
            "created": self.created.isoformat(),
            "status": self.status.value if self.status else None,
            "url": self.url,
            "language": self.language,
            "status_description": self.status_description,
        }


@dataclass(frozen=True, slots=True)
class ClassMatch:
    """One class returned by a classify call."""

    class_name: str
    confidence: float


@dataclass(frozen=True, slots=True)
class ClassificationResult:
    """Result of classifying a phrase with a specific generation.

    Attributes:
        classifier_id: Generation that produced the result
        text: The classified phrase
        top_class: Highest-confidence class name
        classes: All classes, ordered by descending confidence
    """

    classifier_id: str
    text: str
    top_class: str
    classes: tuple[ClassMatch, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class TrainingRecord:
    """One training statement: a text and the classes it belongs to."""

    text: str
    classes: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {"text": self.text, "classes": list(self.classes)}


@dataclass(frozen=True, slots=True)
class ObjectMatch:
    """A stored object matched by a search phrase."""

    container_name: str
    object_name: str
    confidence: float


# =============================================================================
# Class name convention
# =============================================================================


def build_class_name(url: str) -> str | None:
    """Build a class name from the last two path segments of a URL.

    Args:
        url: Location of the source object, e.g. ".../container/object.jpg"

    Returns:
        "/container/object.jpg", or None if the URL has fewer than two segments
    """
    segments = url.split(CLASS_NAME_SEPARATOR)
    if len(segments) < CLASS_NAME_SEGMENTS:
        return None
    tail = segments[-CLASS_NAME_SEGMENTS:]
    return CLASS_NAME_SEPARATOR + CLASS_NAME_SEPARATOR.join(tail)


def split_class_name(class_name: str) -> tuple[str, str] | None:
    """Split "/container/object" back into (container, object).

    Returns:
        (container_name, object_name), or None when the name does not follow
        the convention
    """
    parts = class_name.split(CLASS_NAME_SEPARATOR)
    if len(parts) != CLASS_NAME_SEGMENTS + 1 or parts[0]:
        return None
    return parts[1], parts[2]
