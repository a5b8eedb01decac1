"""
Single-slot cache for the classifier selection.

Holds the generation currently used for classification plus an optional
"best training-in-progress" generation. Both references live in one frozen
CacheEntry that is swapped as a unit, so a reader never sees a selected
classifier from one resolution paired with a training fallback from another.

There is no time-based expiry: the coordinator invalidates the entry when a
remote call fails, which is how a deleted classifier stops being served.
"""

from __future__ import annotations

from dataclasses import dataclass

from src.classifiers.models import Classifier


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """The cached pair of (selected, training fallback) classifiers."""

    selected: Classifier | None = None
    training: Classifier | None = None


_EMPTY = CacheEntry()


class ClassifierCache:
    """Cache for one logical classifier name.

    Usage:
        cache = ClassifierCache("cloudbot-obj-storage-classifier")
        cache.store_selected(classifier)
        current = cache.selected
        cache.invalidate()
    """

    __slots__ = ("_name", "_entry")

    def __init__(self, name: str) -> None:
        self._name = name
        self._entry = _EMPTY

    @property
    def name(self) -> str:
        return self._name

    @property
    def entry(self) -> CacheEntry:
        """Snapshot of the cached pair."""
        return self._entry

    @property
    def selected(self) -> Classifier | None:
        return self._entry.selected

    @property
    def training(self) -> Classifier | None:
        return self._entry.training

    def store_selected(self, classifier: Classifier) -> None:
        """Cache an Available generation; clears any training fallback."""
        self._check_name(classifier)
        self._entry = CacheEntry(selected=classifier)

    def store_training(self, classifier: Classifier) -> None:
        """Cache a Training generation as the fallback."""
        self._check_name(classifier)
        self._entry = CacheEntry(training=classifier)

    def invalidate(self) -> None:
        self._entry = _EMPTY

    def _check_name(self, classifier: Classifier) -> None:
        if classifier.name != self._name:
            msg = f"Cannot cache classifier '{classifier.name}' in cache for '{self._name}'"
            raise ValueError(msg)
