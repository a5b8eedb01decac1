"""
Training Data Builder - image metadata documents to training records.

Turns the image documents kept by the photo application into
{text, classes} statements. Each document contributes its caption, its
location name and every tag label, all labelled with the class
"/<container>/<object>" built from the last two segments of the image URL.

Limits:
- max_classes: at most this many documents (one class each) are used
- max_text_length: longer statements are dropped with a warning
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Final

from src.classifiers.exceptions import InsufficientDataError
from src.classifiers.models import TrainingRecord, build_class_name
from src.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_CLASSES: Final[int] = 500
DEFAULT_MAX_TEXT_LENGTH: Final[int] = 1024

IMAGE_DOC_TYPE: Final[str] = "image"


@dataclass(frozen=True, slots=True)
class TrainingDataLimits:
    """Size limits applied while building training data."""

    max_classes: int = DEFAULT_MAX_CLASSES
    max_text_length: int = DEFAULT_MAX_TEXT_LENGTH


def is_tagged_image(doc: Mapping[str, Any] | None) -> bool:
    """True for image documents that already carry tags."""
    return bool(doc) and doc.get("type") == IMAGE_DOC_TYPE and bool(doc.get("tags"))


class TrainingDataBuilder:
    """Builds training records from image metadata documents.

    Usage:
        builder = TrainingDataBuilder(TrainingDataLimits(max_classes=100))
        records = builder.build(documents)
    """

    def __init__(self, limits: TrainingDataLimits | None = None) -> None:
        self._limits = limits or TrainingDataLimits()

    @property
    def limits(self) -> TrainingDataLimits:
        return self._limits

    def build(self, documents: Iterable[Mapping[str, Any]]) -> list[TrainingRecord]:
        """Build training records.

        Args:
            documents: Raw documents; non-image and untagged ones are ignored

        Returns:
            Training records in document order

        Raises:
            InsufficientDataError: No tagged image document was found
        """
        images = [doc for doc in documents if is_tagged_image(doc)]
        if not images:
            raise InsufficientDataError("no image metadata to use for training")

        if len(images) > self._limits.max_classes:
            logger.warning(
                "training_documents_truncated",
                documents=len(images),
                max_classes=self._limits.max_classes,
            )
            images = images[: self._limits.max_classes]

        records: list[TrainingRecord] = []
        for doc in images:
            records.extend(self._records_for(doc))

        logger.info("training_data_built", documents=len(images), records=len(records))
        return records

    def _records_for(self, doc: Mapping[str, Any]) -> list[TrainingRecord]:
        doc_id = doc.get("_id") or doc.get("id")
        class_name = build_class_name(doc.get("url") or "")
        if not doc.get("url") or class_name is None:
            logger.warning("training_doc_invalid_url", doc_id=doc_id)
            return []

        texts: list[str | None] = [doc.get("caption")]
        location = doc.get("location")
        if isinstance(location, Mapping):
            texts.append(location.get("name"))
        texts.extend(tag.get("label") for tag in doc.get("tags", []) if isinstance(tag, Mapping))

        records = []
        for text in texts:
            record = self.make_record(text, class_name, doc_id)
            if record is not None:
                records.append(record)
        return records

    def make_record(
        self,
        text: str | None,
        class_name: str,
        doc_id: Any = None,
    ) -> TrainingRecord | None:
        """Create one record, or None when the text violates the limits."""
        if not text:
            if text is not None:
                logger.warning("training_text_empty", doc_id=doc_id)
            return None
        if len(text) > self._limits.max_text_length:
            logger.warning(
                "training_text_too_long",
                doc_id=doc_id,
                length=len(text),
                max_text_length=self._limits.max_text_length,
            )
            return None
        return TrainingRecord(text=text, classes=(class_name,))
