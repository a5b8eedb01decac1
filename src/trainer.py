"""
Batch Classifier Trainer.

Entry point for the offline trainer run by a scheduler or by a change-feed
trigger on the image metadata database. One run:

1. Validates the parameter bag (credentials first, no remote call otherwise)
2. Lists the existing generations with their status
3. Decides whether to train (force flag, data readiness, frequency, in-flight)
4. If so, reads image documents, builds training data and starts training
5. Deletes superseded generations

and returns {"shouldTrain": bool, "training"?: True, "cleanup"?: int}.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from contextlib import AsyncExitStack
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Final

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from src.classifiers.coordinator import ClassifierCoordinator, CoordinatorConfig
from src.classifiers.models import TrainingRecord
from src.classifiers.training_data import (
    DEFAULT_MAX_CLASSES,
    DEFAULT_MAX_TEXT_LENGTH,
    IMAGE_DOC_TYPE,
    TrainingDataBuilder,
    TrainingDataLimits,
)
from src.clients.cloudant_client import CloudantImageSource, TrainingDocumentSourceProtocol
from src.clients.nlc_client import ClassifierServiceClientProtocol, NLCClient
from src.core.config import DEFAULT_CLASSIFIER_NAME
from src.core.exceptions import ConfigurationError
from src.core.logging import classifier_context, configure_logging, get_logger

logger = get_logger(__name__)

TAG: Final[str] = "nlcTrainer"

REQUIRED_PARAMS: Final[tuple[str, ...]] = (
    "cloudantUsername",
    "cloudantPassword",
    "cloudantDbName",
    "nlcUsername",
    "nlcPassword",
    "nlcUrl",
)

# The images view returns an image row and a user row per image
ROWS_PER_IMAGE: Final[int] = 2


# =============================================================================
# Parameter bag
# =============================================================================


class TrainerParams(BaseModel):
    """Validated trainer parameters.

    Field aliases match the keys of the trigger's parameter bag.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    nlc_url: str = Field(alias="nlcUrl", min_length=1)
    nlc_username: str = Field(alias="nlcUsername", min_length=1)
    nlc_password: str = Field(alias="nlcPassword", min_length=1)
    cloudant_username: str = Field(alias="cloudantUsername", min_length=1)
    cloudant_password: str = Field(alias="cloudantPassword", min_length=1)
    cloudant_db_name: str = Field(alias="cloudantDbName", min_length=1)
    cloudant_host: str | None = Field(default=None, alias="cloudantHost")

    log_level: str = Field(default="INFO", alias="logLevel")
    force_training: bool = Field(default=False, alias="nlcForceTraining")
    classifier_name: str = Field(default=DEFAULT_CLASSIFIER_NAME, alias="nlcClassifier")
    training_frequency_ms: int = Field(default=60 * 60 * 1000, alias="trainingFrequency", ge=0)
    request_timeout: float = Field(default=30.0, alias="requestTimeout", gt=0)

    max_classes: int = Field(default=DEFAULT_MAX_CLASSES, alias="NLC_LIMIT_NUM_CLASSES", gt=0)
    max_text_length: int = Field(
        default=DEFAULT_MAX_TEXT_LENGTH, alias="NLC_LIMIT_TEXT_LENGTH", gt=0
    )
    min_records: int = Field(default=5, alias="NLC_LIMIT_MIN_RECORDS", ge=0)
    max_records: int = Field(default=15000, alias="NLC_LIMIT_MAX_RECORDS", gt=0)

    # Local runs skip the trigger document check
    local_run: bool = Field(default=False, alias="localRun")

    # Fields of the changed document when triggered by the change feed
    doc_id: str | None = Field(default=None, alias="_id")
    doc_rev: str | None = Field(default=None, alias="_rev")
    doc_type: str | None = Field(default=None, alias="type")
    tags: list[Any] | None = None

    @property
    def data_ready(self) -> bool:
        """Whether the triggering document already carries its tags.

        Image documents are created first and tagged in a later update;
        training on the first change would miss the new image.
        """
        if self.local_run:
            return True
        return bool(
            self.doc_id and self.doc_rev and self.doc_type == IMAGE_DOC_TYPE and self.tags
        )

    def coordinator_config(self) -> CoordinatorConfig:
        return CoordinatorConfig(
            classifier_name=self.classifier_name,
            training_frequency_ms=self.training_frequency_ms,
            min_records=self.min_records,
            max_records=self.max_records,
            call_timeout=self.request_timeout,
        )

    def training_limits(self) -> TrainingDataLimits:
        return TrainingDataLimits(
            max_classes=self.max_classes,
            max_text_length=self.max_text_length,
        )


def validate_params(params: Mapping[str, Any]) -> TrainerParams:
    """Validate the parameter bag.

    Empty optional values are treated as absent.

    Raises:
        ConfigurationError: Required params missing or values malformed
    """
    for key, value in params.items():
        logger.debug("trainer_param", key=key, present=value not in (None, ""))

    missing = [key for key in REQUIRED_PARAMS if not params.get(key)]
    if missing:
        for key in missing:
            logger.info("trainer_missing_param", param=key)
        raise ConfigurationError(
            f"{TAG} Missing required params: {', '.join(missing)}", missing=missing
        )

    cleaned = {key: value for key, value in params.items() if value not in (None, "")}
    try:
        return TrainerParams.model_validate(cleaned)
    except ValidationError as e:
        raise ConfigurationError(f"{TAG} Invalid params: {e}") from e


# =============================================================================
# Summary
# =============================================================================


@dataclass(slots=True)
class TrainerSummary:
    """What one trainer run did."""

    should_train: bool = False
    training: bool = False
    cleanup: int | None = None

    def as_dict(self) -> dict[str, Any]:
        summary: dict[str, Any] = {"shouldTrain": self.should_train}
        if self.training:
            summary["training"] = True
        if self.cleanup is not None:
            summary["cleanup"] = self.cleanup
        return summary


# =============================================================================
# Entry point
# =============================================================================


async def run_trainer(
    params: Mapping[str, Any],
    client: ClassifierServiceClientProtocol | None = None,
    source: TrainingDocumentSourceProtocol | None = None,
    clock: Callable[[], datetime] | None = None,
) -> dict[str, Any]:
    """Run one training pass.

    Args:
        params: Parameter bag (see REQUIRED_PARAMS and TrainerParams aliases)
        client: Classifier service client; built from params when omitted
        source: Training document source; built from params when omitted
        clock: Returns the current aware datetime

    Returns:
        Summary dict {"shouldTrain": bool, "training"?: True, "cleanup"?: int}

    Raises:
        ConfigurationError: Invalid parameters (no remote call was made)
        InsufficientDataError: Not enough training data
        ClassifierCoordinatorError: Remote failures
    """
    settings = validate_params(params)
    # No-op when the caller already configured logging.
    configure_logging(log_level=settings.log_level)

    async with AsyncExitStack() as stack:
        stack.enter_context(classifier_context(settings.classifier_name))
        if client is None:
            client = await stack.enter_async_context(
                NLCClient(
                    settings.nlc_url,
                    settings.nlc_username,
                    settings.nlc_password,
                    timeout=settings.request_timeout,
                )
            )
        if source is None:
            source = await stack.enter_async_context(
                CloudantImageSource(
                    settings.cloudant_username,
                    settings.cloudant_password,
                    settings.cloudant_db_name,
                    host=settings.cloudant_host,
                    timeout=settings.request_timeout,
                )
            )

        coordinator = ClassifierCoordinator(client, settings.coordinator_config(), clock=clock)
        builder = TrainingDataBuilder(settings.training_limits())
        document_source = source

        async def gather_training_data() -> Sequence[TrainingRecord]:
            logger.info("training_data_requested", name=settings.classifier_name)
            documents = await document_source.fetch_documents(
                limit=settings.max_classes * ROWS_PER_IMAGE
            )
            return builder.build(documents)

        summary = TrainerSummary()
        outcome = await coordinator.ensure_trained(
            gather_training_data,
            force=settings.force_training,
            data_ready=settings.data_ready,
        )
        summary.should_train = outcome.should_train
        summary.training = outcome.training_started

        cleanup = await coordinator.cleanup()
        summary.cleanup = cleanup.deleted_count

    logger.info("trainer_complete", **summary.as_dict())
    return summary.as_dict()
