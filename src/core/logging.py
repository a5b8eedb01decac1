"""
Cloudbot Classifier Coordinator - Structured Logging Module

Every log line is a JSON event carrying the service name and, inside a
classifier_context() block, the logical classifier name being worked on:

    with classifier_context("cloudbot-obj-storage-classifier"):
        logger.info("training_started", classifier_id="abc")

The API writes logs to stdout. The command-line trainer sends them to
stderr so its JSON summary stays alone on stdout.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, TextIO

import structlog
from structlog.typing import EventDict

SERVICE_NAME = "cloudbot-classifier-coordinator"

_configured: bool = False


def add_service_info(
    logger: logging.Logger,  # noqa: ARG001 - Required by structlog interface
    method_name: str,  # noqa: ARG001 - Required by structlog interface
    event_dict: EventDict,
) -> EventDict:
    """Stamp the service name on the event."""
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def configure_logging(
    log_level: str = "INFO",
    json_output: bool = True,
    stream: TextIO | None = None,
) -> None:
    """Set up structlog once per process.

    Called from the FastAPI lifespan module and from the trainer script.
    Repeat calls are no-ops until reset_logging().

    Args:
        log_level: Level name; unknown names fall back to INFO
        json_output: JSON lines when True, coloured console output otherwise
        stream: Destination for log lines (stdout when omitted)
    """
    global _configured

    if _configured:
        return

    level = getattr(logging, log_level.upper(), logging.INFO)
    output = stream if stream is not None else sys.stdout

    # Third-party libraries (httpx, uvicorn) log through stdlib logging.
    logging.basicConfig(format="%(message)s", stream=output, level=level)

    renderer: Any = (
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            add_service_info,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=output),
        cache_logger_on_first_use=True,
    )

    _configured = True


@contextmanager
def classifier_context(classifier_name: str, **extra: Any) -> Iterator[None]:
    """Bind the logical classifier name (and any extra keys) to every log
    event emitted inside the block, including from awaited coroutines."""
    with structlog.contextvars.bound_contextvars(classifier_name=classifier_name, **extra):
        yield


def get_logger(name: str) -> Any:
    return structlog.get_logger(name)


def reset_logging() -> None:
    """Forget the configuration (tests only)."""
    global _configured
    _configured = False
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()
