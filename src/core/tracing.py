"""
Cloudbot Classifier Coordinator - OpenTelemetry Tracing Module

The coordinator opens one span per operation (classifier.select,
classifier.classify, classifier.ensure_trained, classifier.cleanup) and
tags it with the generation it touched via record_classifier().

Until configure_tracing() runs, the global provider is the no-op one and
spans cost nothing; unit tests rely on that.
"""

from typing import Any

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import ConsoleSpanExporter, SimpleSpanProcessor

SERVICE_NAME = "cloudbot-classifier-coordinator"

_configured: bool = False


def configure_tracing(
    service_name: str = SERVICE_NAME,
    version: str = "0.1.0",
    console_export: bool = True,
) -> None:
    """Install a TracerProvider for this process (first call wins).

    Args:
        service_name: service.name resource attribute
        version: service.version resource attribute
        console_export: Print finished spans to stdout
    """
    global _configured

    if _configured:
        return

    provider = TracerProvider(
        resource=Resource.create({"service.name": service_name, "service.version": version})
    )
    if console_export:
        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)
    _configured = True


def get_tracer(name: str) -> Any:
    return trace.get_tracer(name)


def record_classifier(span: Any, classifier: Any) -> None:
    """Copy a classifier generation's identity onto a span.

    Accepts any object with classifier_id, name and status attributes;
    status may be None or an enum.
    """
    span.set_attribute("classifier.id", classifier.classifier_id)
    span.set_attribute("classifier.name", classifier.name)
    status = getattr(classifier, "status", None)
    if status is not None:
        span.set_attribute("classifier.status", getattr(status, "value", str(status)))


def reset_tracing() -> None:
    """Forget the configuration (tests only). The global provider is kept."""
    global _configured
    _configured = False
