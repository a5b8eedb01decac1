"""
Cloudbot Classifier Coordinator - Main Application Entry Point

FastAPI app exposing classification, object search and the classifier
lifecycle (train, cleanup) over one coordinator per process.

Patterns Applied:
- Lifespan context manager owning the HTTP clients
- One-time configure_logging() at startup

Run:
    uvicorn src.main:app --host 0.0.0.0 --port 8083
    cloudbot-coordinator   (uses CLOUDBOT_HOST and CLOUDBOT_PORT)
"""

from collections.abc import AsyncGenerator
from contextlib import AsyncExitStack, asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.classifiers import classifiers_router
from src.api.classify import classify_router
from src.api.health import get_health_service
from src.api.health import router as health_router
from src.classifiers.coordinator import ClassifierCoordinator
from src.classifiers.training_data import TrainingDataBuilder, TrainingDataLimits
from src.clients.cloudant_client import CloudantImageSource
from src.clients.nlc_client import NLCClient
from src.core.config import get_settings
from src.core.logging import configure_logging, get_logger
from src.core.tracing import configure_tracing

settings = get_settings()

configure_logging(
    log_level=settings.log_level,
    json_output=settings.log_json,
)

logger = get_logger(__name__)


# =============================================================================
# Lifespan Context Manager
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Create the clients and the coordinator, close the clients on shutdown."""
    logger.info(
        "startup",
        service=settings.service_name,
        version=settings.version,
        environment=settings.environment,
    )

    if settings.tracing_enabled:
        configure_tracing(
            service_name=settings.service_name,
            version=settings.version,
            console_export=settings.tracing_console_export,
        )
        logger.info("tracing_configured")

    health = get_health_service()

    async with AsyncExitStack() as stack:
        app.state.coordinator = None
        app.state.document_source = None
        app.state.training_builder = None

        if settings.nlc_configured:
            client = await stack.enter_async_context(
                NLCClient(
                    settings.nlc_url,
                    settings.nlc_username,
                    settings.nlc_password,
                    timeout=settings.request_timeout,
                )
            )
            app.state.coordinator = ClassifierCoordinator(
                client, settings.coordinator_config()
            )
            logger.info("coordinator_ready", name=settings.classifier_name)
        else:
            logger.warning("classifier_service_not_configured")
        health.set_classifier_service_configured(app.state.coordinator is not None)

        if settings.cloudant_configured:
            app.state.document_source = await stack.enter_async_context(
                CloudantImageSource(
                    settings.cloudant_username,
                    settings.cloudant_password,
                    settings.cloudant_db_name,
                    host=settings.cloudant_host,
                    timeout=settings.request_timeout,
                )
            )
            app.state.training_builder = TrainingDataBuilder(
                TrainingDataLimits(
                    max_classes=settings.max_classes,
                    max_text_length=settings.text_length_limit,
                )
            )
        health.set_document_source_configured(app.state.document_source is not None)

        app.state.initialized = True

        yield

        logger.info("shutdown", service=settings.service_name)
        app.state.initialized = False

    health.set_classifier_service_configured(False)
    health.set_document_source_configured(False)


# =============================================================================
# FastAPI Application
# =============================================================================


app = FastAPI(
    title="Cloudbot-Classifier-Coordinator",
    description="Classifier generation lifecycle and object search for the chat bot",
    version=settings.version,
    docs_url="/docs" if settings.environment != "production" else None,
    redoc_url="/redoc" if settings.environment != "production" else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.environment == "development" else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router)
app.include_router(classify_router)
app.include_router(classifiers_router)


@app.get("/", include_in_schema=False)
async def root() -> dict[str, str]:
    return {
        "service": settings.service_name,
        "version": settings.version,
        "docs": "/docs",
    }


def run() -> None:
    """Serve the app with uvicorn on the configured host and port."""
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
