"""HTTP clients for the classifier service and the training document store."""

from src.clients.cloudant_client import (
    CloudantImageSource,
    DocumentSourceError,
    FakeDocumentSource,
    TrainingDocumentSourceProtocol,
)
from src.clients.nlc_client import (
    ClassifierServiceClientProtocol,
    FakeClassifierServiceClient,
    NLCClient,
)

__all__ = [
    "ClassifierServiceClientProtocol",
    "CloudantImageSource",
    "DocumentSourceError",
    "FakeClassifierServiceClient",
    "FakeDocumentSource",
    "NLCClient",
    "TrainingDocumentSourceProtocol",
]
