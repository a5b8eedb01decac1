"""
Cloudant Document Source

HTTP client that reads image metadata documents from the photo application's
Cloudant database. The batch trainer uses these documents as raw training
data.

Patterns Applied:
- Connection pooling (single httpx.AsyncClient per source)
- Protocol for duck typing (FakeDocumentSource for tests)
- Custom namespaced exception
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any, Final, Protocol, runtime_checkable

import httpx

from src.core.exceptions import ClassifierCoordinatorError
from src.core.logging import get_logger

logger = get_logger(__name__)

# =============================================================================
# Module Constants
# =============================================================================

DEFAULT_TIMEOUT: Final[float] = 30.0
DESIGN_DOC: Final[str] = "main_design"
IMAGES_VIEW: Final[str] = "images"


# =============================================================================
# Custom Exceptions
# =============================================================================


class DocumentSourceError(ClassifierCoordinatorError):
    """Raised when training documents cannot be read."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


# =============================================================================
# Protocol for Duck Typing
# =============================================================================


@runtime_checkable
class TrainingDocumentSourceProtocol(Protocol):
    """Source of raw documents for training data."""

    async def fetch_documents(self, limit: int) -> list[dict[str, Any]]:
        """Return up to `limit` view rows' documents."""
        ...


# =============================================================================
# CloudantImageSource Implementation
# =============================================================================


class CloudantImageSource:
    """Reads the images view of a Cloudant database.

    The view returns two rows per image (the image document and its user
    document), so callers ask for twice the number of images they want.

    Attributes:
        base_url: Account URL, e.g. https://user.cloudant.com
        db_name: Database holding the image metadata
    """

    def __init__(
        self,
        username: str,
        password: str,
        db_name: str,
        host: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the document source.

        Args:
            username: Cloudant account user
            password: Cloudant password
            db_name: Database name
            host: Account URL (defaults to https://<username>.cloudant.com)
            timeout: Request timeout in seconds
            transport: Optional transport override (tests use httpx.MockTransport)
        """
        self.base_url = (host or f"https://{username}.cloudant.com").rstrip("/")
        self.db_name = db_name

        # Connection pooling: single client instance
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            auth=httpx.BasicAuth(username, password),
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    async def __aenter__(self) -> CloudantImageSource:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def fetch_documents(self, limit: int) -> list[dict[str, Any]]:
        """Fetch documents from the images view.

        Args:
            limit: Maximum number of view rows

        Returns:
            Documents of the returned rows (rows without a doc are skipped)

        Raises:
            DocumentSourceError: On HTTP or connection failures
        """
        path = f"/{self.db_name}/_design/{DESIGN_DOC}/_view/{IMAGES_VIEW}"
        params = {"limit": limit, "include_docs": "true"}

        try:
            response = await self._client.get(path, params=params)
        except httpx.HTTPError as e:
            msg = f"Failed to read training documents from {self.base_url}: {e}"
            raise DocumentSourceError(msg) from e

        if response.status_code != 200:
            msg = f"Cloudant returned status {response.status_code} for {path}"
            raise DocumentSourceError(msg, status_code=response.status_code)

        body: dict[str, Any] = response.json()
        if body.get("total_rows", 0) > limit:
            logger.warning(
                "training_documents_exceed_limit",
                total_rows=body.get("total_rows"),
                limit=limit,
            )

        return [row["doc"] for row in body.get("rows", []) if row.get("doc")]

    async def close(self) -> None:
        """Close the HTTP client connection pool."""
        await self._client.aclose()


# =============================================================================
# FakeDocumentSource for Testing
# =============================================================================


class FakeDocumentSource:
    """Fake document source returning preset documents."""

    def __init__(
        self,
        documents: list[Mapping[str, Any]] | None = None,
        error: Exception | None = None,
    ) -> None:
        self._documents = [dict(doc) for doc in documents or []]
        self._error = error
        self.requested_limits: list[int] = []

    async def fetch_documents(self, limit: int) -> list[dict[str, Any]]:
        await asyncio.sleep(0)
        self.requested_limits.append(limit)
        if self._error:
            raise self._error
        return self._documents[:limit]
