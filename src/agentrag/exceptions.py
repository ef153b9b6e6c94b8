"""
Exception hierarchy for the RAG engine.

Ingestion propagates these to its caller; retrieval converts them into an
empty result list at the service boundary.
"""

from typing import Any


class RAGError(Exception):
    """Base exception for all RAG engine errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """
        Initialize base exception with message and optional context.

        Args:
            message: Human-readable error message
            details: Optional dictionary of additional context for debugging
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation including details."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ValidationError(RAGError):
    """Raised for malformed points or inputs that are empty after sanitization."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(message, details)


class ModelError(RAGError):
    """Raised when the embedding model fails to load or to run inference."""


EmbeddingError = ModelError


class StoreUnavailableError(RAGError):
    """Raised when the vector store cannot be reached (refused, reset, timeout, failed health gate)."""

    def __init__(
        self,
        message: str,
        reason: str = "connection",
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Args:
            message: Error message
            reason: "timeout", "connection" or "health_gate"
            details: Additional context
        """
        self.reason = reason
        details = details or {}
        details["reason"] = reason
        super().__init__(message, details)


class StoreRejectedError(RAGError):
    """Raised when the vector store answers with a non-2xx status."""

    def __init__(
        self,
        message: str,
        status_code: int,
        body: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        self.status_code = status_code
        self.body = body
        details = details or {}
        details["status_code"] = status_code
        if body:
            details["body"] = body[:500]
        super().__init__(message, details)


class NotFoundError(RAGError):
    """Raised when a collection does not exist."""

    def __init__(self, collection_name: str, details: dict[str, Any] | None = None) -> None:
        details = details or {}
        details["collection"] = collection_name
        self.collection_name = collection_name
        super().__init__(f"Collection not found: {collection_name}", details)
