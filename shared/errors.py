"""Error taxonomy shared by ingestion and retrieval.

Every failure raised by the core carries a kind so that callers (HTTP
adapters, the ingest runner) can tell a bad request from a broken backend
without parsing messages.
"""

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Discriminator for RAGError."""

    VALIDATION = "validation"
    DEPENDENCY = "dependency"
    RESOURCE = "resource"


class RAGError(Exception):
    """Base error for the ingestion and retrieval pipeline.

    Attributes:
        kind (ErrorKind): What went wrong, in broad terms.
        message (str): Human-readable description.
        details (dict): Optional context for logs and API responses.
    """

    kind: ErrorKind = ErrorKind.DEPENDENCY

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Serialise the error for an API response body."""
        body: dict[str, Any] = {"error": self.message, "kind": self.kind.value}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(RAGError):
    """Missing or invalid input: unsupported file type, bad chunk options, unset model."""

    kind = ErrorKind.VALIDATION


class DependencyError(RAGError):
    """A collaborator failed: backend status, OCR tool, subprocess exit, corrupt embedding."""

    kind = ErrorKind.DEPENDENCY


class ResourceError(RAGError):
    """The input resource cannot be used: missing path, not a file, unreadable content."""

    kind = ErrorKind.RESOURCE
