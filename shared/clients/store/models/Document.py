"""Document model as persisted in the relational store."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel


class DocumentStatus(str, Enum):
    """Ingestion state of a document. Forward-only: uploaded → indexing → ready | failed."""

    UPLOADED = "uploaded"
    INDEXING = "indexing"
    READY = "ready"
    FAILED = "failed"

    def can_transition_to(self, target: "DocumentStatus") -> bool:
        return target in _TRANSITIONS[self]


_TRANSITIONS: dict[DocumentStatus, set[DocumentStatus]] = {
    DocumentStatus.UPLOADED: {DocumentStatus.INDEXING},
    DocumentStatus.INDEXING: {DocumentStatus.READY, DocumentStatus.FAILED},
    DocumentStatus.READY: set(),
    DocumentStatus.FAILED: set(),
}


class DocumentCreate(BaseModel):
    """Column values for a new document row. id and timestamps are assigned by the store."""

    filename: str
    file_type: str
    file_size: int
    status: DocumentStatus = DocumentStatus.UPLOADED
    local_path: str
    checksum: str
    page_count: int | None = None
    metadata: dict[str, Any] = {}


class Document(DocumentCreate):
    """
    A stored document.

    Attributes:
        id:         Opaque identifier (uuid string).
        filename:   Display name (the original upload name when known).
        file_type:  Extension-derived type tag ("pdf", "docx", "txt", "md").
        file_size:  Size in bytes.
        status:     Ingestion state.
        local_path: Absolute path of the ingested file.
        checksum:   SHA-256 hex digest of the file content.
        page_count: Number of pages for paged formats.
        metadata:   Free-form mapping (e.g. whether OCR was applied).
    """

    id: str
    created_at: datetime | None = None
    updated_at: datetime | None = None
