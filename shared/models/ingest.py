"""Pydantic models for document ingestion."""

from typing import Literal

from pydantic import BaseModel

from shared.clients.store.models.Document import Document


class IngestOptions(BaseModel):
    """Per-call ingestion settings.

    chunk_size and chunk_overlap are counted in words. original_name replaces the
    on-disk file name as the document's display name (used for uploads).
    """

    chunk_size: int = 800
    chunk_overlap: int = 100
    original_name: str | None = None
    force: bool = False


class IngestResult(BaseModel):
    """Outcome of one ingestion call."""

    document: Document
    chunks_added: int
    skipped: bool
    reason: Literal["already_exists", "existing_failed"] | None = None
