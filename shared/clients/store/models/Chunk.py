from datetime import datetime

from pydantic import BaseModel


class ChunkCreate(BaseModel):
    """Column values for a new chunk row. Chunks are immutable once written."""

    document_id: str
    chunk_index: int
    text: str
    token_count: int
    page_number: int | None = None
    start_offset: int | None = None
    end_offset: int | None = None
    embedding_model: str | None = None


class Chunk(ChunkCreate):
    id: str
    created_at: datetime | None = None


class NearestChunk(BaseModel):
    """One row of a nearest-neighbour search, joined with its document.

    distance is the cosine distance to the query vector; smaller is more similar.
    """

    chunk_id: str
    document_id: str
    page_number: int | None = None
    chunk_index: int
    text: str
    filename: str
    distance: float
