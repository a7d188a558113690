"""Pydantic models for question answering."""

from pydantic import BaseModel, Field


class QueryOptions(BaseModel):
    top_k: int = Field(default=4, ge=1)
    snippet_max: int = Field(default=200, ge=1)
    include_sources: bool = True
    include_distance: bool = False
    include_filename: bool = True
    include_chunk_index: bool = False


class Source(BaseModel):
    """A retrieved chunk as reported to the caller.

    document_id, page and snippet are always set; the other fields only when the
    matching include_* option is on. Serialise with exclude_unset=True so that
    fields which were not requested are left out rather than sent as null.
    """

    document_id: str
    page: int | None = None
    snippet: str
    filename: str | None = None
    chunk_index: int | None = None
    distance: float | None = None


class QueryResponse(BaseModel):
    answer: str
    sources: list[Source]
