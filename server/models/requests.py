from pydantic import BaseModel, Field


class IngestRequest(BaseModel):
    path: str
    chunk_size: int | None = None
    chunk_overlap: int | None = None
    force: bool = False


class QueryRequest(BaseModel):
    question: str
    top_k: int | None = Field(default=None, ge=1)
    snippet_max: int | None = Field(default=None, ge=1)
    include_sources: bool | None = None
    include_distance: bool | None = None
    include_filename: bool | None = None
    include_chunk_index: bool | None = None
