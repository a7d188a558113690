from pydantic import BaseModel


class QueryRecord(BaseModel):
    """Append-only audit entry for an answered question."""

    question: str
    answer: str | None = None
    model: str | None = None
    top_k: int | None = None
    latency_ms: int | None = None
    prompt_tokens: int | None = None
    completion_tokens: int | None = None
