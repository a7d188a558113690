"""
Shared fixtures for the test suite.

Provides: env-backed HelperConfig, an in-memory store client and a scripted
LLM client, so services can be exercised without Postgres or Ollama.
"""

import logging
import math
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from shared.clients.llm.models.ChatReply import ChatReply
from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.clients.store.models.Chunk import Chunk, ChunkCreate, NearestChunk
from shared.clients.store.models.Document import Document, DocumentCreate, DocumentStatus
from shared.clients.store.models.QueryRecord import QueryRecord
from shared.errors import DependencyError
from shared.helper.HelperConfig import HelperConfig
from shared.helper.vector_codec import decode_vector
from shared.models.config import EnvConfig

EMBED_DIM = 3
KEYWORDS = ("apple", "banana", "cherry")


def keyword_vector(text: str) -> list[float]:
    """Three-dimensional embedding counting the fruit keywords, never the zero vector."""
    lowered = text.lower()
    return [lowered.count(word) + 0.01 for word in KEYWORDS]


def cosine_distance(a: list[float], b: list[float]) -> float:
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    if norm == 0:
        return 1.0
    return 1.0 - sum(x * y for x, y in zip(a, b)) / norm


class InMemoryStoreClient(StoreClientInterface):
    """StoreClientInterface kept in dicts. Deletes cascade like the Postgres schema."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self.healthy = True
        self.documents: dict[str, Document] = {}
        self.chunks: dict[str, Chunk] = {}
        self.embeddings: dict[str, list[float]] = {}
        self.queries: list[QueryRecord] = []
        self._clock = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def _get_engine_name(self) -> str:
        return "Memory"

    def _get_required_config(self) -> list[EnvConfig]:
        return []

    def _now(self) -> datetime:
        self._clock += timedelta(seconds=1)
        return self._clock

    async def boot(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def do_healthcheck(self) -> bool:
        return self.healthy

    async def do_ensure_schema(self) -> None:
        pass

    async def find_document_by_checksum(self, checksum: str) -> Document | None:
        for document in self.documents.values():
            if document.checksum == checksum:
                return document
        return None

    async def get_document(self, document_id: str) -> Document | None:
        return self.documents.get(document_id)

    async def list_documents(self) -> list[Document]:
        return sorted(self.documents.values(), key=lambda d: d.created_at, reverse=True)

    async def create_document(self, document: DocumentCreate) -> Document:
        now = self._now()
        created = Document(id=str(uuid.uuid4()), created_at=now, updated_at=now, **document.model_dump())
        self.documents[created.id] = created
        return created

    async def update_document_status(self, document_id: str, status: DocumentStatus) -> Document | None:
        document = self.documents.get(document_id)
        if document is None:
            return None
        updated = document.model_copy(update={"status": status, "updated_at": self._now()})
        self.documents[document_id] = updated
        return updated

    async def delete_document(self, document_id: str) -> bool:
        if self.documents.pop(document_id, None) is None:
            return False
        for chunk_id in [c.id for c in self.chunks.values() if c.document_id == document_id]:
            del self.chunks[chunk_id]
            self.embeddings.pop(chunk_id, None)
        return True

    async def create_chunk(self, chunk: ChunkCreate) -> Chunk:
        if chunk.document_id not in self.documents:
            raise DependencyError("foreign key violation on chunks.document_id")
        created = Chunk(id=str(uuid.uuid4()), created_at=self._now(), **chunk.model_dump())
        self.chunks[created.id] = created
        return created

    async def insert_embedding(self, chunk_id: str, vector_literal: str) -> None:
        if chunk_id not in self.chunks:
            raise DependencyError("foreign key violation on embeddings.chunk_id")
        vector = decode_vector(vector_literal)
        if len(vector) != self.embed_dim:
            raise DependencyError(f"expected {self.embed_dim} dimensions, not {len(vector)}")
        self.embeddings[chunk_id] = vector

    async def search_nearest(self, vector_literal: str, top_k: int) -> list[NearestChunk]:
        query = decode_vector(vector_literal)
        rows = []
        for chunk_id, vector in self.embeddings.items():
            chunk = self.chunks[chunk_id]
            rows.append(
                NearestChunk(
                    chunk_id=chunk.id,
                    document_id=chunk.document_id,
                    page_number=chunk.page_number,
                    chunk_index=chunk.chunk_index,
                    text=chunk.text,
                    filename=self.documents[chunk.document_id].filename,
                    distance=cosine_distance(query, vector),
                )
            )
        rows.sort(key=lambda row: row.distance)
        return rows[:top_k]

    async def insert_query_record(self, record: QueryRecord) -> None:
        self.queries.append(record)


class FakeLLMClient:
    """Stands in for LLMClientInterface: keyword embeddings and a canned chat reply.

    Set fail_embed_on_call to make the n-th embed call (1-based) raise, embed_dim to
    return vectors of another size, or chat_error to make chat raise.
    """

    def __init__(self) -> None:
        self.embed_model = "test-embed"
        self.chat_model = "test-chat"
        self.embed_calls: list[str] = []
        self.chat_calls: list[list[dict]] = []
        self.reply = ChatReply(content="The answer is apple.", model="test-chat", prompt_tokens=42, completion_tokens=7)
        self.fail_embed_on_call: int | None = None
        self.embed_dim: int | None = None
        self.chat_error: Exception | None = None

    async def boot(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def do_healthcheck(self) -> bool:
        return True

    async def do_embed(self, texts: list[str] | str) -> list[list[float]]:
        texts = [texts] if isinstance(texts, str) else texts
        self.embed_calls.extend(texts)
        if self.fail_embed_on_call is not None and len(self.embed_calls) >= self.fail_embed_on_call:
            raise DependencyError("Ollama embed failed: 500 boom")
        vectors = [keyword_vector(text) for text in texts]
        if self.embed_dim is not None:
            vectors = [[0.5] * self.embed_dim for _ in texts]
        return vectors

    async def do_chat_reply(self, messages: list[dict]) -> ChatReply:
        self.chat_calls.append(messages)
        if self.chat_error is not None:
            raise self.chat_error
        return self.reply

    async def do_chat(self, messages: list[dict]) -> str:
        return (await self.do_chat_reply(messages)).content


@pytest.fixture
def helper_config(monkeypatch: pytest.MonkeyPatch, tmp_path) -> HelperConfig:
    """HelperConfig over a controlled environment."""
    monkeypatch.setenv("EMBED_DIM", str(EMBED_DIM))
    monkeypatch.setenv("LLM_EMBED_MODEL", "test-embed")
    monkeypatch.setenv("LLM_CHAT_MODEL", "test-chat")
    monkeypatch.setenv("UPLOAD_DIR", str(tmp_path / "uploads"))
    for key in ("OCR_ENABLED", "OCR_MIN_CHARS_PER_PAGE", "OCR_LANG", "OCR_DPI", "LLM_OLLAMA_API_KEY", "LLM_OLLAMA_BASE_URL", "UPLOAD_MAX_BYTES"):
        monkeypatch.delenv(key, raising=False)
    return HelperConfig(logger=logging.getLogger("doc_rag_bridge.tests"))


@pytest.fixture
def store_client(helper_config: HelperConfig) -> InMemoryStoreClient:
    return InMemoryStoreClient(helper_config=helper_config)


@pytest.fixture
def llm_client() -> FakeLLMClient:
    return FakeLLMClient()
