import time

from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.clients.store.models.Chunk import NearestChunk
from shared.clients.store.models.QueryRecord import QueryRecord
from shared.errors import ValidationError
from shared.helper.HelperConfig import HelperConfig
from shared.helper.text import normalize_text
from shared.helper.vector_codec import encode_vector
from shared.models.query import QueryOptions, QueryResponse, Source

NO_SOURCES_ANSWER = "No relevant sources found in the documents."

SYSTEM_PROMPT = " ".join(
    [
        "You are a local RAG assistant.",
        "Use only the provided sources to answer.",
        "If the answer is not in the sources, say you don't know based on the documents.",
    ]
)


def build_snippet(text: str, snippet_max: int) -> str:
    """Whitespace-normalised excerpt of at most snippet_max characters, plus "..." when cut."""
    normalized = normalize_text(text)
    if len(normalized) <= snippet_max:
        return normalized
    return f"{normalized[:snippet_max].rstrip()}..."


def build_context(rows: list[NearestChunk]) -> str:
    """Render retrieved chunks as numbered source blocks separated by blank lines."""
    blocks = []
    for index, row in enumerate(rows, start=1):
        page = row.page_number if row.page_number is not None else "n/a"
        header = f"Source {index} | {row.filename} | doc={row.document_id} | chunk={row.chunk_index} | page={page}"
        blocks.append(f"{header}\n{row.text}")
    return "\n\n".join(blocks)


class QueryService:
    """Answers questions from the stored documents: embed -> nearest chunks -> chat."""

    def __init__(
        self,
        helper_config: HelperConfig,
        store_client: StoreClientInterface,
        llm_client: LLMClientInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._store_client = store_client
        self._llm_client = llm_client

    ##########################################
    ################ HELPERS #################
    ##########################################

    def _build_sources(self, rows: list[NearestChunk], options: QueryOptions) -> list[Source]:
        if not options.include_sources:
            return []
        sources: list[Source] = []
        for row in rows:
            fields: dict = {
                "document_id": row.document_id,
                "page": row.page_number,
                "snippet": build_snippet(row.text, options.snippet_max),
            }
            if options.include_filename:
                fields["filename"] = row.filename
            if options.include_chunk_index:
                fields["chunk_index"] = row.chunk_index
            if options.include_distance:
                fields["distance"] = row.distance
            sources.append(Source(**fields))
        return sources

    ##########################################
    ############### CORE #####################
    ##########################################

    async def do_query(self, question: str, options: QueryOptions | None = None) -> QueryResponse:
        """Answer a question from the most similar stored chunks.

        Args:
            question (str): The natural language question.
            options (QueryOptions | None): Retrieval size and source shaping.

        Returns:
            QueryResponse: The answer and, if requested, the sources it was built from.

        Raises:
            ValidationError: If the question is blank or a model is not configured.
            DependencyError: If embedding, the store or chat fails.
        """
        options = options or QueryOptions()
        if not question or not question.strip():
            raise ValidationError("question is required")

        started = time.perf_counter()
        self.logging.info("Query: top_k=%d, question='%s'", options.top_k, question[:80])

        vectors = await self._llm_client.do_embed(question)
        literal = encode_vector(vectors[0], expected_dim=self._store_client.embed_dim)
        rows = await self._store_client.search_nearest(literal, options.top_k)

        if not rows:
            self.logging.info("Query: no chunks found.")
            return QueryResponse(answer=NO_SOURCES_ANSWER, sources=[])

        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": f"Question: {question}\n\nSources:\n{build_context(rows)}"},
        ]
        reply = await self._llm_client.do_chat_reply(messages)
        latency_ms = int((time.perf_counter() - started) * 1000)

        await self._store_client.insert_query_record(
            QueryRecord(
                question=question,
                answer=reply.content,
                model=self._llm_client.chat_model,
                top_k=options.top_k,
                latency_ms=latency_ms,
                prompt_tokens=reply.prompt_tokens,
                completion_tokens=reply.completion_tokens,
            )
        )
        self.logging.info("Query: answered from %d chunk(s) in %d ms.", len(rows), latency_ms)

        return QueryResponse(answer=reply.content, sources=self._build_sources(rows, options))
