"""FastAPI application entry point for doc_rag_bridge."""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.logging.logging_setup import setup_logging
from shared.helper.HelperConfig import HelperConfig
from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.clients.llm.LLMClientManager import LLMClientManager
from shared.clients.store.StoreClientManager import StoreClientManager
from shared.errors import RAGError
from services.ingest.DocumentParser import DocumentParser
from services.ingest.IngestService import IngestService
from services.ingest.OcrPipeline import OcrPipeline
from server.core.QueryService import QueryService
from server.core.error_handlers import register_error_handlers
from server.routers.DocumentsRouter import router as documents_router
from server.routers.HealthRouter import router as health_router
from server.routers.QueryRouter import router as query_router

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # when the app starts
    app.state.logging = logging
    app.state.helper_config = HelperConfig(logger=logging)

    store_client = StoreClientManager(helper_config=app.state.helper_config).get_client()
    llm_client = LLMClientManager(helper_config=app.state.helper_config).get_client()

    logging.info("Booting all clients...")
    for client in [store_client, llm_client]:
        await client.boot()
    logging.info("All clients booted successfully.", color="green")

    await check_connections(store_client, llm_client)
    await store_client.do_ensure_schema()

    app.state.store_client = store_client
    app.state.llm_client = llm_client

    app.state.ingest_service = IngestService(
        helper_config=app.state.helper_config,
        store_client=store_client,
        llm_client=llm_client,
        parser=DocumentParser(
            helper_config=app.state.helper_config,
            ocr_pipeline=OcrPipeline(helper_config=app.state.helper_config),
        ),
    )
    app.state.query_service = QueryService(
        helper_config=app.state.helper_config,
        store_client=store_client,
        llm_client=llm_client,
    )
    logging.info("Ready: store %s, LLM %s.", store_client.get_engine_name(), llm_client.get_engine_name(), color="cyan")

    # while the app is running...
    yield

    # when the app shuts down, close all client connections
    logging.info("Shutting down, closing all clients...")
    for client in [store_client, llm_client]:
        await client.close()
    logging.info("All clients closed.", color="cyan")


app = FastAPI(
    title="doc_rag_bridge",
    description=(
        "Local retrieval-augmented question answering over your own documents. "
        "PDF, DOCX, TXT and Markdown files are chunked, embedded with Ollama and stored in Postgres/pgvector "
        "via /v1/documents. Questions are answered from the closest chunks via POST /v1/query."
    ),
    version=app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)
app.include_router(health_router)
app.include_router(documents_router)
app.include_router(query_router)


async def check_connections(
    store_client: StoreClientInterface,
    llm_client: LLMClientInterface,
) -> None:
    """Check connectivity to all configured backends on startup.

    Store failures are fatal, nothing can be ingested or answered without it.
    LLM failures are non-fatal (ingest and query will fail later, but the server stays up).
    If the LLM is reachable, the embedding model's dimension is compared with EMBED_DIM.

    Raises:
        Exception: If the store is not reachable or the embedding dimension does not match.
    """
    if not await store_client.do_healthcheck():
        raise Exception(
            f"Store client '{store_client.__class__.__name__}' is not reachable. Cannot serve requests."
        )

    if not await llm_client.do_healthcheck():
        logging.warning(
            "LLM client '%s' is not reachable. Embedding and chat will fail until it is.",
            llm_client.__class__.__name__,
        )
        return

    try:
        vector_size = await llm_client.do_fetch_embedding_vector_size()
    except RAGError as e:
        logging.warning("Could not determine the embedding dimension of '%s': %s", llm_client.embed_model, e)
        return
    if vector_size != store_client.embed_dim:
        raise Exception(
            f"Embedding model '{llm_client.embed_model}' produces {vector_size}-dimensional vectors, "
            f"but EMBED_DIM is {store_client.embed_dim}."
        )


if __name__ == "__main__":
    import uvicorn

    host = os.getenv("APP_HOST", "127.0.0.1")
    port = int(os.getenv("APP_PORT", "3000"))
    logging.info(
        "Starting doc_rag_bridge API Server v%s from root dir: %s on %s:%d...",
        app_version,
        os.environ.get("ROOT_DIR", os.getcwd()),
        host,
        port,
    )
    uvicorn.run(app, host=host, port=port)
