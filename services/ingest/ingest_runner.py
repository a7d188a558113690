"""Ingest runner entry point.

Ingests one or more local files into the store without going through the
HTTP server.

Usage:
    python -m services.ingest.ingest_runner PATH [PATH ...] [--chunk-size N] [--chunk-overlap N] [--force]
"""

import argparse
import asyncio
import sys

from services.ingest.DocumentParser import DocumentParser
from services.ingest.IngestService import IngestService
from services.ingest.OcrPipeline import OcrPipeline
from shared.clients.llm.LLMClientManager import LLMClientManager
from shared.clients.store.StoreClientManager import StoreClientManager
from shared.errors import RAGError
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging
from shared.models.ingest import IngestOptions


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Ingest local documents into the RAG store.")
    parser.add_argument("paths", nargs="+", metavar="PATH", help="Files to ingest (.pdf, .docx, .txt, .md)")
    parser.add_argument("--chunk-size", type=int, default=800, help="Words per chunk (default: 800)")
    parser.add_argument("--chunk-overlap", type=int, default=100, help="Words shared by consecutive chunks (default: 100)")
    parser.add_argument("--force", action="store_true", help="Re-ingest files whose content is already stored")
    return parser.parse_args(argv)


async def main(argv: list[str] | None = None) -> int:
    """Ingest every given path and return the process exit code."""
    args = parse_args(argv)
    logger = setup_logging()
    config = HelperConfig(logger=logger)

    store_client = StoreClientManager(helper_config=config).get_client()
    llm_client = LLMClientManager(helper_config=config).get_client()

    failed = 0
    try:
        # the store is required, nothing can be ingested without it
        try:
            await store_client.boot()
            await store_client.do_ensure_schema()
        except RAGError as e:
            logger.error("Error booting store client %s: %s. Aborting.", store_client.get_engine_name(), e)
            return 1
        await llm_client.boot()

        ingest_service = IngestService(
            helper_config=config,
            store_client=store_client,
            llm_client=llm_client,
            parser=DocumentParser(helper_config=config, ocr_pipeline=OcrPipeline(helper_config=config)),
        )
        options = IngestOptions(chunk_size=args.chunk_size, chunk_overlap=args.chunk_overlap, force=args.force)

        for path in args.paths:
            try:
                result = await ingest_service.do_ingest(path, options)
            except RAGError as e:
                failed += 1
                logger.error("FAILED  %s: [%s] %s", path, e.kind.value, e.message, color="red")
                continue
            if result.skipped:
                logger.info("SKIPPED %s: %s (document %s)", path, result.reason, result.document.id, color="yellow")
            else:
                logger.info("OK      %s: %d chunk(s) (document %s)", path, result.chunks_added, result.document.id, color="green")
    finally:
        await llm_client.close()
        await store_client.close()

    logger.info("Done: %d of %d file(s) failed.", failed, len(args.paths), color="red" if failed else "green")
    return 1 if failed else 0


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
