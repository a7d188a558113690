"""Ingestion service.

Takes a file on disk through hashing, de-duplication, parsing, chunking and
embedding, and persists the document, its chunks and their vectors in the
store.
"""

import asyncio
import hashlib
import os

from services.ingest.DocumentParser import DocumentParser
from services.ingest.chunker import chunk_text, validate_chunk_options
from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.clients.store.models.Chunk import ChunkCreate
from shared.clients.store.models.Document import Document, DocumentCreate, DocumentStatus
from shared.errors import DependencyError, ResourceError, ValidationError
from shared.helper.HelperConfig import HelperConfig
from shared.helper.vector_codec import encode_vector
from shared.models.ingest import IngestOptions, IngestResult

HASH_BLOCK_SIZE = 1024 * 1024


def _sha256_file(path: str) -> str:
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for block in iter(lambda: f.read(HASH_BLOCK_SIZE), b""):
            digest.update(block)
    return digest.hexdigest()


class IngestService:
    """Orchestrates the ingestion pipeline for single files."""

    def __init__(
        self,
        helper_config: HelperConfig,
        store_client: StoreClientInterface,
        llm_client: LLMClientInterface,
        parser: DocumentParser,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._store_client = store_client
        self._llm_client = llm_client
        self._parser = parser

    ##########################################
    ################ HELPERS #################
    ##########################################

    async def _hash_file(self, path: str) -> str:
        try:
            return await asyncio.to_thread(_sha256_file, path)
        except OSError as e:
            raise ResourceError(f"Could not read file '{path}': {e}") from e

    async def _set_status(self, document: Document, status: DocumentStatus) -> Document:
        """Move a document to the next status, refusing anything but a forward transition."""
        if not document.status.can_transition_to(status):
            raise ValidationError(
                f"Invalid status transition {document.status.value} -> {status.value}.",
                details={"document_id": document.id},
            )
        updated = await self._store_client.update_document_status(document.id, status)
        if updated is None:
            raise DependencyError(
                f"Document {document.id} vanished while updating its status.",
                details={"document_id": document.id},
            )
        return updated

    ##########################################
    ################# CORE ###################
    ##########################################

    async def do_ingest(self, file_path: str, options: IngestOptions | None = None) -> IngestResult:
        """Ingest one file.

        Args:
            file_path (str): Path of the file to ingest.
            options (IngestOptions | None): Chunking and de-duplication settings.

        Returns:
            IngestResult: The stored (or already existing) document and the number of chunks added.

        Raises:
            ResourceError: If the path does not exist, is not a regular file or cannot be read.
            ValidationError: If the file type is unsupported, the text is empty or the
                chunk options are invalid.
            DependencyError: If parsing/OCR, embedding or the store fails.
        """
        options = options or IngestOptions()
        absolute_path = os.path.abspath(file_path)

        try:
            stats = os.stat(absolute_path)
        except OSError as e:
            raise ResourceError(f"File not found: {absolute_path}", details={"path": absolute_path}) from e
        if not os.path.isfile(absolute_path):
            raise ResourceError("Path is not a file.", details={"path": absolute_path})

        checksum = await self._hash_file(absolute_path)

        existing = await self._store_client.find_document_by_checksum(checksum)
        if existing is not None:
            if not options.force:
                reason = "existing_failed" if existing.status == DocumentStatus.FAILED else "already_exists"
                self.logging.info("Skipping '%s': document %s with the same content exists (%s).", absolute_path, existing.id, reason)
                return IngestResult(document=existing, chunks_added=0, skipped=True, reason=reason)
            self.logging.info("Force re-ingest of '%s': deleting existing document %s.", absolute_path, existing.id)
            await self._store_client.delete_document(existing.id)

        parsed = await self._parser.parse(absolute_path)
        if not parsed.text:
            raise ValidationError("Parsed text is empty.", details={"path": absolute_path})

        validate_chunk_options(options.chunk_size, options.chunk_overlap)
        chunks = chunk_text(parsed.text, chunk_size=options.chunk_size, chunk_overlap=options.chunk_overlap)

        document = await self._store_client.create_document(
            DocumentCreate(
                filename=options.original_name or os.path.basename(absolute_path),
                file_type=parsed.file_type,
                file_size=stats.st_size,
                status=DocumentStatus.INDEXING,
                local_path=absolute_path,
                checksum=checksum,
                page_count=parsed.page_count,
                metadata={"ocr_applied": parsed.ocr_applied},
            )
        )
        self.logging.info("Indexing document %s ('%s'): %d chunk(s).", document.id, document.filename, len(chunks))

        chunks_added = 0
        try:
            for chunk in chunks:
                created = await self._store_client.create_chunk(
                    ChunkCreate(
                        document_id=document.id,
                        chunk_index=chunk.chunk_index,
                        text=chunk.text,
                        token_count=chunk.token_count,
                        start_offset=chunk.start_offset,
                        end_offset=chunk.end_offset,
                        embedding_model=self._llm_client.embed_model,
                    )
                )
                vectors = await self._llm_client.do_embed(chunk.text)
                literal = encode_vector(vectors[0], expected_dim=self._store_client.embed_dim)
                await self._store_client.insert_embedding(created.id, literal)
                chunks_added += 1

            document = await self._set_status(document, DocumentStatus.READY)
        except Exception as e:
            self.logging.error(
                "Ingest of document %s failed after %d chunk(s): %s",
                document.id,
                chunks_added,
                e,
            )
            await self._set_status(document, DocumentStatus.FAILED)
            raise

        self.logging.info("Document %s ready with %d chunk(s).", document.id, chunks_added)
        return IngestResult(document=document, chunks_added=chunks_added, skipped=False)
