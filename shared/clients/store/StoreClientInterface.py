from abc import abstractmethod

from shared.clients.ClientInterface import ClientInterface
from shared.clients.store.models.Chunk import Chunk, ChunkCreate, NearestChunk
from shared.clients.store.models.Document import Document, DocumentCreate, DocumentStatus
from shared.clients.store.models.QueryRecord import QueryRecord
from shared.helper.HelperConfig import HelperConfig


class StoreClientInterface(ClientInterface):
    """Relational store for documents, chunks, embeddings and the query log.

    Embeddings are written and searched as pgvector literals (see
    shared.helper.vector_codec); their dimension is fixed per deployment by EMBED_DIM.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self.embed_dim = int(helper_config.get_number_val("EMBED_DIM", default=768))
        if self.embed_dim < 1:
            raise ValueError(f"EMBED_DIM must be positive, got {self.embed_dim}.")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "store"
        """
        return "store"

    ##########################################
    ################ SCHEMA ##################
    ##########################################

    @abstractmethod
    async def do_ensure_schema(self) -> None:
        """Create extensions, tables and indexes if they do not exist yet, in one transaction."""
        pass

    ##########################################
    ############### DOCUMENTS ################
    ##########################################

    @abstractmethod
    async def find_document_by_checksum(self, checksum: str) -> Document | None:
        """Return the first document whose content hash equals checksum, or None."""
        pass

    @abstractmethod
    async def get_document(self, document_id: str) -> Document | None:
        """Return a document by id, or None."""
        pass

    @abstractmethod
    async def list_documents(self) -> list[Document]:
        """Return all documents, newest first."""
        pass

    @abstractmethod
    async def create_document(self, document: DocumentCreate) -> Document:
        """Insert a document row and return it with id and timestamps."""
        pass

    @abstractmethod
    async def update_document_status(self, document_id: str, status: DocumentStatus) -> Document | None:
        """Set the status of a document and bump updated_at.

        Returns:
            Document | None: The updated document, or None if it does not exist.
        """
        pass

    @abstractmethod
    async def delete_document(self, document_id: str) -> bool:
        """Delete a document together with its chunks and embeddings.

        Returns:
            bool: True if a document was deleted.
        """
        pass

    ##########################################
    ########## CHUNKS / EMBEDDINGS ###########
    ##########################################

    @abstractmethod
    async def create_chunk(self, chunk: ChunkCreate) -> Chunk:
        """Insert a chunk row and return it with its id."""
        pass

    @abstractmethod
    async def insert_embedding(self, chunk_id: str, vector_literal: str) -> None:
        """Store the embedding of a chunk, keyed by the chunk id.

        Args:
            chunk_id (str): Id of the chunk the vector belongs to.
            vector_literal (str): Encoded vector, e.g. "[0.1,0.2]".
        """
        pass

    @abstractmethod
    async def search_nearest(self, vector_literal: str, top_k: int) -> list[NearestChunk]:
        """Return up to top_k chunks ordered by ascending distance to the vector.

        Args:
            vector_literal (str): Encoded query vector.
            top_k (int): Maximum number of rows.

        Returns:
            list[NearestChunk]: Rows joined with their document, closest first.
        """
        pass

    ##########################################
    ############### QUERY LOG ################
    ##########################################

    @abstractmethod
    async def insert_query_record(self, record: QueryRecord) -> None:
        """Append an entry to the query log."""
        pass
