import os
import uuid

from fastapi import APIRouter, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse

from server.models.requests import IngestRequest
from shared.errors import ValidationError
from shared.models.ingest import IngestOptions

router = APIRouter(prefix="/v1/documents", tags=["documents"])

UPLOAD_READ_SIZE = 1024 * 1024


def _build_options(chunk_size: int | None, chunk_overlap: int | None, force: bool, original_name: str | None = None) -> IngestOptions:
    values: dict = {"force": force, "original_name": original_name}
    if chunk_size is not None:
        values["chunk_size"] = chunk_size
    if chunk_overlap is not None:
        values["chunk_overlap"] = chunk_overlap
    return IngestOptions(**values)


async def _store_upload(file: UploadFile, upload_dir: str, max_bytes: int) -> str:
    """Write an upload to upload_dir under a random name that keeps the extension.

    Raises:
        ValidationError: If the upload exceeds max_bytes. The partial file is removed.
    """
    os.makedirs(upload_dir, exist_ok=True)
    ext = os.path.splitext(file.filename or "")[1]
    target = os.path.join(upload_dir, f"{uuid.uuid4()}{ext}")

    written = 0
    with open(target, "wb") as out:
        while block := await file.read(UPLOAD_READ_SIZE):
            written += len(block)
            if written > max_bytes:
                break
            out.write(block)
    if written > max_bytes:
        os.remove(target)
        raise ValidationError("File too large.", details={"max_bytes": max_bytes})
    return target


@router.get("")
async def list_documents(request: Request) -> JSONResponse:
    """List all documents, newest first."""
    store_client = request.app.state.store_client
    documents = await store_client.list_documents()
    return JSONResponse(content={"items": [document.model_dump(mode="json") for document in documents]})


@router.post("")
async def ingest_document(request: Request, body: IngestRequest) -> JSONResponse:
    """Ingest a file that already exists on the server's file system.

    Args:
        request (Request): FastAPI request (provides app.state.ingest_service).
        body (IngestRequest): JSON body with the path and optional chunking settings.

    Returns:
        JSONResponse: The ingest result.
    """
    ingest_service = request.app.state.ingest_service
    options = _build_options(body.chunk_size, body.chunk_overlap, body.force)
    result = await ingest_service.do_ingest(body.path, options)
    return JSONResponse(content=result.model_dump(mode="json"))


@router.post("/upload")
async def upload_document(
    request: Request,
    file: UploadFile | None = File(default=None),
    chunk_size: int | None = Form(default=None),
    chunk_overlap: int | None = Form(default=None),
    force: bool = Form(default=False),
) -> JSONResponse:
    """Store an uploaded file and ingest it under its original name."""
    if file is None:
        raise ValidationError("file is required")

    helper_config = request.app.state.helper_config
    upload_dir = os.path.abspath(helper_config.get_string_val("UPLOAD_DIR", default="data/uploads"))
    max_bytes = int(helper_config.get_number_val("UPLOAD_MAX_BYTES", default=25 * 1024 * 1024))

    stored_path = await _store_upload(file, upload_dir, max_bytes)
    request.app.state.logging.info("Stored upload '%s' as '%s'", file.filename, stored_path)

    ingest_service = request.app.state.ingest_service
    options = _build_options(chunk_size, chunk_overlap, force, original_name=file.filename or None)
    result = await ingest_service.do_ingest(stored_path, options)
    return JSONResponse(content=result.model_dump(mode="json"))


@router.delete("/{document_id}")
async def delete_document(request: Request, document_id: str) -> JSONResponse:
    """Delete a document with its chunks and embeddings."""
    store_client = request.app.state.store_client
    document = await store_client.get_document(document_id)
    # a concurrent delete may win between the lookup and the delete
    if document is None or not await store_client.delete_document(document_id):
        return JSONResponse(status_code=404, content={"error": f"Document {document_id} not found."})
    request.app.state.logging.info("Deleted document %s (%s)", document.id, document.filename)
    return JSONResponse(content={"deleted": True})
