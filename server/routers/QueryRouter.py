from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from server.models.requests import QueryRequest
from shared.models.query import QueryOptions

router = APIRouter(prefix="/v1/query", tags=["query"])


@router.post("")
async def query_documents(request: Request, body: QueryRequest) -> JSONResponse:
    """Answer a question from the ingested documents.

    Args:
        request (Request): FastAPI request (provides app.state.query_service).
        body (QueryRequest): JSON body with the question and optional retrieval settings.

    Returns:
        JSONResponse: {"answer": ..., "sources": [...]}. Source fields that were not
            requested are omitted.
    """
    query_service = request.app.state.query_service
    options = QueryOptions(**body.model_dump(exclude={"question"}, exclude_none=True))
    result = await query_service.do_query(body.question, options)
    return JSONResponse(content=result.model_dump(mode="json", exclude_unset=True))
