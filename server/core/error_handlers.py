from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from shared.errors import ErrorKind, RAGError

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.RESOURCE: 400,
    ErrorKind.DEPENDENCY: 502,
}


async def handle_rag_error(request: Request, exc: RAGError) -> JSONResponse:
    """Translate a pipeline error into a JSON error response."""
    status_code = STATUS_BY_KIND.get(exc.kind, 500)
    logging = getattr(request.app.state, "logging", None)
    if logging is not None:
        logging.warning("%s %s -> %d: %s", request.method, request.url.path, status_code, exc)
    return JSONResponse(status_code=status_code, content=exc.to_dict())


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RAGError, handle_rag_error)
