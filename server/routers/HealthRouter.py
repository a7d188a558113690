from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health(request: Request) -> JSONResponse:
    """Report whether the store answers a round trip."""
    store_client = request.app.state.store_client
    if not await store_client.do_healthcheck():
        return JSONResponse(status_code=503, content={"ok": False})
    return JSONResponse(content={"ok": True})
