from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from sse_relay.dependencies import get_relay
from sse_relay.schemas.health import HealthResponse
from sse_relay.services.relay import RelayServer
from sse_relay.services.shutdown import ShutdownState

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(relay: RelayServer = Depends(get_relay)):
    if relay.state is ShutdownState.RUNNING:
        return HealthResponse(status="healthy", state=relay.state.value)
    return JSONResponse(
        status_code=503,
        content={"status": "draining", "state": relay.state.value},
    )
