"""SSE endpoint: long-lived stream of broadcast events."""

from fastapi import APIRouter, Depends, Request
from sse_starlette import EventSourceResponse

from sse_relay.config import settings
from sse_relay.dependencies import get_relay
from sse_relay.rate_limit import limiter
from sse_relay.services.fanout import FRAME_SEPARATOR
from sse_relay.services.relay import RelayServer

router = APIRouter(tags=["sse"])

# Transport-level ": ping" comments, ignored by EventSource parsers.
# The relay's own "ping" events come from the keep-alive driver.
COMMENT_PING_SECONDS = 15
RECEIVE_TIMEOUT_SECONDS = 1.0


async def _event_stream(request: Request, relay: RelayServer, address: str):
    """Per-client SSE generator."""
    subscriber = relay.subscribe(address)
    try:
        while not subscriber.closed:
            if await request.is_disconnected():
                break
            frame = await subscriber.receive(timeout=RECEIVE_TIMEOUT_SECONDS)
            if frame is not None:
                yield frame
    finally:
        relay.unsubscribe(subscriber)


# slowapi binds limits at import, so this reads the process-wide settings
# rather than the Settings passed to create_app().
@router.get("/sse")
@limiter.limit(lambda: settings.subscribe_rate_limit)
async def subscribe(request: Request, relay: RelayServer = Depends(get_relay)):
    """Stream of broadcast events.

    Connect with EventSource API:
      const es = new EventSource('/sse')
      es.addEventListener('service', (e) => { ... })
      es.onmessage = (e) => { ... }
    """
    address = request.client.host if request.client else "unknown"
    return EventSourceResponse(
        _event_stream(request, relay, address),
        headers={"Cache-Control": "no-cache"},
        ping=COMMENT_PING_SECONDS,
        sep=FRAME_SEPARATOR,
    )
