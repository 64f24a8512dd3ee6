"""Control endpoints for local publishers: publish, count, shutdown.

All of them are refused unless the caller is on the loopback interface.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import PlainTextResponse, Response
from pydantic import ValidationError

from sse_relay.dependencies import get_relay, require_local_publisher
from sse_relay.schemas.broadcast import PublishRequest, PublishResponse
from sse_relay.services.relay import RelayServer

router = APIRouter(tags=["control"], dependencies=[Depends(require_local_publisher)])


@router.post("/bcast", response_model=PublishResponse)
async def publish(request: Request, relay: RelayServer = Depends(get_relay)):
    """Broadcast ``{"event": ..., "data": ...}`` to every subscriber.

    The body is parsed here rather than as a parameter so that the origin
    check runs before any body validation.
    """
    try:
        data = PublishRequest.model_validate_json(await request.body())
    except ValidationError as exc:
        raise RequestValidationError(exc.errors(include_url=False))

    await relay.publish(data.data, data.event)
    return PublishResponse(success=True)


@router.get("/clients", response_class=PlainTextResponse)
async def count_subscribers(relay: RelayServer = Depends(get_relay)):
    return PlainTextResponse(str(relay.subscriber_count))


@router.get("/exit", response_class=PlainTextResponse)
async def request_shutdown(relay: RelayServer = Depends(get_relay)):
    if relay.request_shutdown():
        return PlainTextResponse("OK")
    return Response(status_code=503)
