import logging
from contextlib import asynccontextmanager
from typing import Callable

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.requests import Request

from sse_relay import __version__
from sse_relay.config import Settings, settings as default_settings
from sse_relay.middleware import SecurityHeadersMiddleware
from sse_relay.rate_limit import limiter
from sse_relay.routers import control, health, sse
from sse_relay.services.relay import RelayServer

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.settings.validate_production()
    relay: RelayServer = app.state.relay
    relay.start()

    yield

    await relay.stop()


async def general_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error: %s", exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def create_app(
    settings: Settings | None = None,
    terminate: Callable[[], None] | None = None,
) -> FastAPI:
    """Build an app with its own relay instance.

    ``terminate`` replaces the default SIGTERM-to-self exit action.
    """
    settings = settings or default_settings
    app = FastAPI(
        title="SSE Relay",
        version=__version__,
        lifespan=lifespan,
        docs_url=None if settings.environment == "production" else "/docs",
        redoc_url=None if settings.environment == "production" else "/redoc",
    )
    app.state.settings = settings
    app.state.relay = RelayServer(settings, terminate=terminate)

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    # Middleware order (Starlette LIFO): CORSMiddleware → SecurityHeaders → SlowAPI
    # Added in reverse order so CORS runs outermost
    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins(),
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "Accept", "X-API-Key"],
    )

    app.include_router(health.router)
    app.include_router(sse.router)
    app.include_router(control.router)
    return app


app = create_app()
