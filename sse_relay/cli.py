"""Command line entry point: ``sse-relay [host:port]``.

Serves the relay over HTTPS with uvicorn. Exits 0 after ``/exit`` or a
signal, 1 when the listen address or the TLS material is unusable.
"""

import argparse
import logging
import os

import uvicorn

from sse_relay.config import Settings, StartupError, parse_listen_address, settings
from sse_relay.main import create_app

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
GRACEFUL_SHUTDOWN_TIMEOUT_SECONDS = 5


def check_tls_material(config: Settings) -> None:
    for label, path in (
        ("key", config.ssl_keyfile),
        ("certificate", config.ssl_certfile),
    ):
        if not os.path.isfile(path) or not os.access(path, os.R_OK):
            raise StartupError(f"TLS {label} not readable: {path}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sse-relay",
        description="Relay events posted to /bcast to every /sse subscriber.",
    )
    parser.add_argument(
        "listen",
        nargs="?",
        default=None,
        help="host:port to listen on (default: LISTEN setting, 0.0.0.0:9900)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=settings.log_level.upper(), format=LOG_FORMAT)

    try:
        host, port = parse_listen_address(args.listen or settings.listen)
        check_tls_material(settings)
        settings.validate_production()
    except StartupError as exc:
        logger.error("Startup failed: %s", exc)
        return 1

    config = uvicorn.Config(
        create_app(settings),
        host=host,
        port=port,
        ssl_keyfile=settings.ssl_keyfile,
        ssl_certfile=settings.ssl_certfile,
        # Loopback checks must see the socket peer, never X-Forwarded-For
        proxy_headers=False,
        log_level=settings.log_level.lower(),
        timeout_graceful_shutdown=GRACEFUL_SHUTDOWN_TIMEOUT_SECONDS,
    )
    logger.info("SSE relay listening on %s port %d", host, port)
    try:
        uvicorn.Server(config).run()
    except OSError:
        logger.exception("Startup failed")
        return 1
    return 0
