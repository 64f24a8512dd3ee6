import ipaddress
import logging

from fastapi import Depends, HTTPException, Request, Security
from fastapi.security import APIKeyHeader

from sse_relay.services.relay import RelayServer

logger = logging.getLogger(__name__)

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


def get_relay(request: Request) -> RelayServer:
    return request.app.state.relay


def is_loopback(host: str | None) -> bool:
    """True for 127.0.0.0/8, ::1 and IPv4-mapped loopback."""
    if not host:
        return False
    try:
        ip = ipaddress.ip_address(host)
    except ValueError:
        return False
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        ip = ip.ipv4_mapped
    return ip.is_loopback


async def require_loopback(request: Request) -> None:
    """Refuse control calls that do not come from the local machine.

    Uses the socket peer address only; forwarding headers are not trusted.
    """
    host = request.client.host if request.client else None
    if not is_loopback(host):
        logger.warning(
            "Forbidden %s %s from %s", request.method, request.url.path, host
        )
        raise HTTPException(status_code=403, detail="Forbidden")


async def verify_api_key(
    request: Request,
    api_key: str | None = Security(api_key_header),
) -> str:
    keys = request.app.state.settings.get_api_keys()
    if not keys:
        # No keys configured: loopback origin is the only check
        return ""
    if not api_key or api_key not in keys:
        raise HTTPException(status_code=401, detail="Invalid or missing API key")
    return api_key


async def require_local_publisher(
    _origin: None = Depends(require_loopback),
    _api_key: str = Depends(verify_api_key),
) -> None:
    pass
