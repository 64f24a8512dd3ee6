from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 9900


class StartupError(RuntimeError):
    """Raised when the relay cannot start (bad listen address, missing TLS files)."""

    pass


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    listen: str = f"{DEFAULT_HOST}:{DEFAULT_PORT}"
    ssl_keyfile: str = "./ssl/server.key"
    ssl_certfile: str = "./ssl/server.cert"
    keepalive_seconds: float = 10.0
    shutdown_grace_seconds: float = 0.5
    environment: str = "development"
    log_level: str = "info"
    # Stored as comma-separated strings to avoid pydantic-settings
    # complex type parsing (json.loads) which fails on plain CSV values.
    cors_origins: str = "*"
    api_keys: str = ""
    subscribe_rate_limit: str = "60/minute"

    def get_cors_origins(self) -> list[str]:
        return [s.strip() for s in self.cors_origins.split(",") if s.strip()]

    def get_api_keys(self) -> list[str]:
        if not self.api_keys:
            return []
        return [s.strip() for s in self.api_keys.split(",") if s.strip()]

    def validate_production(self) -> None:
        if self.environment == "production":
            if not self.ssl_keyfile or not self.ssl_certfile:
                raise StartupError(
                    "SSL_KEYFILE and SSL_CERTFILE must be set in production."
                )
            if self.keepalive_seconds <= 0:
                raise StartupError("KEEPALIVE_SECONDS must be positive.")


def parse_listen_address(value: str | None) -> tuple[str, int]:
    """Split a ``host:port`` startup argument.

    Either side may be empty and falls back to the default. IPv6 hosts
    are written in brackets, e.g. ``[::1]:9900``.

    Raises:
        StartupError: the port is not an integer in 1..65535.
    """
    if not value:
        return DEFAULT_HOST, DEFAULT_PORT

    host, sep, port_str = value.rpartition(":")
    if not sep:
        # No colon at all: the whole value is a host
        host, port_str = value, ""
    elif "]" in port_str or (":" in host and not host.startswith("[")):
        # IPv6 literal without a port
        host, port_str = value, ""

    host = host.strip("[]") or DEFAULT_HOST
    if not port_str:
        return host, DEFAULT_PORT

    try:
        port = int(port_str)
    except ValueError:
        raise StartupError(f"Invalid port in listen address: {value!r}")
    if not 0 < port < 65536:
        raise StartupError(f"Port out of range in listen address: {value!r}")
    return host, port


settings = Settings()
