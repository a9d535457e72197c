from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlsplit

from .errors import ConfigurationError

log = logging.getLogger(__name__)

DEFAULT_SERVER = "127.0.0.1:8002"
DEFAULT_REFRESH_SECONDS = 5
CONNECT_TIMEOUT = 5.0
REQUEST_TIMEOUT = 10.0
PAGE_LIMIT = 100


@dataclass(frozen=True)
class ServerAddr:
    host: str
    port: int

    def __str__(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{host}:{self.port}"


def parse_server_addr(value: str) -> ServerAddr:
    """
    Parse 'host:port' (IPv6 hosts in brackets) into a ServerAddr.
    Raises ConfigurationError when either part is missing or invalid.
    """
    text = (value or "").strip()
    if not text or "://" in text:
        raise ConfigurationError(f"invalid server address: {value!r}")
    try:
        parts = urlsplit(f"//{text}")
        port = parts.port
    except ValueError as e:
        raise ConfigurationError(f"invalid server address: {value!r} ({e})") from e
    if not parts.hostname or port is None or port == 0:
        raise ConfigurationError(f"invalid server address: {value!r}")
    if parts.path or parts.query or parts.fragment or parts.username:
        raise ConfigurationError(f"invalid server address: {value!r}")
    return ServerAddr(parts.hostname, port)


@dataclass(frozen=True)
class SessionConfig:
    server_addr: ServerAddr
    skip_cert_verification: bool = True
    tenant_id: Optional[str] = None
    refresh_interval: float = float(DEFAULT_REFRESH_SECONDS)
    connect_timeout: float = CONNECT_TIMEOUT
    request_timeout: float = REQUEST_TIMEOUT
    page_limit: int = PAGE_LIMIT

    @property
    def base_url(self) -> str:
        return f"https://{self.server_addr}"

    @classmethod
    def from_options(
        cls,
        server: str,
        *,
        skip_cert_verification: bool = True,
        tenant_id: Optional[str] = None,
        refresh_seconds: float = DEFAULT_REFRESH_SECONDS,
    ) -> "SessionConfig":
        try:
            addr = parse_server_addr(server)
        except ConfigurationError as e:
            log.warning(f"{e}; falling back to {DEFAULT_SERVER}")
            addr = parse_server_addr(DEFAULT_SERVER)
        return cls(
            server_addr=addr,
            skip_cert_verification=skip_cert_verification,
            tenant_id=(tenant_id or "").strip() or None,
            refresh_interval=float(refresh_seconds),
        )
