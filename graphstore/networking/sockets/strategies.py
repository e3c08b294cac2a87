import socket
import ssl
from dataclasses import dataclass
from typing import Protocol

import socks

from graphstore.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class SocketContext:
    """Per connection attempt state handed to a :class:`SocketStrategy`."""

    proxy_address: tuple[str, int] | None = None
    family: int = socket.AF_INET


class SocketStrategy(Protocol):
    """Creates and connects the raw socket of one pooled connection."""

    def create_socket(self, ctx: SocketContext) -> socket.socket: ...

    def connect_socket(
        self,
        timeout: float | None,
        sock: socket.socket,
        target_host: str,
        target_port: int,
        resolved_address: tuple[str, int],
        local_address: tuple[str, int] | None,
        ctx: SocketContext,
    ) -> socket.socket: ...


class PlainSocketStrategy:
    """Direct TCP sockets connected to the caller-resolved address."""

    def create_socket(self, ctx: SocketContext) -> socket.socket:
        return socket.socket(ctx.family, socket.SOCK_STREAM)

    def connect_socket(
        self,
        timeout: float | None,
        sock: socket.socket,
        target_host: str,
        target_port: int,
        resolved_address: tuple[str, int],
        local_address: tuple[str, int] | None,
        ctx: SocketContext,
    ) -> socket.socket:
        try:
            sock.settimeout(timeout)
            if local_address:
                sock.bind(local_address)
            sock.connect(resolved_address)
        except Exception:
            sock.close()
            raise
        return sock


class TlsSocketStrategy(PlainSocketStrategy):
    """Connects like :class:`PlainSocketStrategy`, then negotiates TLS."""

    def __init__(self, ssl_context: ssl.SSLContext):
        self.ssl_context = ssl_context

    def connect_socket(
        self,
        timeout: float | None,
        sock: socket.socket,
        target_host: str,
        target_port: int,
        resolved_address: tuple[str, int],
        local_address: tuple[str, int] | None,
        ctx: SocketContext,
    ) -> socket.socket:
        sock = super().connect_socket(
            timeout,
            sock,
            target_host,
            target_port,
            resolved_address,
            local_address,
            ctx,
        )
        try:
            return self.ssl_context.wrap_socket(sock, server_hostname=target_host)
        except Exception:
            sock.close()
            raise


class ProxiedSocketStrategy:
    """Routes another strategy through a SOCKS proxy.

    When the context carries a proxy address the socket is a PySocks
    ``socksocket`` with remote DNS, and the connect address is rebuilt from the
    literal hostname so the proxy, not the local resolver, resolves it. Without
    a proxy address both calls go straight to the wrapped strategy.
    """

    def __init__(self, inner: SocketStrategy, proxy_type: int = socks.SOCKS5):
        self.inner = inner
        self.proxy_type = proxy_type

    def create_socket(self, ctx: SocketContext) -> socket.socket:
        if ctx.proxy_address is None:
            return self.inner.create_socket(ctx)

        proxy_host, proxy_port = ctx.proxy_address
        sock = socks.socksocket(ctx.family, socket.SOCK_STREAM)
        sock.set_proxy(self.proxy_type, proxy_host, proxy_port, rdns=True)
        return sock

    def connect_socket(
        self,
        timeout: float | None,
        sock: socket.socket,
        target_host: str,
        target_port: int,
        resolved_address: tuple[str, int],
        local_address: tuple[str, int] | None,
        ctx: SocketContext,
    ) -> socket.socket:
        if ctx.proxy_address is not None:
            # drop the (placeholder) IP, the proxy resolves the hostname
            resolved_address = (target_host, target_port)
            logger.debug(
                "Connecting through SOCKS proxy",
                proxy=ctx.proxy_address,
                target=resolved_address,
            )
        return self.inner.connect_socket(
            timeout,
            sock,
            target_host,
            target_port,
            resolved_address,
            local_address,
            ctx,
        )
