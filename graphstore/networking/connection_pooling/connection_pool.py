import socket
import ssl
import threading
from collections.abc import Mapping
from typing import Any, NamedTuple

import socks
from urllib3 import HTTPConnectionPool, Timeout
from urllib3.connection import HTTPConnection
from urllib3.exceptions import (
    ConnectTimeoutError,
    LocationValueError,
    NewConnectionError,
    URLSchemeUnknown,
)
from urllib3.response import BaseHTTPResponse
from urllib3.util import parse_url
from urllib3.util.timeout import _DEFAULT_TIMEOUT

from graphstore.logger import get_logger
from graphstore.networking.resolvers import Address, Resolver, SystemResolver
from graphstore.networking.sockets.strategies import SocketContext, SocketStrategy

logger = get_logger(__name__)

DEFAULT_PORTS = {"http": 80, "https": 443}


class ConnectionKey(NamedTuple):
    """Route of a pooled connection. Built from the URL only, never from DNS."""

    scheme: str
    host: str
    port: int

    @classmethod
    def from_host(
        cls, scheme: str | None, host: str | None, port: int | None = None
    ) -> "ConnectionKey":
        if not host:
            raise LocationValueError("No host specified.")
        scheme = (scheme or "http").lower()
        return cls(scheme, host.lower(), port or DEFAULT_PORTS.get(scheme, 80))

    @classmethod
    def from_url(cls, url: str) -> "ConnectionKey":
        parsed = parse_url(url)
        return cls.from_host(parsed.scheme, parsed.host, parsed.port)


class StrategyHTTPConnection(HTTPConnection):
    """urllib3 connection whose socket comes from a :class:`SocketStrategy`.

    The host is first passed through the pool's resolver (a placeholder one
    when proxying), then the strategy creates and connects a socket for each
    resolved address until one succeeds. TLS, when the strategy does it,
    happens inside ``_new_conn`` and a TLS failure is never retried on another
    address.
    """

    def __init__(
        self,
        *args: Any,
        strategy: SocketStrategy,
        resolver: Resolver,
        socks_address: tuple[str, int] | None = None,
        **kwargs: Any,
    ):
        self.strategy = strategy
        self.resolver = resolver
        self.socks_address = socks_address
        super().__init__(*args, **kwargs)

    def _new_conn(self) -> socket.socket:
        if self.timeout is _DEFAULT_TIMEOUT:
            timeout = socket.getdefaulttimeout()
        else:
            timeout = self.timeout

        try:
            return self._connect_any(self.resolver.resolve(self._dns_host), timeout)
        except socket.timeout as e:
            raise ConnectTimeoutError(
                self,
                f"Connection to {self.host} timed out. (connect timeout={timeout})",
            ) from e
        except socks.ProxyError as e:
            if isinstance(e.socket_err, socket.timeout):
                raise ConnectTimeoutError(
                    self,
                    f"Connection to {self.host} timed out. (connect timeout={timeout})",
                ) from e
            raise NewConnectionError(
                self, f"Failed to establish a new connection through SOCKS proxy: {e}"
            ) from e
        except ssl.SSLError:
            raise
        except OSError as e:
            raise NewConnectionError(
                self, f"Failed to establish a new connection: {e}"
            ) from e

    def _connect_any(
        self, addresses: list[Address], timeout: float | None
    ) -> socket.socket:
        # addresses are tried in order, the last error wins
        error: OSError | None = None
        for address in addresses:
            ctx = SocketContext(proxy_address=self.socks_address, family=address.family)
            sock = None
            try:
                sock = self.strategy.create_socket(ctx)
                for option in self.socket_options or ():
                    sock.setsockopt(*option)
                return self.strategy.connect_socket(
                    timeout,
                    sock,
                    self._dns_host,
                    self.port,
                    (address.host, self.port),
                    self.source_address,
                    ctx,
                )
            except ssl.SSLError:
                raise
            except OSError as e:
                if sock is not None:
                    sock.close()
                logger.debug(
                    "Connection attempt failed",
                    host=self._dns_host,
                    address=address.host,
                    port=self.port,
                    error=str(e),
                )
                error = e

        if error is None:
            raise OSError(f"No address found for {self._dns_host}")
        raise error


class PlainConnectionPool(HTTPConnectionPool):
    scheme = "http"
    ConnectionCls = StrategyHTTPConnection


class SecureConnectionPool(HTTPConnectionPool):
    # TLS is negotiated by the socket strategy, so the plain pool is reused
    scheme = "https"
    ConnectionCls = StrategyHTTPConnection


class ConnectionPool:
    """Thread-safe registry of urllib3 pools, one per :class:`ConnectionKey`.

    Each scheme has its own socket strategy. urllib3 pools hand out every
    connection to a single caller at a time and take it back when the response
    is released, so the pools can be shared by any number of threads.
    """

    pool_classes_by_scheme = {
        "http": PlainConnectionPool,
        "https": SecureConnectionPool,
    }

    def __init__(
        self,
        strategies: Mapping[str, SocketStrategy],
        resolver: Resolver | None = None,
        proxy_address: tuple[str, int] | None = None,
        maxsize: int = 10,
        block: bool = False,
        timeout: Timeout | None = None,
    ):
        self.strategies = dict(strategies)
        self.resolver = resolver if resolver is not None else SystemResolver()
        self.proxy_address = proxy_address
        self.maxsize = maxsize
        self.block = block
        self.timeout = timeout if timeout is not None else Timeout()
        self._pools: dict[ConnectionKey, HTTPConnectionPool] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._pools)

    def _new_pool(self, key: ConnectionKey) -> HTTPConnectionPool:
        strategy = self.strategies.get(key.scheme)
        pool_cls = self.pool_classes_by_scheme.get(key.scheme)
        if strategy is None or pool_cls is None:
            raise URLSchemeUnknown(key.scheme)

        logger.debug(
            "Creating connection pool",
            scheme=key.scheme,
            host=key.host,
            port=key.port,
            proxied=self.proxy_address is not None,
        )
        return pool_cls(
            key.host,
            key.port,
            timeout=self.timeout,
            maxsize=self.maxsize,
            block=self.block,
            retries=False,
            strategy=strategy,
            resolver=self.resolver,
            socks_address=self.proxy_address,
        )

    def connection_from_key(self, key: ConnectionKey) -> HTTPConnectionPool:
        with self._lock:
            pool = self._pools.get(key)
            if pool is None:
                pool = self._new_pool(key)
                self._pools[key] = pool
            return pool

    def connection_from_host(
        self, scheme: str | None, host: str | None, port: int | None = None
    ) -> HTTPConnectionPool:
        return self.connection_from_key(ConnectionKey.from_host(scheme, host, port))

    def connection_from_url(self, url: str) -> HTTPConnectionPool:
        return self.connection_from_key(ConnectionKey.from_url(url))

    def urlopen(self, method: str, url: str, **kw: Any) -> BaseHTTPResponse:
        """Send one request on the pool of ``url``'s route.

        Keyword arguments go to ``HTTPConnectionPool.urlopen``.
        """
        pool = self.connection_from_url(url)
        return pool.urlopen(
            method, parse_url(url).request_uri, assert_same_host=False, **kw
        )

    def clear(self) -> None:
        """Close every pooled connection and forget all routes."""
        with self._lock:
            pools = list(self._pools.values())
            self._pools.clear()
        for pool in pools:
            pool.close()
