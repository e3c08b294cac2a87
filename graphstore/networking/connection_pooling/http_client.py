import contextlib
import ssl
import warnings
from collections.abc import Iterator
from dataclasses import dataclass

import httpx
from urllib3 import HTTPHeaderDict, Timeout
from urllib3 import exceptions as urllib3_exceptions
from urllib3.response import BaseHTTPResponse

from graphstore import __version__
from graphstore.config.models import ProxyConfig
from graphstore.errors import ConfigurationError, TransportFallbackWarning
from graphstore.logger import get_logger
from graphstore.networking.connection_pooling.connection_pool import ConnectionPool
from graphstore.networking.resolvers import PlaceholderResolver, SystemResolver
from graphstore.networking.sockets.strategies import (
    PlainSocketStrategy,
    ProxiedSocketStrategy,
    TlsSocketStrategy,
)
from graphstore.security.trust_policy import TrustPolicy

logger = get_logger(__name__)

CHUNK_SIZE = 65536
DEFAULT_POOL_MAXSIZE = 10

# order matters: NewConnectionError is a ConnectTimeoutError subclass
_EXCEPTION_MAP: tuple[tuple[type[Exception], type[httpx.TransportError]], ...] = (
    (urllib3_exceptions.NewConnectionError, httpx.ConnectError),
    (urllib3_exceptions.ConnectTimeoutError, httpx.ConnectTimeout),
    (urllib3_exceptions.ReadTimeoutError, httpx.ReadTimeout),
    (urllib3_exceptions.SSLError, httpx.ConnectError),
    (urllib3_exceptions.URLSchemeUnknown, httpx.UnsupportedProtocol),
    (urllib3_exceptions.ProtocolError, httpx.RemoteProtocolError),
    (urllib3_exceptions.HTTPError, httpx.TransportError),
)


@contextlib.contextmanager
def map_urllib3_exceptions(request: httpx.Request) -> Iterator[None]:
    try:
        yield
    except urllib3_exceptions.HTTPError as exc:
        for from_exc, to_exc in _EXCEPTION_MAP:
            if isinstance(exc, from_exc):
                raise to_exc(str(exc), request=request) from exc
        raise


def _urllib3_timeout(request: httpx.Request) -> Timeout:
    timeouts = request.extensions.get("timeout", {})
    connect = timeouts.get("connect")
    read = timeouts.get("read")
    return Timeout(
        connect=Timeout.DEFAULT_TIMEOUT if connect is None else connect,
        read=Timeout.DEFAULT_TIMEOUT if read is None else read,
    )


class ResponseStream(httpx.SyncByteStream):
    def __init__(self, response: BaseHTTPResponse, request: httpx.Request):
        self._response = response
        self._request = request

    def __iter__(self) -> Iterator[bytes]:
        with map_urllib3_exceptions(self._request):
            yield from self._response.stream(CHUNK_SIZE, decode_content=False)

    def close(self) -> None:
        # unread bytes would corrupt the next request on a reused connection
        self._response.drain_conn()
        self._response.release_conn()


class PooledTransport(httpx.BaseTransport):
    """httpx transport sending every request through a :class:`ConnectionPool`.

    Content decoding, redirects and retries are left to httpx (the pool never
    retries).
    """

    def __init__(self, pool: ConnectionPool):
        self.pool = pool

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        body = request.read()
        with map_urllib3_exceptions(request):
            response = self.pool.urlopen(
                request.method,
                str(request.url),
                body=body or None,
                headers=HTTPHeaderDict(request.headers.multi_items()),
                redirect=False,
                retries=False,
                preload_content=False,
                decode_content=False,
                timeout=_urllib3_timeout(request),
            )

        return httpx.Response(
            status_code=response.status,
            headers=list(response.headers.iteritems()),
            stream=ResponseStream(response, request),
            extensions={
                "http_version": b"HTTP/1.0" if response.version == 10 else b"HTTP/1.1",
                "reason_phrase": (response.reason or "").encode("latin-1"),
            },
        )

    def close(self) -> None:
        self.pool.clear()


@dataclass(frozen=True, slots=True)
class TransportBuild:
    """Outcome of :func:`build_transport`.

    ``error`` is set when the requested setup failed and ``client`` is the
    default (direct, strict TLS) transport instead.
    """

    client: httpx.Client
    proxied: bool = False
    insecure: bool = False
    error: ConfigurationError | None = None

    @property
    def degraded(self) -> bool:
        return self.error is not None


def create_client(
    ssl_context: ssl.SSLContext,
    proxy_address: tuple[str, int] | None = None,
    connect_timeout: float | None = None,
    read_timeout: float | None = None,
    maxsize: int = DEFAULT_POOL_MAXSIZE,
) -> httpx.Client:
    plain = PlainSocketStrategy()
    secure = TlsSocketStrategy(ssl_context)
    if proxy_address is not None:
        plain = ProxiedSocketStrategy(plain)
        secure = ProxiedSocketStrategy(secure)
        resolver = PlaceholderResolver()
    else:
        resolver = SystemResolver()

    pool = ConnectionPool(
        {"http": plain, "https": secure},
        resolver=resolver,
        proxy_address=proxy_address,
        maxsize=maxsize,
    )
    return httpx.Client(
        transport=PooledTransport(pool),
        timeout=httpx.Timeout(None, connect=connect_timeout, read=read_timeout),
        headers={"user-agent": f"python-graphstore/{__version__}"},
        # proxy environment variables would replace the pooled transport
        trust_env=False,
    )


def build_transport(
    config: ProxyConfig,
    *,
    connect_timeout: float | None = None,
    read_timeout: float | None = None,
    maxsize: int = DEFAULT_POOL_MAXSIZE,
) -> TransportBuild:
    """Assemble the HTTP client described by ``config``.

    An invalid SOCKS port or a TLS setup failure does not raise: the default
    transport is returned with the :class:`ConfigurationError` attached, logged
    at critical level and announced with a :class:`TransportFallbackWarning`.
    """
    if config.proxy_enabled:
        logger.info(
            "Detected SOCKS configuration",
            socks_proxy_host=config.socks_host,
            socks_proxy_port=config.socks_port,
        )

    try:
        proxy_address = config.proxy_address()
        ssl_context = TrustPolicy.build(config.insecure_tls)
    except ConfigurationError as error:
        logger.critical(
            "Could not create HTTP client, using the default transport",
            error=str(error),
            socks_proxy_host=config.socks_host,
            insecure_tls=config.insecure_tls,
        )
        warnings.warn(
            f"Requested transport unavailable ({error}); "
            "falling back to a direct connection with strict TLS",
            TransportFallbackWarning,
            stacklevel=2,
        )
        client = create_client(
            TrustPolicy.build(False),
            connect_timeout=connect_timeout,
            read_timeout=read_timeout,
            maxsize=maxsize,
        )
        return TransportBuild(client=client, error=error)

    client = create_client(
        ssl_context,
        proxy_address,
        connect_timeout=connect_timeout,
        read_timeout=read_timeout,
        maxsize=maxsize,
    )
    return TransportBuild(
        client=client,
        proxied=proxy_address is not None,
        insecure=config.insecure_tls,
    )
