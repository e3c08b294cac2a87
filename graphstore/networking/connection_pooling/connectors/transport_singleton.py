# Process-wide transport, built once
import atexit
import threading

import httpx

from graphstore.config.models import ProxyConfig
from graphstore.logger import get_logger
from graphstore.networking.connection_pooling.http_client import (
    DEFAULT_POOL_MAXSIZE,
    TransportBuild,
    build_transport,
)

logger = get_logger(__name__)


class TransportSingleton:
    """Holds the HTTP client shared by every :class:`RemoteGraphStore`.

    The first ``ensure_initialized`` call builds the client under a lock; the
    check is repeated inside the lock so that concurrent first callers still
    install exactly one client.
    """

    _build: TransportBuild | None = None
    _lock = threading.Lock()

    @classmethod
    def ensure_initialized(
        cls,
        config: ProxyConfig | None = None,
        *,
        connect_timeout: float | None = None,
        read_timeout: float | None = None,
        maxsize: int = DEFAULT_POOL_MAXSIZE,
    ) -> httpx.Client:
        """Return the process-wide client, building it on the first call.

        The arguments only matter to the call that builds the client; later
        calls get the installed client whatever they pass.
        """
        build = cls._build
        if build is None:
            with cls._lock:
                if cls._build is None:
                    if config is None:
                        config = ProxyConfig.from_properties()
                    cls._build = build_transport(
                        config,
                        connect_timeout=connect_timeout,
                        read_timeout=read_timeout,
                        maxsize=maxsize,
                    )
                    logger.info(
                        "HTTP transport installed",
                        proxied=cls._build.proxied,
                        insecure=cls._build.insecure,
                        degraded=cls._build.degraded,
                        connect_timeout=connect_timeout,
                        read_timeout=read_timeout,
                    )
                build = cls._build
        return build.client

    @classmethod
    def get_build(cls) -> TransportBuild | None:
        return cls._build

    @classmethod
    def reset(cls) -> None:
        """Close and drop the installed client. Only for interpreter exit and tests."""
        with cls._lock:
            build, cls._build = cls._build, None
        if build is not None:
            build.client.close()


atexit.register(TransportSingleton.reset)
