__version__ = "1.0.0"
__all__ = (
    "__version__",
    "GraphStore",
    "ProxyConfig",
    "RemoteGraphStore",
    "TransportSingleton",
)

import logging

from graphstore.config.models import ProxyConfig
from graphstore.networking.connection_pooling.connectors.transport_singleton import (
    TransportSingleton,
)
from graphstore.store import GraphStore, RemoteGraphStore

logger = logging.getLogger("graphstore")
logger.addHandler(logging.NullHandler())
