"""Errors and warnings raised by the graph store client."""


class GraphStoreError(Exception):
    """Base class for graph store errors."""


class ConfigurationError(GraphStoreError):
    """Raised when the TLS or SOCKS setup of the transport is invalid."""


class TransportError(GraphStoreError):
    """A dataset operation failed on the wire.

    Attributes:
        operation: Name of the facade operation, e.g. ``get_named_graph``
        target_uri: The graph URI, or the data server URI for the default graph
        cause: The underlying exception
    """

    def __init__(self, operation: str, target_uri: str, cause: BaseException):
        super().__init__(f"{operation} failed for {target_uri}: {cause}")
        self.operation = operation
        self.target_uri = target_uri
        self.cause = cause


class SecurityDowngradeWarning(UserWarning):
    """Emitted when certificate and hostname verification are switched off."""


class TransportFallbackWarning(RuntimeWarning):
    """Emitted when the requested transport could not be built and the default
    (direct, strict TLS) transport was installed instead."""
