import ssl
import threading
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from graphstore.networking.connection_pooling.connectors.transport_singleton import (
    TransportSingleton,
)

SOCKS_PROPERTIES = {"socksProxyHost": "127.0.0.1", "socksProxyPort": "1080"}


class TurtleHandler(BaseHTTPRequestHandler):
    # keep-alive, so pooled connections can be reused
    protocol_version = "HTTP/1.1"

    def do_GET(self):
        body = b'<http://example.org/a> <http://example.org/p> "x" .\n'
        self.send_response(HTTPStatus.OK)
        self.send_header("Content-Type", "text/turtle")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        pass


@pytest.fixture(autouse=True)
def reset_transport():
    TransportSingleton.reset()
    yield
    TransportSingleton.reset()


@pytest.fixture
def socks_properties():
    return dict(SOCKS_PROPERTIES)


@pytest.fixture
def local_server():
    """Start a loopback HTTP server, HTTPS when given a server ``SSLContext``.

    Returns the base URL.
    """
    servers = []

    def start(ssl_context: ssl.SSLContext | None = None) -> str:
        server = ThreadingHTTPServer(("127.0.0.1", 0), TurtleHandler)
        scheme = "http"
        if ssl_context is not None:
            server.socket = ssl_context.wrap_socket(server.socket, server_side=True)
            scheme = "https"
        threading.Thread(target=server.serve_forever, daemon=True).start()
        servers.append(server)
        return f"{scheme}://127.0.0.1:{server.server_port}/ds/data"

    yield start
    for server in servers:
        server.shutdown()
        server.server_close()
