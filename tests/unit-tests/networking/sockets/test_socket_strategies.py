import socket
import ssl

import pytest
import socks

from graphstore.networking.sockets.strategies import (
    PlainSocketStrategy,
    ProxiedSocketStrategy,
    SocketContext,
    TlsSocketStrategy,
)

PROXY = ("127.0.0.1", 1080)


@pytest.fixture
def sock(mocker):
    return mocker.Mock(spec=socket.socket)


class TestCreateSocket:
    def test_direct_socket_without_proxy(self):
        strategy = ProxiedSocketStrategy(PlainSocketStrategy())

        sock = strategy.create_socket(SocketContext())
        try:
            assert isinstance(sock, socket.socket)
            assert not isinstance(sock, socks.socksocket)
        finally:
            sock.close()

    def test_proxy_bound_socket_with_proxy(self):
        strategy = ProxiedSocketStrategy(PlainSocketStrategy())

        sock = strategy.create_socket(SocketContext(proxy_address=PROXY))
        try:
            assert isinstance(sock, socks.socksocket)
            assert sock.proxy[:4] == (socks.SOCKS5, "127.0.0.1", 1080, True)
        finally:
            sock.close()

    def test_plain_strategy_uses_context_family(self):
        sock = PlainSocketStrategy().create_socket(SocketContext(family=socket.AF_INET))
        try:
            assert sock.family == socket.AF_INET
            assert sock.type == socket.SOCK_STREAM
        finally:
            sock.close()


class TestConnectSocket:
    @pytest.mark.parametrize("resolved_ip", ["192.0.2.1", "203.0.113.7", "1.1.1.1"])
    def test_proxied_connect_uses_hostname(self, sock, resolved_ip):
        strategy = ProxiedSocketStrategy(PlainSocketStrategy())
        ctx = SocketContext(proxy_address=PROXY)

        strategy.connect_socket(
            10, sock, "data.example", 443, (resolved_ip, 443), None, ctx
        )

        sock.connect.assert_called_once_with(("data.example", 443))

    def test_direct_connect_uses_resolved_address(self, sock):
        strategy = ProxiedSocketStrategy(PlainSocketStrategy())

        strategy.connect_socket(
            10, sock, "data.example", 80, ("203.0.113.7", 80), None, SocketContext()
        )

        sock.connect.assert_called_once_with(("203.0.113.7", 80))

    def test_timeout_and_local_address(self, sock):
        PlainSocketStrategy().connect_socket(
            2.5,
            sock,
            "data.example",
            80,
            ("203.0.113.7", 80),
            ("0.0.0.0", 0),
            SocketContext(),
        )

        sock.settimeout.assert_called_once_with(2.5)
        sock.bind.assert_called_once_with(("0.0.0.0", 0))

    def test_failed_connect_closes_socket(self, sock):
        sock.connect.side_effect = ConnectionRefusedError()

        with pytest.raises(ConnectionRefusedError):
            PlainSocketStrategy().connect_socket(
                None, sock, "data.example", 80, ("203.0.113.7", 80), None, SocketContext()
            )

        sock.close.assert_called_once()


class TestTlsSocketStrategy:
    def test_tls_negotiated_after_connect_with_hostname(self, mocker, sock):
        ssl_context = mocker.Mock(spec=ssl.SSLContext)
        strategy = ProxiedSocketStrategy(TlsSocketStrategy(ssl_context))

        result = strategy.connect_socket(
            10,
            sock,
            "data.example",
            443,
            ("192.0.2.1", 443),
            None,
            SocketContext(proxy_address=PROXY),
        )

        sock.connect.assert_called_once_with(("data.example", 443))
        ssl_context.wrap_socket.assert_called_once_with(
            sock, server_hostname="data.example"
        )
        assert result is ssl_context.wrap_socket.return_value

    def test_failed_handshake_closes_socket(self, mocker, sock):
        ssl_context = mocker.Mock(spec=ssl.SSLContext)
        ssl_context.wrap_socket.side_effect = ssl.SSLCertVerificationError(
            "certificate verify failed"
        )

        with pytest.raises(ssl.SSLError):
            TlsSocketStrategy(ssl_context).connect_socket(
                10,
                sock,
                "data.example",
                443,
                ("203.0.113.7", 443),
                None,
                SocketContext(),
            )

        sock.close.assert_called_once()
