import socket
from typing import NamedTuple, Protocol

# RFC 5737 TEST-NET-1, never routed on the public internet
PLACEHOLDER_IP = "192.0.2.1"


class Address(NamedTuple):
    family: int
    host: str


class Resolver(Protocol):
    def resolve(self, host: str) -> list[Address]: ...


class PlaceholderResolver:
    """Resolves every hostname to the same placeholder address.

    Used when a SOCKS proxy resolves names: the pool still gets an address for
    its bookkeeping, but no local DNS query is made, so the local resolver
    neither slows down nor leaks the destination.
    """

    ADDRESS = Address(socket.AF_INET, PLACEHOLDER_IP)

    def resolve(self, host: str) -> list[Address]:
        return [self.ADDRESS]


class SystemResolver:
    """Resolves through the operating system (``getaddrinfo``).

    Every TCP result is returned, in the order the system gives them, so the
    connection can try the next one when an address is unreachable.
    """

    def resolve(self, host: str) -> list[Address]:
        addresses = []
        for family, _, _, _, sockaddr in socket.getaddrinfo(
            host, None, type=socket.SOCK_STREAM
        ):
            address = Address(family, sockaddr[0])
            if address not in addresses:
                addresses.append(address)
        return addresses
