"""IPv4/IPv6 socket addresses and name resolution."""

from __future__ import annotations

import socket

from minnow.errors import TaggedError


def _getaddrinfo(node: str, service: str, flags: int) -> tuple[int, tuple]:
    try:
        results = socket.getaddrinfo(node, service, socket.AF_INET, 0, 0, flags)
    except socket.gaierror as err:
        raise TaggedError(f"getaddrinfo({node}, {service})", err.errno, err.strerror) from err
    if not results:
        raise RuntimeError("getaddrinfo returned successfully but with no results")
    family, _type, _proto, _canonname, sockaddr = results[0]
    return family, sockaddr


def _normalize(family: int, sockaddr):
    if family == socket.AF_INET:
        host, port = sockaddr
        return (str(host), int(port))
    if family == socket.AF_INET6:
        host, port, *rest = sockaddr
        flowinfo, scope_id = (list(rest) + [0, 0])[:2]
        return (str(host), int(port), int(flowinfo), int(scope_id))
    return tuple(sockaddr) if isinstance(sockaddr, list) else sockaddr


class Address:
    """A socket address: an IPv4 or IPv6 host and port, or another family's address."""

    __slots__ = ("_family", "_sockaddr")

    def __init__(self, ip: str, port: int = 0) -> None:
        """Build from a numeric IPv4 address ("18.243.0.1") and a port; nothing is looked up."""
        if not 0 <= port <= 0xFFFF:
            raise ValueError(f"port out of range: {port}")
        flags = socket.AI_NUMERICHOST | socket.AI_NUMERICSERV
        self._family, self._sockaddr = _getaddrinfo(ip, str(port), flags)

    @classmethod
    def resolve(cls, hostname: str, service: str) -> Address:
        """Resolve a host name and a service name or number to an IPv4 address."""
        family, sockaddr = _getaddrinfo(hostname, service, socket.AI_ALL)
        return cls.from_sockaddr(family, sockaddr)

    @classmethod
    def from_sockaddr(cls, family: int, sockaddr) -> Address:
        """Wrap an address in the form the socket module uses for ``family``."""
        address = cls.__new__(cls)
        address._family = int(family)
        address._sockaddr = _normalize(int(family), sockaddr)
        return address

    @classmethod
    def from_ipv4_numeric(cls, ip_address: int) -> Address:
        """An IPv4 address (port 0) from its 32-bit numeric value."""
        if not 0 <= ip_address <= 0xFFFFFFFF:
            raise ValueError(f"IPv4 address out of range: {ip_address}")
        return cls.from_sockaddr(socket.AF_INET, (socket.inet_ntoa(ip_address.to_bytes(4, "big")), 0))

    def _is_internet(self) -> bool:
        return self._family in (socket.AF_INET, socket.AF_INET6)

    def ip_port(self) -> tuple[str, int]:
        """The numeric host string and the port."""
        if not self._is_internet():
            raise RuntimeError("Address.ip_port() called on non-Internet address")
        flags = socket.NI_NUMERICHOST | socket.NI_NUMERICSERV
        try:
            host, port = socket.getnameinfo(self._sockaddr, flags)
        except socket.gaierror as err:
            raise TaggedError("getnameinfo", err.errno, err.strerror) from err
        return host, int(port)

    def ip(self) -> str:
        return self.ip_port()[0]

    def port(self) -> int:
        return self.ip_port()[1]

    def family(self) -> int:
        return self._family

    def sockaddr(self):
        """The address in the form the socket module takes."""
        return self._sockaddr

    def ipv4_numeric(self) -> int:
        """The IPv4 address as a 32-bit number."""
        if self._family != socket.AF_INET:
            raise RuntimeError("ipv4_numeric called on non-IPV4 address")
        return int.from_bytes(socket.inet_aton(self._sockaddr[0]), "big")

    def __str__(self) -> str:
        if self._is_internet():
            ip, port = self.ip_port()
            return f"{ip}:{port}"
        return "(non-Internet address)"

    def __repr__(self) -> str:
        return f"Address(family={self._family}, sockaddr={self._sockaddr!r})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, Address):
            return NotImplemented
        return self._family == other._family and self._sockaddr == other._sockaddr

    def __hash__(self) -> int:
        return hash((self._family, self._sockaddr))