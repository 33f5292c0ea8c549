"""Network sockets built on reference-counted file descriptors."""

from __future__ import annotations

import socket
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager

from minnow.address import Address
from minnow.errors import UnixError
from minnow.file_descriptor import FileDescriptor

_SO_BINDTODEVICE = getattr(socket, "SO_BINDTODEVICE", 25)
_AF_PACKET = getattr(socket, "AF_PACKET", 17)


def _system_call(what: str, func: Callable, *args):
    """Call ``func``, turning any OSError into a UnixError tagged with ``what``."""
    try:
        return func(*args)
    except OSError as err:
        raise UnixError(what, err.errno or 0) from err


class Socket(FileDescriptor):
    """Base class for network sockets; normally used through a subclass."""

    def __init__(self, domain: int, type_: int, protocol: int = 0) -> None:
        try:
            sock = socket.socket(domain, type_, protocol)
        except OSError as err:
            raise UnixError("socket", err.errno or 0) from err
        super().__init__(sock.detach())

    def _adopt(self, fd: FileDescriptor, domain: int, type_: int, protocol: int = 0) -> None:
        """Take over ``fd``, checking that it is a socket of the expected kind."""
        self._fd = fd._fd
        if self._getsockopt(socket.SOL_SOCKET, socket.SO_DOMAIN) != domain:
            raise RuntimeError("socket domain mismatch")
        if self._getsockopt(socket.SOL_SOCKET, socket.SO_TYPE) != type_:
            raise RuntimeError("socket type mismatch")
        if self._getsockopt(socket.SOL_SOCKET, socket.SO_PROTOCOL) != protocol:
            raise RuntimeError("socket protocol mismatch")

    @contextmanager
    def _borrow(self) -> Iterator[socket.socket]:
        """A socket object on this descriptor that does not own it."""
        try:
            sock = socket.socket(fileno=self.fd_num())
        except OSError as err:
            raise UnixError("socket", err.errno or 0) from err
        try:
            sock.setblocking(self.blocking())
            yield sock
        finally:
            sock.detach()

    def _getsockopt(self, level: int, option: int) -> int:
        with self._borrow() as sock:
            return _system_call("getsockopt", sock.getsockopt, level, option)

    def _setsockopt(self, level: int, option: int, value) -> None:
        with self._borrow() as sock:
            _system_call("setsockopt", sock.setsockopt, level, option, value)

    def _get_address(self, name: str, getter: Callable) -> Address:
        with self._borrow() as sock:
            raw = _system_call(name, getter, sock)
            return Address.from_sockaddr(sock.family, raw)

    def bind(self, address: Address) -> None:
        """Bind to a local address, usually before listening or receiving."""
        with self._borrow() as sock:
            _system_call("bind", sock.bind, address.sockaddr())

    def bind_to_device(self, device_name: str) -> None:
        """Restrict the socket to one network device."""
        self._setsockopt(socket.SOL_SOCKET, _SO_BINDTODEVICE, device_name.encode())

    def connect(self, address: Address) -> None:
        """Connect to a peer; on a non-blocking socket this may complete later."""
        with self._borrow() as sock:
            self._fd_call("connect", sock.connect, address.sockaddr())

    def shutdown(self, how: int) -> None:
        """Shut down reading (SHUT_RD), writing (SHUT_WR) or both (SHUT_RDWR)."""
        with self._borrow() as sock:
            _system_call("shutdown", sock.shutdown, how)
        if how == socket.SHUT_RD:
            self._register_read()
        elif how == socket.SHUT_WR:
            self._register_write()
        elif how == socket.SHUT_RDWR:
            self._register_read()
            self._register_write()
        else:
            raise RuntimeError("Socket.shutdown() called with invalid `how`")

    def local_address(self) -> Address:
        return self._get_address("getsockname", socket.socket.getsockname)

    def peer_address(self) -> Address:
        return self._get_address("getpeername", socket.socket.getpeername)

    def set_reuseaddr(self) -> None:
        """Allow the local address to be reused sooner."""
        self._setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

    def throw_if_error(self) -> None:
        """Raise the pending socket error, if there is one."""
        socket_error = self._getsockopt(socket.SOL_SOCKET, socket.SO_ERROR)
        if socket_error:
            raise UnixError("socket error", socket_error)


class DatagramSocket(Socket):
    """A socket that sends and receives whole datagrams."""

    def recv(self, size: int | None = None) -> tuple[Address, bytes] | None:
        """Receive one datagram and its sender's address.

        Returns None if a non-blocking socket has nothing to read; raises if
        the datagram is larger than ``size`` (a default size if not given).
        """
        size = size or self.READ_BUFFER_SIZE
        buf = bytearray(size)
        with self._borrow() as sock:
            result = self._fd_call("recvfrom", sock.recvfrom_into, buf, 0, socket.MSG_TRUNC)
            family = sock.family
        self._register_read()
        if result is None:
            return None
        length, source = result
        if length > size:
            raise RuntimeError(f"recvfrom (oversized datagram of length {length})")
        if source is None:
            raise RuntimeError("recvfrom gave invalid namelen")
        return Address.from_sockaddr(family, source), bytes(buf[:length])

    def recv_vectored(self, sizes: Sequence[int]) -> tuple[Address, list[bytes]] | None:
        """Receive one datagram spread over buffers of the given sizes.

        A last size of 0 is replaced by a default size. Each returned buffer is
        cut to what was received. Returns None if a non-blocking socket would block.
        """
        if not sizes:
            raise RuntimeError("DatagramSocket.recv called with no payload buffers")
        sizes = list(sizes)
        if sizes[-1] == 0:
            sizes[-1] = self.READ_BUFFER_SIZE
        buffers = [bytearray(size) for size in sizes]
        total = self._check_buffers(buffers)
        with self._borrow() as sock:
            result = self._fd_call("recvmsg", sock.recvmsg_into, buffers, 0, socket.MSG_TRUNC)
            family = sock.family
        self._register_read()
        if result is None:
            return None
        length, _ancdata, msg_flags, source = result
        if length > total:
            raise RuntimeError(f"recvmsg (oversized datagram of length {length})")
        if msg_flags & socket.MSG_TRUNC:
            raise RuntimeError("recvmsg (oversized datagram indicated only by MSG_TRUNC)")
        if source is None:
            raise RuntimeError("recvmsg gave invalid namelen")
        return Address.from_sockaddr(family, source), self._split(b"".join(buffers)[:length], sizes)

    def send(self, payload, destination: Address | None = None) -> None:
        """Send a datagram, to ``destination`` or else to the connected peer."""
        payload = bytes(payload)
        with self._borrow() as sock:
            if destination is None:
                sent = self._fd_call("sendto", sock.send, payload)
            else:
                sent = self._fd_call("sendto", sock.sendto, payload, destination.sockaddr())
        self._register_write()
        if (sent or 0) != len(payload):
            raise RuntimeError("sendto sent some length other than that of payload")

    def send_vectored(self, payloads: Sequence, destination: Address | None = None) -> None:
        """Send one datagram gathered from several non-empty buffers."""
        buffers = [bytes(p) for p in payloads]
        total = self._check_buffers(buffers)
        with self._borrow() as sock:
            if destination is None:
                sent = self._fd_call("sendmsg", sock.sendmsg, buffers)
            else:
                sent = self._fd_call("sendmsg", sock.sendmsg, buffers, [], 0, destination.sockaddr())
        self._register_write()
        if (sent or 0) != total:
            raise RuntimeError("sendmsg sent some length other than that of payload")


class UDPSocket(DatagramSocket):
    """An unbound, unconnected UDP socket."""

    def __init__(self) -> None:
        super().__init__(socket.AF_INET, socket.SOCK_DGRAM)


class TCPSocket(Socket):
    """A TCP socket."""

    def __init__(self) -> None:
        super().__init__(socket.AF_INET, socket.SOCK_STREAM)

    def listen(self, backlog: int = 16) -> None:
        """Mark the socket as accepting incoming connections."""
        with self._borrow() as sock:
            _system_call("listen", sock.listen, backlog)

    def accept(self) -> TCPSocket:
        """Wait for and return a new connection."""
        self._register_read()
        with self._borrow() as sock:
            conn, _peer = _system_call("accept", sock.accept)
        fd = FileDescriptor(conn.detach())
        accepted = TCPSocket.__new__(TCPSocket)
        accepted._adopt(fd, socket.AF_INET, socket.SOCK_STREAM, socket.IPPROTO_TCP)
        return accepted


class PacketSocket(DatagramSocket):
    """A link-layer packet socket."""

    def __init__(self, socket_type: int, protocol: int) -> None:
        super().__init__(_AF_PACKET, socket_type, protocol)


class RawSocket(DatagramSocket):
    """A raw IPv4 socket."""

    def __init__(self) -> None:
        super().__init__(socket.AF_INET, socket.SOCK_RAW, socket.IPPROTO_RAW)


class LocalStreamSocket(Socket):
    """A Unix-domain stream socket, made from an existing descriptor."""

    def __init__(self, fd: FileDescriptor) -> None:
        self._adopt(fd, socket.AF_UNIX, socket.SOCK_STREAM)


class LocalDatagramSocket(DatagramSocket):
    """An unbound, unconnected Unix-domain datagram socket."""

    def __init__(self) -> None:
        super().__init__(socket.AF_UNIX, socket.SOCK_DGRAM)