"""A reference-counted handle on an operating-system file descriptor."""

from __future__ import annotations

import errno
import os
import sys
from collections.abc import Callable, Sequence

from minnow.errors import UnixError

_WOULD_BLOCK = {errno.EAGAIN, errno.EWOULDBLOCK, errno.EINPROGRESS}


class _FDWrapper:
    """The shared state of a kernel file descriptor; closes it when discarded."""

    def __init__(self, fd: int) -> None:
        if fd < 0:
            raise RuntimeError(f"invalid fd number:{fd}")
        self.fd = fd
        self.eof = False
        self.closed = False
        self.read_count = 0
        self.write_count = 0
        try:
            self.non_blocking = not os.get_blocking(fd)
        except OSError as err:
            raise UnixError("fcntl", err.errno) from err

    def close(self) -> None:
        try:
            os.close(self.fd)
        except OSError as err:
            raise UnixError("close", err.errno) from err
        self.eof = self.closed = True

    def __del__(self) -> None:
        if getattr(self, "closed", True):
            return
        try:
            self.close()
        except UnixError as err:
            sys.stderr.write(f"Exception destructing FDWrapper: {err}\n")


class FileDescriptor:
    """A file descriptor shared by all of its duplicates; closed when the last goes away."""

    READ_BUFFER_SIZE = 16384

    def __init__(self, fd: int) -> None:
        self._fd = _FDWrapper(fd)

    # --- helpers for subclasses -------------------------------------------------

    def _fd_call(self, what: str, func: Callable, *args):
        """Call ``func``; return None if a non-blocking descriptor would block."""
        try:
            return func(*args)
        except OSError as err:
            if self._fd.non_blocking and err.errno in _WOULD_BLOCK:
                return None
            raise UnixError(what, err.errno) from err

    def _register_read(self) -> None:
        self._fd.read_count += 1

    def _register_write(self) -> None:
        self._fd.write_count += 1

    def _set_eof(self) -> None:
        self._fd.eof = True

    @staticmethod
    def _check_buffers(buffers: Sequence) -> int:
        """Validate a list of buffers for a vectored call; return their total size."""
        if not buffers:
            raise RuntimeError("to_iovecs called with empty buffer list")
        total = 0
        for buf in buffers:
            if not len(buf):
                raise RuntimeError("to_iovecs called with empty buffer in buffer list")
            total += len(buf)
        return total

    @staticmethod
    def _split(data: bytes, sizes: Sequence[int]) -> list[bytes]:
        out = []
        start = 0
        for size in sizes:
            out.append(data[start : start + size])
            start += size
        return out

    # --- reading ----------------------------------------------------------------

    def read(self, size: int | None = None) -> bytes:
        """Read at most ``size`` bytes (a default size if ``None`` or 0).

        An empty result on a blocking descriptor, or a true end of file, sets ``eof``.
        """
        size = size or self.READ_BUFFER_SIZE
        data = self._fd_call("read", os.read, self._fd.fd, size)
        self._register_read()
        if data is None:
            return b""
        if not data:
            self._set_eof()
        if len(data) > size:
            raise RuntimeError("read() read more than requested")
        return data

    def read_vectored(self, sizes: Sequence[int]) -> list[bytes]:
        """Read into buffers of the given sizes; returns each buffer cut to what was read.

        If the last size is 0 it is replaced by a default buffer size.
        """
        if not sizes:
            raise RuntimeError("FileDescriptor.read called with no buffers")
        sizes = list(sizes)
        if sizes[-1] == 0:
            sizes[-1] = self.READ_BUFFER_SIZE
        buffers = [bytearray(size) for size in sizes]
        total = self._check_buffers(buffers)

        count = self._fd_call("readv", os.readv, self._fd.fd, buffers)
        self._register_read()
        if count is None:
            count = 0
        elif count == 0:
            self._set_eof()
        if count > total:
            raise RuntimeError("read() read more than requested")
        return self._split(b"".join(buffers)[:count], sizes)

    # --- writing ----------------------------------------------------------------

    def write(self, data) -> int:
        """Write from ``data``; returns the number of bytes actually written."""
        data = bytes(data)
        written = self._fd_call("write", os.write, self._fd.fd, data) or 0
        self._register_write()
        if written == 0 and data:
            raise RuntimeError("write returned 0 given non-empty input buffer")
        if written > len(data):
            raise RuntimeError("write wrote more than length of input buffer")
        return written

    def write_vectored(self, buffers: Sequence) -> int:
        """Write a list of non-empty buffers in one call; returns the bytes written."""
        buffers = [bytes(b) for b in buffers]
        total = self._check_buffers(buffers)
        written = self._fd_call("writev", os.writev, self._fd.fd, buffers) or 0
        self._register_write()
        if written == 0 and total != 0:
            raise RuntimeError("writev returned 0 given non-empty input buffer")
        if written > total:
            raise RuntimeError("writev wrote more than length of input buffer")
        return written

    def write_all(self, data) -> None:
        """Write all of ``data``; the descriptor must be blocking."""
        if not self.blocking():
            raise RuntimeError("write_all requires a blocking file descriptor")
        view = memoryview(bytes(data))
        while view:
            view = view[self.write(view) :]

    # --- state ------------------------------------------------------------------

    def close(self) -> None:
        self._fd.close()

    def set_blocking(self, blocking: bool) -> None:
        try:
            os.set_blocking(self._fd.fd, blocking)
        except OSError as err:
            raise UnixError("fcntl", err.errno) from err
        self._fd.non_blocking = not blocking

    def duplicate(self) -> FileDescriptor:
        """Another handle on the same descriptor, sharing its state."""
        copy = FileDescriptor.__new__(FileDescriptor)
        copy._fd = self._fd
        return copy

    def fd_num(self) -> int:
        return self._fd.fd

    def eof(self) -> bool:
        return self._fd.eof

    def closed(self) -> bool:
        return self._fd.closed

    def blocking(self) -> bool:
        return not self._fd.non_blocking

    def read_count(self) -> int:
        return self._fd.read_count

    def write_count(self) -> int:
        return self._fd.write_count

    def __enter__(self) -> FileDescriptor:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if not self.closed():
            self.close()