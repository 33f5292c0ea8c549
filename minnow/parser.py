"""Big-endian parsing and serialization over sequences of byte buffers."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable

_BYTES_TYPES = (bytes, bytearray, memoryview)


def _as_buffers(buffers) -> list[bytes]:
    if isinstance(buffers, _BYTES_TYPES):
        return [bytes(buffers)]
    if isinstance(buffers, str):
        raise TypeError("buffers must be bytes, not str")
    return [bytes(b) for b in buffers]


class _BufferList:
    """A queue of byte buffers with a read offset into the first one."""

    def __init__(self, buffers: Iterable[bytes]) -> None:
        self._buffers: deque[bytes] = deque(buffers)
        self._skip = 0
        self._size = sum(len(b) for b in self._buffers)

    @property
    def size(self) -> int:
        return self._size

    def remove_prefix(self, length: int) -> None:
        while length and self._buffers:
            front = self._buffers[0]
            take = min(length, len(front) - self._skip)
            self._skip += take
            length -= take
            self._size -= take
            if self._skip == len(front):
                self._buffers.popleft()
                self._skip = 0

    def take(self, length: int) -> bytes:
        if not self._buffers and length:
            raise RuntimeError("peek on empty buffer list")
        pieces = []
        while length and self._buffers:
            front = self._buffers[0]
            chunk = front[self._skip : self._skip + length]
            pieces.append(chunk)
            self._skip += len(chunk)
            self._size -= len(chunk)
            length -= len(chunk)
            if self._skip == len(front):
                self._buffers.popleft()
                self._skip = 0
        return b"".join(pieces)

    def truncate(self, length: int) -> None:
        if self._size <= length:
            return
        if length == 0:
            self._buffers.clear()
            self._skip = 0
            self._size = 0
            return

        kept: deque[bytes] = deque()
        remaining = length
        offset = self._skip
        for buf in self._buffers:
            available = len(buf) - offset
            if available < remaining:
                kept.append(buf)
                remaining -= available
            else:
                kept.append(buf[: offset + remaining])
                break
            offset = 0
        self._buffers = kept
        self._size = length

    def dump_all(self) -> list[bytes]:
        if self._size == 0:
            out: list[bytes] = []
        else:
            first, *rest = self._buffers
            out = [first[self._skip :], *rest]
        self._buffers.clear()
        self._skip = 0
        self._size = 0
        return out

    def segments(self) -> list[bytes]:
        if self._size == 0:
            return []
        first, *rest = self._buffers
        return [first[self._skip :], *rest]


class Parser:
    """Reads big-endian integers and byte strings from a list of buffers.

    A read past the end of the input sets the error flag instead of raising;
    once the flag is set, further reads return zero values.
    """

    def __init__(self, buffers) -> None:
        self._input = _BufferList(_as_buffers(buffers))
        self._error = False

    def _check_size(self, size: int) -> None:
        if size > self._input.size:
            self._error = True

    def has_error(self) -> bool:
        return self._error

    def set_error(self) -> None:
        self._error = True

    def remove_prefix(self, n: int) -> None:
        """Discard up to ``n`` bytes from the front of the input."""
        self._input.remove_prefix(n)

    def truncate(self, length: int) -> None:
        """Drop all but the first ``length`` remaining bytes."""
        self._input.truncate(length)

    def all_remaining(self) -> list[bytes]:
        """Take every remaining buffer, leaving the parser empty."""
        return self._input.dump_all()

    def buffer(self) -> list[bytes]:
        """The remaining buffers, without consuming them."""
        return self._input.segments()

    def string(self, length: int) -> bytes:
        """Read exactly ``length`` bytes (zero bytes if input is short)."""
        self._check_size(length)
        if self._error:
            return bytes(length)
        return self._input.take(length)

    def concatenate_all_remaining(self) -> bytes:
        """Take every remaining byte as one string."""
        return b"".join(self.all_remaining())

    def integer(self, size: int) -> int:
        """Read an unsigned big-endian integer of ``size`` bytes."""
        if size < 1:
            raise ValueError("integer size must be at least one byte")
        self._check_size(size)
        if self._error:
            return 0
        return int.from_bytes(self._input.take(size), "big")


class Serializer:
    """Writes big-endian integers and byte buffers into a list of buffers."""

    def __init__(self) -> None:
        self._output: list[bytes] = []
        self._pending = bytearray()

    def _flush(self) -> None:
        if self._pending:
            self._output.append(bytes(self._pending))
            self._pending.clear()

    def integer(self, value: int, size: int) -> None:
        """Append ``value`` as ``size`` big-endian bytes, truncating higher bits."""
        if size < 1:
            raise ValueError("integer size must be at least one byte")
        mask = (1 << (8 * size)) - 1
        self._pending += (value & mask).to_bytes(size, "big")

    def buffer(self, data) -> None:
        """Append a buffer, or each buffer of an iterable; empty buffers are skipped."""
        if isinstance(data, _BYTES_TYPES):
            if len(data):
                self._flush()
                self._output.append(bytes(data))
            return
        if isinstance(data, str):
            raise TypeError("data must be bytes, not str")
        for item in data:
            self.buffer(item)

    def finish(self) -> list[bytes]:
        """Return everything written so far and start afresh."""
        self._flush()
        out, self._output = self._output, []
        return out