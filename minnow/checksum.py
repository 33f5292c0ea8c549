"""The Internet checksum (one's-complement sum of 16-bit words)."""

from __future__ import annotations

_MASK32 = 0xFFFFFFFF


class InternetChecksum:
    """Accumulates bytes and yields their Internet checksum."""

    def __init__(self, initial_sum: int = 0) -> None:
        self._sum = initial_sum & _MASK32
        self._parity = False

    def add(self, data) -> None:
        """Add a bytes-like object, or every buffer of an iterable of them."""
        if isinstance(data, str):
            raise TypeError("data must be bytes, not str")
        if not isinstance(data, (bytes, bytearray, memoryview)):
            for item in data:
                self.add(item)
            return

        chunk = bytes(data)
        if not chunk:
            return
        if self._parity:
            self._sum += chunk[0]
            chunk = chunk[1:]
            self._parity = False
        self._sum += (sum(chunk[0::2]) << 8) + sum(chunk[1::2])
        if len(chunk) % 2:
            self._parity = True
        self._sum &= _MASK32

    def value(self) -> int:
        """The 16-bit checksum of everything added so far."""
        ret = self._sum
        while ret > 0xFFFF:
            ret = (ret >> 16) + (ret & 0xFFFF)
        return ~ret & 0xFFFF