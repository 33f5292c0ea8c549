"""Handles on existing persistent Linux TUN and TAP devices."""

from __future__ import annotations

import fcntl
import os
import struct

from minnow.errors import UnixError
from minnow.file_descriptor import FileDescriptor

CLONE_DEVICE = "/dev/net/tun"
IFNAMSIZ = 16
IFF_TUN = 0x0001
IFF_TAP = 0x0002
IFF_NO_PI = 0x1000
TUNSETIFF = 0x400454CA

# struct ifreq: interface name, then the flags member of the union (40 bytes in all)
_IFREQ = struct.Struct(f"{IFNAMSIZ}sh22x")


class TunTapFD(FileDescriptor):
    """A descriptor on a TUN (IP datagrams) or TAP (Ethernet frames) device."""

    def __init__(self, devname: str, is_tun: bool) -> None:
        try:
            fd = os.open(CLONE_DEVICE, os.O_RDWR | os.O_CLOEXEC)
        except OSError as err:
            raise UnixError("open", err.errno or 0) from err
        super().__init__(fd)

        flags = (IFF_TUN if is_tun else IFF_TAP) | IFF_NO_PI  # no packet information
        name = devname.encode()[: IFNAMSIZ - 1]
        request = _IFREQ.pack(name, flags)
        try:
            fcntl.ioctl(fd, TUNSETIFF, request)
        except OSError as err:
            self.close()
            raise UnixError("ioctl", err.errno or 0) from err


class TunFD(TunTapFD):
    """A descriptor on a TUN device."""

    def __init__(self, devname: str) -> None:
        super().__init__(devname, True)


class TapFD(TunTapFD):
    """A descriptor on a TAP device."""

    def __init__(self, devname: str) -> None:
        super().__init__(devname, False)