"""Convenience functions for parsing, serializing and describing frames."""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable

from minnow.arp import ARPMessage
from minnow.ethernet import EthernetFrame, EthernetHeader
from minnow.ipv4 import IPv4Datagram
from minnow.parser import Parser, Serializer


def serialize(obj) -> list[bytes]:
    """Serialize any object that has a ``serialize(serializer)`` method."""
    serializer = Serializer()
    obj.serialize(serializer)
    return serializer.finish()


def parse(obj, buffers) -> bool:
    """Parse ``buffers`` into ``obj``; return True if parsing succeeded."""
    parser = Parser(buffers)
    obj.parse(parser)
    return not parser.has_error()


def concat(buffers: Iterable[bytes]) -> bytes:
    """Join a sequence of buffers into one."""
    return b"".join(bytes(b) for b in buffers)


def pretty_print(data, max_length: int = 32) -> str:
    """Escape unprintable bytes and double quotes, truncating with ``...``."""
    out: list[str] = []
    size = 0
    truncated = False
    for ch in bytes(data):
        if size >= max_length:
            truncated = True
            break
        piece = chr(ch) if 0x20 <= ch < 0x7F and ch != ord('"') else f"\\x{ch:02x}"
        out.append(piece)
        size += len(piece)
    ret = "".join(out)
    if truncated:
        ret = ret[:-3] + "..." if len(ret) >= 3 else ret + "..."
    return ret


def summary(frame: EthernetFrame) -> str:
    """One-line description of an Ethernet frame and its payload."""
    out = str(frame.header) + " payload: "
    if frame.header.type == EthernetHeader.TYPE_IPv4:
        dgram = IPv4Datagram()
        if parse(dgram, clone(frame).payload):
            out += f'{dgram.header} payload="{pretty_print(concat(dgram.payload))}"'
        else:
            out += "bad IPv4 datagram"
    elif frame.header.type == EthernetHeader.TYPE_ARP:
        arp = ARPMessage()
        if parse(arp, clone(frame).payload):
            out += str(arp)
        else:
            out += "bad ARP message"
    else:
        out += "unknown frame type"
    return out


def clone(obj):
    """An independent copy of an Ethernet frame or IPv4 datagram."""
    if not isinstance(obj, (EthernetFrame, IPv4Datagram)):
        raise TypeError(f"cannot clone {type(obj).__name__}")
    return dataclasses.replace(
        obj, header=dataclasses.replace(obj.header), payload=list(obj.payload)
    )