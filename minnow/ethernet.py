"""Ethernet addresses, frame headers and frames."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar

from minnow.parser import Parser, Serializer

ADDRESS_LENGTH = 6

EthernetAddress = bytes

ETHERNET_BROADCAST: EthernetAddress = b"\xff" * ADDRESS_LENGTH


def to_ethernet_address(value) -> EthernetAddress:
    """Convert a six-byte sequence to an Ethernet address."""
    address = bytes(value)
    if len(address) != ADDRESS_LENGTH:
        raise ValueError(f"Ethernet address must be {ADDRESS_LENGTH} bytes, got {len(address)}")
    return address


def format_ethernet_address(address) -> str:
    """Colon-separated lower-case hex, e.g. ``ff:ff:ff:ff:ff:ff``."""
    return ":".join(f"{b:02x}" for b in to_ethernet_address(address))


def parse_ethernet_address(parser: Parser) -> EthernetAddress:
    return parser.string(ADDRESS_LENGTH)


def serialize_ethernet_address(serializer: Serializer, address) -> None:
    serializer.integer(int.from_bytes(to_ethernet_address(address), "big"), ADDRESS_LENGTH)


@dataclass
class EthernetHeader:
    """Ethernet frame header: destination, source and frame type."""

    LENGTH: ClassVar[int] = 14
    TYPE_IPv4: ClassVar[int] = 0x800
    TYPE_ARP: ClassVar[int] = 0x806

    dst: EthernetAddress = bytes(ADDRESS_LENGTH)
    src: EthernetAddress = bytes(ADDRESS_LENGTH)
    type: int = 0

    def __post_init__(self) -> None:
        self.dst = to_ethernet_address(self.dst)
        self.src = to_ethernet_address(self.src)

    def __str__(self) -> str:
        if self.type == self.TYPE_IPv4:
            kind = "IPv4"
        elif self.type == self.TYPE_ARP:
            kind = "ARP"
        else:
            kind = f"[unknown type {self.type:x}!]"
        return (
            f"dst={format_ethernet_address(self.dst)}"
            f" src={format_ethernet_address(self.src)}"
            f" type={kind}"
        )

    def parse(self, parser: Parser) -> None:
        self.dst = parse_ethernet_address(parser)
        self.src = parse_ethernet_address(parser)
        self.type = parser.integer(2)

    def serialize(self, serializer: Serializer) -> None:
        serialize_ethernet_address(serializer, self.dst)
        serialize_ethernet_address(serializer, self.src)
        serializer.integer(self.type, 2)


@dataclass
class EthernetFrame:
    """An Ethernet header followed by its payload buffers."""

    header: EthernetHeader = field(default_factory=EthernetHeader)
    payload: list[bytes] = field(default_factory=list)

    def parse(self, parser: Parser) -> None:
        self.header.parse(parser)
        self.payload = parser.all_remaining()

    def serialize(self, serializer: Serializer) -> None:
        self.header.serialize(serializer)
        serializer.buffer(self.payload)