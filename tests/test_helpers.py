import ipaddress

import pytest

from minnow.arp import ARPMessage
from minnow.ethernet import ETHERNET_BROADCAST, EthernetFrame, EthernetHeader
from minnow.helpers import clone, concat, parse, pretty_print, serialize, summary
from minnow.ipv4 import InternetDatagram

LOCAL = bytes([0x02, 0x00, 0x00, 0x00, 0x00, 0x0A])
TARGET = bytes([0x02, 0x00, 0x00, 0x00, 0x00, 0x0B])


def _ip(text):
    return int(ipaddress.IPv4Address(text))


def make_datagram(src_ip, dst_ip):
    dgram = InternetDatagram()
    dgram.header.src = _ip(src_ip)
    dgram.header.dst = _ip(dst_ip)
    dgram.payload.append(b"hello")
    dgram.header.len = dgram.header.hlen * 4 + len(dgram.payload[0])
    dgram.header.compute_checksum()
    return dgram


def make_arp(opcode, sender_eth, sender_ip, target_eth, target_ip):
    return ARPMessage(
        opcode=opcode,
        sender_ethernet_address=sender_eth,
        sender_ip_address=_ip(sender_ip),
        target_ethernet_address=target_eth,
        target_ip_address=_ip(target_ip),
    )


def make_frame(src, dst, frame_type, payload):
    return EthernetFrame(header=EthernetHeader(dst=dst, src=src, type=frame_type), payload=payload)


def test_serialize_and_parse_round_trip():
    arp = make_arp(ARPMessage.OPCODE_REQUEST, LOCAL, "4.3.2.1", bytes(6), "192.168.0.1")
    parsed = ARPMessage()
    assert parse(parsed, serialize(arp))
    assert parsed == arp


def test_parse_reports_failure():
    assert not parse(ARPMessage(), [b"\x00\x01"])


def test_frame_with_datagram_round_trip():
    dgram = make_datagram("5.6.7.8", "13.12.11.10")
    frame = make_frame(LOCAL, TARGET, EthernetHeader.TYPE_IPv4, serialize(dgram))
    parsed_frame = EthernetFrame()
    assert parse(parsed_frame, serialize(frame))
    parsed_dgram = InternetDatagram()
    assert parse(parsed_dgram, parsed_frame.payload)
    assert parsed_dgram.header == dgram.header
    assert concat(parsed_dgram.payload) == b"hello"


def test_concat():
    assert concat([b"ab", b"", b"cd"]) == b"abcd"
    assert concat([]) == b""


def test_pretty_print_plain():
    assert pretty_print(b"hello") == "hello"


def test_pretty_print_escapes():
    assert pretty_print(b'a"b\x00') == "a\\x22b\\x00"


def test_pretty_print_exact_length_not_truncated():
    assert pretty_print(b"a" * 32) == "a" * 32


def test_pretty_print_truncates():
    result = pretty_print(b"a" * 40)
    assert len(result) == 32
    assert result.endswith("...")
    assert result.startswith("a" * 29)


def test_pretty_print_short_limit_appends():
    result = pretty_print(b"abcdef", 2)
    assert result == "ab" + "..."


def test_summary_ipv4():
    dgram = make_datagram("5.6.7.8", "13.12.11.10")
    frame = make_frame(LOCAL, TARGET, EthernetHeader.TYPE_IPv4, serialize(dgram))
    assert summary(frame) == f'{frame.header} payload: {dgram.header} payload="hello"'


def test_summary_arp():
    arp = make_arp(ARPMessage.OPCODE_REQUEST, LOCAL, "4.3.2.1", bytes(6), "192.168.0.1")
    frame = make_frame(LOCAL, ETHERNET_BROADCAST, EthernetHeader.TYPE_ARP, serialize(arp))
    assert summary(frame) == f"{frame.header} payload: {arp}"


def test_summary_bad_payloads():
    bad_arp = make_frame(LOCAL, TARGET, EthernetHeader.TYPE_ARP, [b"\x00"])
    bad_ip = make_frame(LOCAL, TARGET, EthernetHeader.TYPE_IPv4, [b"\x45"])
    unknown = make_frame(LOCAL, TARGET, 0x1234, [b"x"])
    assert summary(bad_arp).endswith("bad ARP message")
    assert summary(bad_ip).endswith("bad IPv4 datagram")
    assert summary(unknown).endswith("unknown frame type")


def test_summary_leaves_frame_unchanged():
    dgram = make_datagram("5.6.7.8", "13.12.11.10")
    payload = serialize(dgram)
    frame = make_frame(LOCAL, TARGET, EthernetHeader.TYPE_IPv4, list(payload))
    summary(frame)
    assert frame.payload == payload


def test_clone_frame_is_independent():
    frame = make_frame(LOCAL, TARGET, EthernetHeader.TYPE_IPv4, [b"abc"])
    copy = clone(frame)
    assert copy == frame
    copy.header.type = EthernetHeader.TYPE_ARP
    copy.payload.append(b"more")
    assert frame.header.type == EthernetHeader.TYPE_IPv4
    assert frame.payload == [b"abc"]


def test_clone_datagram_is_independent():
    dgram = make_datagram("1.2.3.4", "4.3.2.1")
    copy = clone(dgram)
    assert copy == dgram
    copy.header.ttl = 1
    assert dgram.header.ttl == 128


def test_clone_rejects_other_types():
    with pytest.raises(TypeError):
        clone(ARPMessage())