import ipaddress

import pytest

from minnow.checksum import InternetChecksum
from minnow.ipv4 import InternetDatagram, IPv4Datagram, IPv4Header
from minnow.parser import Parser, Serializer


def _ip(text):
    return int(ipaddress.IPv4Address(text))


def _serialize(obj):
    s = Serializer()
    obj.serialize(s)
    return s.finish()


def make_datagram(src_ip, dst_ip, payload=b"hello"):
    dgram = InternetDatagram()
    dgram.header.src = _ip(src_ip)
    dgram.header.dst = _ip(dst_ip)
    dgram.payload.append(payload)
    dgram.header.len = dgram.header.hlen * 4 + len(payload)
    dgram.header.compute_checksum()
    return dgram


def test_checksum_makes_header_sum_to_zero():
    dgram = make_datagram("5.6.7.8", "13.12.11.10")
    check = InternetChecksum()
    check.add(_serialize(dgram.header))
    assert check.value() == 0


def test_first_byte_and_flags_on_wire():
    data = b"".join(_serialize(make_datagram("5.6.7.8", "13.12.11.10").header))
    assert len(data) == IPv4Header.LENGTH
    assert data[0] == 0x45
    assert data[6] & 0x40


def test_datagram_round_trip():
    dgram = make_datagram("5.6.7.8", "13.12.11.10")
    parser = Parser(_serialize(dgram))
    parsed = IPv4Datagram()
    parsed.parse(parser)
    assert not parser.has_error()
    assert parsed.header == dgram.header
    assert b"".join(parsed.payload) == b"hello"


def test_flags_and_offset_round_trip():
    dgram = make_datagram("1.2.3.4", "4.3.2.1")
    dgram.header.df = False
    dgram.header.mf = True
    dgram.header.offset = 0x123
    dgram.header.compute_checksum()
    parsed = IPv4Datagram()
    parser = Parser(_serialize(dgram))
    parsed.parse(parser)
    assert not parser.has_error()
    assert (parsed.header.df, parsed.header.mf, parsed.header.offset) == (False, True, 0x123)


def test_parse_truncates_to_total_length():
    dgram = make_datagram("5.6.7.8", "13.12.11.10")
    buffers = _serialize(dgram) + [b"trailing junk"]
    parsed = IPv4Datagram()
    parser = Parser(buffers)
    parsed.parse(parser)
    assert not parser.has_error()
    assert b"".join(parsed.payload) == b"hello"


def test_parse_rejects_bad_checksum():
    dgram = make_datagram("5.6.7.8", "13.12.11.10")
    dgram.header.cksum ^= 0x0101
    parser = Parser(_serialize(dgram))
    IPv4Datagram().parse(parser)
    assert parser.has_error()


def test_parse_rejects_wrong_version():
    data = bytearray(b"".join(_serialize(make_datagram("5.6.7.8", "13.12.11.10"))))
    data[0] = (6 << 4) | 5
    parser = Parser([bytes(data)])
    IPv4Datagram().parse(parser)
    assert parser.has_error()


def test_parse_rejects_short_header_length():
    data = bytearray(b"".join(_serialize(make_datagram("5.6.7.8", "13.12.11.10"))))
    data[0] = (4 << 4) | 4
    parser = Parser([bytes(data)])
    IPv4Header().parse(parser)
    assert parser.has_error()


def test_parse_rejects_truncated_input():
    parser = Parser([b"\x45\x00"])
    IPv4Header().parse(parser)
    assert parser.has_error()


def test_parse_skips_options():
    header = IPv4Header(hlen=6, src=_ip("10.0.0.1"), dst=_ip("10.0.0.2"))
    header.len = header.hlen * 4 + len(b"hello")
    header.compute_checksum()
    data = b"".join(_serialize(header)) + b"\x00" * 4 + b"hello"
    parsed = IPv4Datagram()
    parser = Parser([data])
    parsed.parse(parser)
    assert not parser.has_error()
    assert parsed.header.hlen == 6
    assert b"".join(parsed.payload) == b"hello"


def test_serialize_rejects_other_version():
    with pytest.raises(RuntimeError, match="wrong IP version"):
        _serialize(IPv4Header(ver=5))


def test_payload_length_matches_payload():
    dgram = make_datagram("5.6.7.8", "13.12.11.10", b"abcdefg")
    assert dgram.header.payload_length() == len(b"abcdefg")


def test_pseudo_checksum_adds_address_halves():
    base = IPv4Header(len=IPv4Header.LENGTH)
    high = IPv4Header(len=IPv4Header.LENGTH, src=5 << 16)
    low = IPv4Header(len=IPv4Header.LENGTH, src=5)
    assert high.pseudo_checksum() == low.pseudo_checksum() == base.pseudo_checksum() + 5
    assert base.pseudo_checksum() == IPv4Header.PROTO_TCP


def test_pseudo_checksum_includes_payload_length():
    short = make_datagram("1.1.1.1", "2.2.2.2", b"ab")
    longer = make_datagram("1.1.1.1", "2.2.2.2", b"abcd")
    assert longer.header.pseudo_checksum() - short.header.pseudo_checksum() == 2


def test_header_str():
    dgram = make_datagram("5.6.7.8", "13.12.11.10")
    assert str(dgram.header) == "IPv4 len=25 proto=6 ttl=128 src=5.6.7.8 dst=13.12.11.10"