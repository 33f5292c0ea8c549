import pytest

from minnow.checksum import InternetChecksum

HEADER_WITHOUT_CHECKSUM = bytes.fromhex("450000730000400040110000c0a80001c0a800c7")


def _checksum(*parts, initial=0):
    c = InternetChecksum(initial)
    for part in parts:
        c.add(part)
    return c.value()


def test_empty_checksum():
    assert _checksum() == 0xFFFF


def test_known_ipv4_header():
    assert _checksum(HEADER_WITHOUT_CHECKSUM) == 0xB861


def test_inserting_checksum_verifies_to_zero():
    value = _checksum(HEADER_WITHOUT_CHECKSUM)
    header = HEADER_WITHOUT_CHECKSUM[:10] + value.to_bytes(2, "big") + HEADER_WITHOUT_CHECKSUM[12:]
    assert _checksum(header) == 0


@pytest.mark.parametrize("split", [1, 3, 7, 10, 19])
def test_split_adds_match_single_add(split):
    data = HEADER_WITHOUT_CHECKSUM
    assert _checksum(data[:split], data[split:]) == _checksum(data)


def test_many_odd_pieces():
    data = bytes(range(1, 200))
    pieces = [data[i : i + 3] for i in range(0, len(data), 3)]
    assert _checksum(*pieces) == _checksum(data)


def test_add_iterable_of_buffers():
    data = HEADER_WITHOUT_CHECKSUM
    c = InternetChecksum()
    c.add([data[:5], data[5:], b""])
    assert c.value() == _checksum(data)


def test_initial_sum_is_included():
    # an initial sum acts like a prepended 16-bit word
    assert _checksum(b"\xab\xcd", initial=0x1234) == _checksum(b"\x12\x34\xab\xcd")


def test_large_input_folds_correctly():
    data = b"\xff" * 100_000
    assert _checksum(data) == _checksum(data[:50_001], data[50_001:])
    value = _checksum(data)
    assert 0 <= value <= 0xFFFF


def test_str_rejected():
    with pytest.raises(TypeError):
        InternetChecksum().add("text")