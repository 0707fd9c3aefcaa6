import pytest

from ljbcview.reader import HEADER_MAGIC, MAX_SIZE, BytecodeError, Reader, read_file


def _encode_uleb128(value):
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def _encode_uleb128_33(value, tag=0):
    first = ((value & 0x3F) << 1) | tag
    value >>= 6
    if not value:
        return bytes([first])
    return bytes([first | 0x80]) + _encode_uleb128(value)


def _encode_varint(value):
    groups = [value & 0x7F]
    value >>= 7
    while value:
        groups.append(value & 0x7F)
        value >>= 7
    groups.reverse()
    return bytes([g | 0x80 for g in groups[:-1]] + [groups[-1]])


def test_check_header_valid():
    reader = Reader(HEADER_MAGIC + b"\x02")
    assert reader.check_header() is True
    assert reader.read_byte() == 2


def test_check_header_invalid_still_advances():
    reader = Reader(b"\x1bLua\x00")
    assert reader.check_header() is False
    assert reader.pos == 3


def test_check_header_short_data():
    reader = Reader(b"\x1b")
    assert reader.check_header() is False
    assert reader.at_end()


def test_read_byte_and_end():
    reader = Reader(b"\x01\xff")
    assert reader.read_byte() == 1
    assert reader.read_byte() == 0xFF
    assert reader.at_end()
    with pytest.raises(BytecodeError):
        reader.read_byte()


def test_peek_does_not_consume():
    reader = Reader(b"\x07")
    assert reader.peek_byte() == 7
    assert reader.pos == 0
    assert reader.read_byte() == 7


def test_peek_at_end_raises():
    with pytest.raises(BytecodeError):
        Reader(b"").peek_byte()


def test_uleb128_single_byte():
    assert Reader(b"\x7f").read_uleb128() == 0x7F


def test_uleb128_known_example():
    assert Reader(b"\xe5\x8e\x26").read_uleb128() == 624485


@pytest.mark.parametrize("value", [0, 1, 127, 128, 300, 16383, 16384, 2**31, 2**32 - 1])
def test_uleb128_round_trip(value):
    encoded = _encode_uleb128(value)
    reader = Reader(encoded + b"\xaa")
    assert reader.read_uleb128() == value
    assert reader.pos == len(encoded)


def test_uleb128_truncated():
    with pytest.raises(BytecodeError):
        Reader(b"\x80\x80").read_uleb128()


@pytest.mark.parametrize("value", [0, 5, 63, 64, 200, 8191, 8192, 2**31, 2**32 - 1])
@pytest.mark.parametrize("tag", [0, 1])
def test_uleb128_33_round_trip(value, tag):
    encoded = _encode_uleb128_33(value, tag)
    reader = Reader(encoded)
    assert reader.read_uleb128_33() == value
    assert reader.at_end()


def test_uleb128_33_tag_visible_by_peek():
    reader = Reader(_encode_uleb128_33(300, 1))
    assert reader.peek_byte() & 1 == 1
    assert reader.read_uleb128_33() == 300


@pytest.mark.parametrize("value", [0, 1, 127, 128, 99999, 2**40])
def test_varint_round_trip(value):
    encoded = _encode_varint(value)
    reader = Reader(encoded)
    assert reader.read_varint(MAX_SIZE) == value
    assert reader.at_end()


def test_varint_is_big_endian():
    assert Reader(b"\x81\x00").read_varint(MAX_SIZE) == 128


def test_varint_overflow():
    with pytest.raises(BytecodeError):
        Reader(_encode_varint(2**20)).read_varint(0xFF)


def test_read_size_round_trip_and_overflow():
    assert Reader(_encode_varint(MAX_SIZE)).read_size() == MAX_SIZE
    with pytest.raises(BytecodeError):
        Reader(_encode_varint(MAX_SIZE + 1 << 7)).read_size()


def test_read_block():
    reader = Reader(b"abcdef")
    assert reader.read_block(2) == b"ab"
    assert reader.read_block(0) == b""
    assert reader.read_block(4) == b"cdef"
    assert reader.at_end()


def test_read_block_past_end():
    reader = Reader(b"abc")
    with pytest.raises(BytecodeError):
        reader.read_block(4)
    assert reader.pos == 0


def test_read_block_negative():
    with pytest.raises(BytecodeError):
        Reader(b"abc").read_block(-1)


def test_read_file(tmp_path):
    path = tmp_path / "chunk.bc"
    payload = HEADER_MAGIC + b"\x02\x00"
    path.write_bytes(payload)
    reader = read_file(path)
    assert reader.data == payload
    assert reader.size == len(payload)
    assert reader.pc == 1
    assert reader.check_header() is True


def test_read_file_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_file(tmp_path / "missing.bc")