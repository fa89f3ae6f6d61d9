import pytest

from copperrt.codec import Decoder, DecodeError, Encoder
from copperrt.payload import CuArray


def _write(encoder, item):
    encoder.write_u32(item)


def _read(decoder):
    return decoder.read_u32()


def test_new_is_empty():
    arr = CuArray(4)
    assert arr.as_list() == []
    assert arr.capacity == 4


def test_fill_truncates_to_capacity():
    arr = CuArray(3)
    arr.fill_from_iter(range(10))
    assert arr.as_list() == [0, 1, 2]
    assert len(arr) == arr.capacity


def test_fill_replaces_contents():
    arr = CuArray(5, [9, 9, 9])
    arr.fill_from_iter([1, 2])
    assert arr.as_list() == [1, 2]
    assert list(arr) == [1, 2]


def test_fill_consumes_only_what_fits():
    source = iter(range(10))
    arr = CuArray(2)
    arr.fill_from_iter(source)
    assert arr.as_list() == [0, 1]
    assert next(source) in (2, 3)


def test_wire_format():
    enc = Encoder()
    CuArray(4, [1, 2]).encode(enc, _write)
    assert enc.getvalue() == b"\x02\x01\x02"


def test_round_trip():
    original = CuArray(8, [0, 250, 251, 70000, 2**32 - 1])
    enc = Encoder()
    original.encode(enc, _write)
    decoded = CuArray.decode(Decoder(enc.getvalue()), 8, _read)
    assert decoded == original


def test_round_trip_empty():
    enc = Encoder()
    CuArray(3).encode(enc, _write)
    decoded = CuArray.decode(Decoder(enc.getvalue()), 3, _read)
    assert decoded.as_list() == []


def test_round_trip_bytes_items():
    original = CuArray(3, [b"ab", b"", b"xyz"])
    enc = Encoder()
    original.encode(enc, lambda e, item: e.write_bytes(item))
    decoded = CuArray.decode(Decoder(enc.getvalue()), 3, lambda d: d.read_bytes())
    assert decoded.as_list() == original.as_list()


def test_decode_exceeding_capacity_raises():
    enc = Encoder()
    CuArray(5, [1, 2, 3, 4, 5]).encode(enc, _write)
    with pytest.raises(DecodeError, match="exceeds maximum capacity 3"):
        CuArray.decode(Decoder(enc.getvalue()), 3, _read)


def test_decode_truncated_raises():
    enc = Encoder()
    CuArray(5, [1, 2, 3]).encode(enc, _write)
    with pytest.raises(DecodeError):
        CuArray.decode(Decoder(enc.getvalue()[:-1]), 5, _read)


def test_negative_capacity_rejected():
    with pytest.raises(ValueError):
        CuArray(-1)