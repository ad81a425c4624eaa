from __future__ import annotations

"""
Minimal TLV primitives for the binary Record codec.

Encoding
- TLV: varint(tag) || varint(length) || payload
- Unsigned integers: LEB128 varint
- Signed integers: zig-zag mapped, then varint (arbitrary size)
- Floats: IEEE-754 binary64, little endian
- Strings: UTF-8 bytes (length provided by TLV len)

Record message (one top-level TLV)
- 1: native (payload: scalar)
- 2: array (payload: repeated TLV tag=1, each a fingerprint string)
- 3: object (payload: repeated TLV tag=1, each an entry container)

Entry container (within object; tag=1)
- 1: key (utf8)
- 2: fingerprint (utf8)

Scalar payload
- kind byte: 0 null, 1 false, 2 true, 3 int, 4 float, 5 str
- followed by the kind's value bytes (empty for null/false/true)
"""

import struct
from typing import List, Tuple


_FLOAT_STRUCT = struct.Struct("<d")


def varint_encode(n: int) -> bytes:
    if n < 0:
        raise ValueError("varint: negative not supported")
    out = bytearray()
    while True:
        b = n & 0x7F
        n >>= 7
        if n:
            out.append(b | 0x80)
        else:
            out.append(b)
            break
    return bytes(out)


def varint_decode(data: bytes, pos: int) -> Tuple[int, int]:
    shift = 0
    result = 0
    while True:
        if pos >= len(data):
            raise ValueError("varint: truncated")
        b = data[pos]
        pos += 1
        result |= (b & 0x7F) << shift
        if not (b & 0x80):
            return result, pos
        shift += 7


def zigzag_encode(n: int) -> int:
    return n * 2 if n >= 0 else -n * 2 - 1


def zigzag_decode(n: int) -> int:
    return n // 2 if not (n & 1) else -(n + 1) // 2


def pack_float(x: float) -> bytes:
    return _FLOAT_STRUCT.pack(x)


def unpack_float(b: bytes) -> float:
    if len(b) != _FLOAT_STRUCT.size:
        raise ValueError("float: expected 8 bytes")
    return _FLOAT_STRUCT.unpack(b)[0]


def tlv(tag: int, payload: bytes) -> bytes:
    return varint_encode(tag) + varint_encode(len(payload)) + payload


def iter_tlvs(data: bytes) -> List[Tuple[int, bytes]]:
    items: List[Tuple[int, bytes]] = []
    pos = 0
    n = len(data)
    while pos < n:
        tag, pos = varint_decode(data, pos)
        ln, pos = varint_decode(data, pos)
        if pos + ln > n:
            raise ValueError("TLV length out of range")
        items.append((tag, data[pos : pos + ln]))
        pos += ln
    return items


def encode_str(s: str) -> bytes:
    return s.encode("utf-8")


def decode_str(b: bytes) -> str:
    return b.decode("utf-8")
