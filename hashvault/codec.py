from __future__ import annotations

import json
from typing import Any, Dict, List

from . import tlv
from .constants import (
    TAG_NATIVE,
    TAG_ARRAY,
    TAG_OBJECT,
    TLV_TAG_NATIVE,
    TLV_TAG_ARRAY,
    TLV_TAG_OBJECT,
    SCALAR_NULL,
    SCALAR_FALSE,
    SCALAR_TRUE,
    SCALAR_INT,
    SCALAR_FLOAT,
    SCALAR_STR,
)
from .errors import CorruptStore, UnsupportedValue
from .records import Record, NativeRecord, ArrayRecord, ObjectRecord, record_from_parts


class RecordCodec:
    """Reversible, deterministic transform between a Record and bytes.

    Fingerprints are computed over ``encode`` output, so equal Records must
    always produce identical bytes.
    """

    name = ""

    def encode(self, record: Record) -> bytes:
        raise NotImplementedError

    def decode(self, data: bytes) -> Record:
        raise NotImplementedError


class JSONRecordCodec(RecordCodec):
    """Canonical JSON: ``{"content": ..., "type": tag}`` with sorted keys."""

    name = "json"

    def encode(self, record: Record) -> bytes:
        doc = {"type": record.tag, "content": record.content}
        try:
            text = json.dumps(doc, sort_keys=True, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
        except ValueError as e:
            raise UnsupportedValue(f"value not representable in JSON: {e}")
        return text.encode("utf-8")

    def decode(self, data: bytes) -> Record:
        try:
            doc = json.loads(data)
        except ValueError as e:
            raise CorruptStore(f"record is not valid JSON: {e}")
        if not isinstance(doc, dict) or "type" not in doc or "content" not in doc:
            raise CorruptStore("record must be an object with 'type' and 'content'")
        return record_from_parts(doc["type"], doc["content"])


def _encode_scalar(value: Any) -> bytes:
    if value is None:
        return bytes([SCALAR_NULL])
    if value is True:
        return bytes([SCALAR_TRUE])
    if value is False:
        return bytes([SCALAR_FALSE])
    if isinstance(value, int):
        return bytes([SCALAR_INT]) + tlv.varint_encode(tlv.zigzag_encode(value))
    if isinstance(value, float):
        return bytes([SCALAR_FLOAT]) + tlv.pack_float(value)
    if isinstance(value, str):
        return bytes([SCALAR_STR]) + tlv.encode_str(value)
    raise UnsupportedValue(f"unsupported scalar type: {type(value).__name__}")


def _decode_scalar(payload: bytes) -> Any:
    if not payload:
        raise ValueError("scalar: empty payload")
    kind, body = payload[0], payload[1:]
    if kind in (SCALAR_NULL, SCALAR_FALSE, SCALAR_TRUE):
        if body:
            raise ValueError("scalar: trailing bytes after constant")
        return {SCALAR_NULL: None, SCALAR_FALSE: False, SCALAR_TRUE: True}[kind]
    if kind == SCALAR_INT:
        n, pos = tlv.varint_decode(body, 0)
        if pos != len(body):
            raise ValueError("scalar: trailing bytes after int")
        return tlv.zigzag_decode(n)
    if kind == SCALAR_FLOAT:
        return tlv.unpack_float(body)
    if kind == SCALAR_STR:
        return tlv.decode_str(body)
    raise ValueError(f"scalar: unknown kind {kind}")


class TLVRecordCodec(RecordCodec):
    """Compact binary Record encoding; see :mod:`hashvault.tlv`."""

    name = "tlv"

    def encode(self, record: Record) -> bytes:
        if record.tag == TAG_NATIVE:
            return tlv.tlv(TLV_TAG_NATIVE, _encode_scalar(record.content))
        if record.tag == TAG_ARRAY:
            payload = b"".join(tlv.tlv(1, tlv.encode_str(fp)) for fp in record.children())
            return tlv.tlv(TLV_TAG_ARRAY, payload)
        if record.tag == TAG_OBJECT:
            payload = bytearray()
            # Entries sorted by key; mapping order carries no meaning
            for key, fp in sorted(record.content.items()):
                payload += tlv.tlv(1, tlv.tlv(1, tlv.encode_str(key)) + tlv.tlv(2, tlv.encode_str(fp)))
            return tlv.tlv(TLV_TAG_OBJECT, bytes(payload))
        raise UnsupportedValue(f"unknown record tag: {record.tag!r}")

    def decode(self, data: bytes) -> Record:
        try:
            return self._decode(data)
        except ValueError as e:
            raise CorruptStore(f"malformed TLV record: {e}")

    def _decode(self, data: bytes) -> Record:
        items = tlv.iter_tlvs(data)
        if len(items) != 1:
            raise ValueError(f"expected one top-level TLV, found {len(items)}")
        tag, payload = items[0]
        if tag == TLV_TAG_NATIVE:
            return NativeRecord(_decode_scalar(payload))
        if tag == TLV_TAG_ARRAY:
            fps: List[str] = []
            for it, iv in tlv.iter_tlvs(payload):
                if it != 1:
                    raise ValueError(f"array: unexpected item tag {it}")
                fps.append(tlv.decode_str(iv))
            return ArrayRecord(tuple(fps))
        if tag == TLV_TAG_OBJECT:
            entries: Dict[str, str] = {}
            for et, ev in tlv.iter_tlvs(payload):
                if et != 1:
                    raise ValueError(f"object: unexpected entry tag {et}")
                key = None
                fp = None
                for ft, fv in tlv.iter_tlvs(ev):
                    if ft == 1:
                        key = tlv.decode_str(fv)
                    elif ft == 2:
                        fp = tlv.decode_str(fv)
                if key is None or fp is None:
                    raise ValueError("object: entry missing key or fingerprint")
                entries[key] = fp
            return ObjectRecord(entries)
        raise CorruptStore(f"unknown record tag: {tag}")


_CODECS = {
    JSONRecordCodec.name: JSONRecordCodec,
    TLVRecordCodec.name: TLVRecordCodec,
}


def codec_names() -> List[str]:
    return sorted(_CODECS)


def get_codec(name: str) -> RecordCodec:
    try:
        return _CODECS[name]()
    except KeyError:
        raise ValueError(f"unknown codec: {name!r} (choose from {', '.join(codec_names())})")
