from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Tuple, Union

from .constants import TAG_NATIVE, TAG_ARRAY, TAG_OBJECT
from .errors import CorruptStore, UnsupportedValue


# Scalar types accepted verbatim in a native Record. bool is listed for
# clarity; it is also an int subclass.
SCALAR_TYPES = (type(None), bool, int, float, str)


@dataclass(frozen=True)
class NativeRecord:
    value: Any
    tag = TAG_NATIVE

    @property
    def content(self) -> Any:
        return self.value

    def children(self) -> Tuple[str, ...]:
        return ()


@dataclass(frozen=True)
class ArrayRecord:
    items: Tuple[str, ...] = ()
    tag = TAG_ARRAY

    @property
    def content(self) -> list:
        return list(self.items)

    def children(self) -> Tuple[str, ...]:
        return self.items


@dataclass(frozen=True)
class ObjectRecord:
    entries: Dict[str, str] = field(default_factory=dict)
    tag = TAG_OBJECT

    @property
    def content(self) -> Dict[str, str]:
        return dict(self.entries)

    def children(self) -> Tuple[str, ...]:
        return tuple(self.entries.values())


Record = Union[NativeRecord, ArrayRecord, ObjectRecord]


def _check_text(s: str, what: str) -> None:
    try:
        s.encode("utf-8")
    except UnicodeEncodeError:
        raise UnsupportedValue(f"{what} is not valid UTF-8 text: {s!r}")


def classify(value: Any) -> str:
    """Return the Record tag a Python value maps to.

    Sequences are ``list``/``tuple``, mappings are ``dict`` with ``str`` keys
    and scalars are ``None``, ``bool``, ``int``, finite ``float`` and ``str``.
    Strings and keys must encode as UTF-8 (no lone surrogates).
    Anything else raises :class:`UnsupportedValue`.
    """
    if isinstance(value, (list, tuple)):
        return TAG_ARRAY
    if isinstance(value, dict):
        for key in value:
            if not isinstance(key, str):
                raise UnsupportedValue(f"mapping keys must be str, got {type(key).__name__}")
            _check_text(key, "mapping key")
        return TAG_OBJECT
    if isinstance(value, SCALAR_TYPES):
        if isinstance(value, float) and not math.isfinite(value):
            raise UnsupportedValue(f"non-finite float not supported: {value!r}")
        if isinstance(value, str):
            _check_text(value, "string")
        return TAG_NATIVE
    raise UnsupportedValue(f"unsupported value type: {type(value).__name__}")


def record_from_parts(tag: Any, content: Any) -> Record:
    """Rebuild a Record from a decoded tag/content pair."""
    if tag == TAG_NATIVE:
        if not isinstance(content, SCALAR_TYPES):
            raise CorruptStore(f"native record holds non-scalar content: {type(content).__name__}")
        return NativeRecord(content)
    if tag == TAG_ARRAY:
        if not isinstance(content, list) or not all(isinstance(fp, str) for fp in content):
            raise CorruptStore("array record content must be a list of fingerprints")
        return ArrayRecord(tuple(content))
    if tag == TAG_OBJECT:
        if not isinstance(content, dict) or not all(isinstance(fp, str) for fp in content.values()):
            raise CorruptStore("object record content must map keys to fingerprints")
        return ObjectRecord(dict(content))
    raise CorruptStore(f"unknown record tag: {tag!r}")
