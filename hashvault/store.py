from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from .codec import RecordCodec, JSONRecordCodec, get_codec
from .constants import TAG_NATIVE, TAG_ARRAY, TAG_OBJECT, RECORD_TAGS, DEFAULT_CODEC
from .encryption import Encrypter, PassphraseEncrypter, PlaintextEncrypter, KDFParams
from .errors import CorruptStore, DecryptionError, NotFound
from .hashutil import fingerprint
from .records import Record, NativeRecord, ArrayRecord, ObjectRecord, classify
from .storage import Storage, FileStorage


@dataclass
class _Node:
    """A planned Record: fingerprint, encoded bytes and planned children."""

    fingerprint: str
    encoded: bytes
    children: List["_Node"] = field(default_factory=list)


class ObjectStore:
    """Content-addressed store for nested values.

    ``save`` splits a value into one Record per node, each stored under the
    fingerprint of its encoded bytes; ``load`` reassembles it from the root
    fingerprint. A fragment is only written after every fragment it
    references, so anything present in the backend loads in full.

    Args:
        storage: Backend holding the encrypted fragments.
        encrypter: Transform applied to encoded Records. Use
            :class:`PlaintextEncrypter` for an unencrypted store.
        codec: Record codec; defaults to canonical JSON.
    """

    def __init__(self, storage: Storage, encrypter: Encrypter, codec: Optional[RecordCodec] = None):
        self.storage = storage
        self.encrypter = encrypter
        self.codec = codec if codec is not None else JSONRecordCodec()

    # -------- save --------

    def save(self, value: Any) -> str:
        """Persist ``value`` and return its root fingerprint."""
        self.encrypter.ensure_key()
        root = self._plan(value)
        self._persist(root)
        return root.fingerprint

    def _plan(self, value: Any) -> _Node:
        # Children first: a container's Record is made of their fingerprints.
        tag = classify(value)
        if tag == TAG_ARRAY:
            children = [self._plan(item) for item in value]
            record: Record = ArrayRecord(tuple(c.fingerprint for c in children))
        elif tag == TAG_OBJECT:
            children = [self._plan(item) for item in value.values()]
            record = ObjectRecord({key: c.fingerprint for key, c in zip(value, children)})
        else:
            children = []
            record = NativeRecord(value)
        encoded = self.codec.encode(record)
        return _Node(fingerprint(encoded), encoded, children)

    def _persist(self, node: _Node) -> None:
        # An existing fingerprint is trusted as-is, along with everything below it.
        if self.storage.exists(node.fingerprint):
            return
        for child in node.children:
            self._persist(child)
        payload = self.encrypter.encrypt(node.encoded, aad=node.fingerprint.encode("utf-8"))
        self.storage.write(node.fingerprint, payload)

    # -------- load --------

    def contains(self, fp: str) -> bool:
        return self.storage.exists(fp)

    def read_record(self, fp: str) -> Record:
        """Read, decrypt and decode the Record stored under ``fp``."""
        if not self.storage.exists(fp):
            raise NotFound(f"Object not found: {fp}")
        payload = self.storage.read(fp)
        return self.codec.decode(self.encrypter.decrypt(payload, aad=fp.encode("utf-8")))

    def load(self, fp: str) -> Any:
        """Reassemble the value whose root fingerprint is ``fp``."""
        self.encrypter.ensure_key()
        return self._load(fp)

    def _load(self, fp: str) -> Any:
        record = self.read_record(fp)
        if record.tag == TAG_OBJECT:
            return {key: self._load(child) for key, child in record.entries.items()}
        if record.tag == TAG_ARRAY:
            return [self._load(child) for child in record.items]
        if record.tag == TAG_NATIVE:
            return record.value
        raise CorruptStore(f"DB corrupted: unknown record tag {record.tag!r} at {fp}")

    # -------- graph inspection --------

    def walk(self, fp: str) -> Iterator[Tuple[str, Record]]:
        """Yield ``(fingerprint, record)`` for every reachable fragment once.

        Parents are yielded before their children.
        """
        self.encrypter.ensure_key()
        seen = set()
        stack = [fp]
        while stack:
            cur = stack.pop()
            if cur in seen:
                continue
            seen.add(cur)
            record = self.read_record(cur)
            yield cur, record
            stack.extend(reversed(record.children()))

    def verify(self, fp: str) -> bool:
        """Re-check every fragment reachable from ``fp``.

        Each fragment must exist, decrypt, decode and hash back to its own
        fingerprint. Returns False at the first failure.
        """
        self.encrypter.ensure_key()
        seen = set()
        stack = [fp]
        while stack:
            cur = stack.pop()
            if cur in seen:
                continue
            seen.add(cur)
            try:
                plaintext = self.encrypter.decrypt(self.storage.read(cur), aad=cur.encode("utf-8"))
                record = self.codec.decode(plaintext)
            except (NotFound, DecryptionError, CorruptStore):
                return False
            if fingerprint(plaintext) != cur:
                return False
            stack.extend(record.children())
        return True

    def stats(self, fp: str) -> Dict[str, int]:
        """Count distinct reachable fragments per Record tag."""
        counts = {tag: 0 for tag in RECORD_TAGS}
        for _fp, record in self.walk(fp):
            counts[record.tag] += 1
        counts["fragments"] = sum(counts[tag] for tag in RECORD_TAGS)
        return counts


def open_store(
    root: Union[str, os.PathLike],
    password: Optional[str] = None,
    *,
    codec: str = DEFAULT_CODEC,
    kdf_params: Optional[KDFParams] = None,
) -> ObjectStore:
    """Open a filesystem-backed store rooted at ``root``.

    Without ``password`` the store is unencrypted. An empty password yields a
    keyless encrypter, so every save/load raises :class:`NoKey`.
    """
    if password is None:
        encrypter: Encrypter = PlaintextEncrypter()
    else:
        encrypter = PassphraseEncrypter(password, kdf_params)
    return ObjectStore(FileStorage(root), encrypter, get_codec(codec))
