from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Dict, Union

from .errors import NotFound


def check_key(key: str) -> str:
    """Validate a storage key.

    Keys name files directly, so they must be non-empty, free of path
    separators and not ``.`` or ``..``.
    """
    if not key:
        raise ValueError("Storage key may not be empty")
    if "/" in key or "\\" in key or "\x00" in key:
        raise ValueError(f"Storage key may not contain path separators: {key!r}")
    if key in (".", ".."):
        raise ValueError(f"Invalid storage key: {key!r}")
    return key


class Storage:
    """Append-only key/value byte store. No deletion, no listing."""

    def exists(self, key: str) -> bool:
        raise NotImplementedError

    def read(self, key: str) -> bytes:
        raise NotImplementedError

    def write(self, key: str, data: bytes) -> None:
        raise NotImplementedError


class FileStorage(Storage):
    """One file per key, directly under ``root`` (no sharding)."""

    def __init__(self, root: Union[str, os.PathLike]):
        self.root = Path(root)

    def path_for(self, key: str) -> Path:
        return self.root / check_key(key)

    def exists(self, key: str) -> bool:
        return self.path_for(key).is_file()

    def read(self, key: str) -> bytes:
        path = self.path_for(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            raise NotFound(f"Object not found: {key}")

    def write(self, key: str, data: bytes) -> None:
        path = self.path_for(key)
        self.root.mkdir(parents=True, exist_ok=True)
        # Write to a temp file in the same directory, then atomically rename,
        # so readers never observe a partially written fragment.
        fd, tmp = tempfile.mkstemp(prefix=".tmp-", dir=str(self.root))
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp, path)
        except BaseException:
            try:
                os.unlink(tmp)
            except OSError:
                pass
            raise


class MemoryStorage(Storage):
    """Dict-backed backend; counts writes."""

    def __init__(self):
        self.data: Dict[str, bytes] = {}
        self.write_count = 0

    def exists(self, key: str) -> bool:
        return check_key(key) in self.data

    def read(self, key: str) -> bytes:
        try:
            return self.data[check_key(key)]
        except KeyError:
            raise NotFound(f"Object not found: {key}")

    def write(self, key: str, data: bytes) -> None:
        self.data[check_key(key)] = bytes(data)
        self.write_count += 1

    def __len__(self) -> int:
        return len(self.data)
