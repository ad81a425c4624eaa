from __future__ import annotations

import base64
import hashlib
import re


_FINGERPRINT_RE = re.compile(r"^[A-Za-z0-9_-]{43}$")


def sha256_32(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def fingerprint(data: bytes) -> str:
    """Return the storage key for an encoded Record.

    SHA-256 over ``data`` rendered as unpadded URL-safe base64, so the result
    never contains a path separator and can name a file directly.
    """
    return base64.urlsafe_b64encode(sha256_32(data)).rstrip(b"=").decode("ascii")


def is_fingerprint(value: str) -> bool:
    return bool(_FINGERPRINT_RE.match(value))
