"""
hashvault: content-addressed storage for nested values.

Features:

- Values (scalars, lists, string-keyed dicts) are split into one Record per node.
- Records reference children by fingerprint (SHA-256 of the encoded Record),
  so equal subtrees are stored once, within a save and across saves.
- Pluggable Record codecs (canonical JSON, compact TLV).
- Fragments sealed with XChaCha20-Poly1305 under an Argon2id passphrase key.
- Flat filesystem backend with atomic writes, plus an in-memory backend.

Every fragment is written only after all the fragments it references, so a
fingerprint present in the backend can always be loaded in full.
"""

__version__ = "0.1"

from .errors import VaultError, NotFound, CorruptStore, NoKey, DecryptionError, UnsupportedValue
from .store import ObjectStore, open_store

__all__ = [
    "constants",
    "codec",
    "encryption",
    "storage",
    "store",
    "ObjectStore",
    "open_store",
    "VaultError",
    "NotFound",
    "CorruptStore",
    "NoKey",
    "DecryptionError",
    "UnsupportedValue",
]
