from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Dict, Optional

from argon2.low_level import Type as _ArgonType, hash_secret_raw as _argon_hash
from Cryptodome.Cipher import ChaCha20_Poly1305

from .constants import (
    FRAGMENT_MAGIC,
    NONCE_SIZE,
    TAG_SIZE,
    KEY_SIZE,
    SALT_SIZE,
    ARGON_TIME_COST,
    ARGON_MEMORY_COST_KIB,
    ARGON_PARALLELISM,
)
from .errors import NoKey, DecryptionError


_HEADER_SIZE = len(FRAGMENT_MAGIC) + SALT_SIZE + NONCE_SIZE


@dataclass(frozen=True)
class KDFParams:
    time_cost: int = ARGON_TIME_COST
    memory_cost_kib: int = ARGON_MEMORY_COST_KIB
    parallelism: int = ARGON_PARALLELISM

    def __post_init__(self):
        if self.time_cost < 1 or self.parallelism < 1:
            raise ValueError("Argon2 time cost and parallelism must be at least 1")
        # Argon2 needs at least 8 KiB per lane
        if self.memory_cost_kib < 8 * self.parallelism:
            raise ValueError(f"Argon2 memory cost must be at least {8 * self.parallelism} KiB")


def derive_key(passphrase: str, salt: bytes, params: KDFParams) -> bytes:
    return _argon_hash(
        passphrase.encode("utf-8"),
        salt,
        time_cost=params.time_cost,
        memory_cost=params.memory_cost_kib,
        parallelism=params.parallelism,
        hash_len=KEY_SIZE,
        type=_ArgonType.ID,
    )


class Encrypter:
    """Reversible transform applied to encoded Record bytes.

    ``aad`` is authenticated but not stored; the object store passes the
    fragment's fingerprint so a ciphertext only opens under its own key.
    """

    def ensure_key(self) -> None:
        """Raise :class:`NoKey` if the transform cannot be used yet."""

    def encrypt(self, plaintext: bytes, *, aad: bytes = b"") -> bytes:
        raise NotImplementedError

    def decrypt(self, payload: bytes, *, aad: bytes = b"") -> bytes:
        raise NotImplementedError


class PlaintextEncrypter(Encrypter):
    """Identity transform for stores that are deliberately unencrypted."""

    def encrypt(self, plaintext: bytes, *, aad: bytes = b"") -> bytes:
        return plaintext

    def decrypt(self, payload: bytes, *, aad: bytes = b"") -> bytes:
        return payload


class PassphraseEncrypter(Encrypter):
    """XChaCha20-Poly1305 keyed by an Argon2id-derived passphrase key.

    The key is fixed when the instance is built. Each fragment carries the
    salt it was sealed with, so fragments written by another instance with
    the same passphrase (and KDF parameters) still open; their keys are
    derived on first use and cached.

    Fragment layout: ``magic[4] | salt[16] | nonce[24] | ciphertext | tag[16]``.
    """

    def __init__(self, passphrase: Optional[str], params: Optional[KDFParams] = None):
        self.params = params or KDFParams()
        self._passphrase = passphrase or None
        self._salt: Optional[bytes] = None
        self._keys: Dict[bytes, bytes] = {}
        if self._passphrase is not None:
            self._salt = os.urandom(SALT_SIZE)
            self._keys[self._salt] = derive_key(self._passphrase, self._salt, self.params)

    @property
    def has_key(self) -> bool:
        return self._salt is not None

    def ensure_key(self) -> None:
        if self._salt is None:
            raise NoKey("No encryption key: a passphrase is required")

    def _key_for(self, salt: bytes) -> bytes:
        key = self._keys.get(salt)
        if key is None:
            key = derive_key(self._passphrase, salt, self.params)
            self._keys[salt] = key
        return key

    def encrypt(self, plaintext: bytes, *, aad: bytes = b"") -> bytes:
        self.ensure_key()
        key = self._key_for(self._salt)
        nonce = os.urandom(NONCE_SIZE)
        cipher = ChaCha20_Poly1305.new(key=key, nonce=nonce)
        if aad:
            cipher.update(aad)
        ciphertext, tag = cipher.encrypt_and_digest(plaintext)
        return FRAGMENT_MAGIC + self._salt + nonce + ciphertext + tag

    def decrypt(self, payload: bytes, *, aad: bytes = b"") -> bytes:
        self.ensure_key()
        if len(payload) < _HEADER_SIZE + TAG_SIZE:
            raise DecryptionError("Encrypted fragment too short")
        if payload[: len(FRAGMENT_MAGIC)] != FRAGMENT_MAGIC:
            raise DecryptionError("Bad fragment magic")
        pos = len(FRAGMENT_MAGIC)
        salt = payload[pos : pos + SALT_SIZE]
        nonce = payload[pos + SALT_SIZE : _HEADER_SIZE]
        ciphertext = payload[_HEADER_SIZE:-TAG_SIZE]
        tag = payload[-TAG_SIZE:]
        cipher = ChaCha20_Poly1305.new(key=self._key_for(salt), nonce=nonce)
        if aad:
            cipher.update(aad)
        try:
            return cipher.decrypt_and_verify(ciphertext, tag)
        except ValueError:
            raise DecryptionError("Fragment failed authentication (wrong passphrase or tampered data)")
