class VaultError(Exception):
    """Base class for hashvault-specific errors."""


# Lookup
class NotFound(VaultError, KeyError):
    """No fragment is stored under the requested fingerprint."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep plain messages
        return Exception.__str__(self)


# Content
class CorruptStore(VaultError):
    pass


class UnsupportedValue(VaultError, TypeError):
    pass


# Encryption
class NoKey(VaultError):
    pass


class DecryptionError(VaultError):
    pass
