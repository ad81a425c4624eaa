# Record tags
TAG_NATIVE = "native"
TAG_ARRAY = "array"
TAG_OBJECT = "object"

RECORD_TAGS = (TAG_NATIVE, TAG_ARRAY, TAG_OBJECT)

# Encrypted fragment header
FRAGMENT_MAGIC = b"HVX1"  # 4 bytes: "HVX1"

NONCE_SIZE = 24
TAG_SIZE = 16
KEY_SIZE = 32
SALT_SIZE = 16

# Argon2id defaults for passphrase key derivation
ARGON_TIME_COST = 3
ARGON_MEMORY_COST_KIB = 64 * 1024  # 64 MiB
ARGON_PARALLELISM = 4

# TLV codec record tags (binary)
TLV_TAG_NATIVE = 1
TLV_TAG_ARRAY = 2
TLV_TAG_OBJECT = 3

# TLV scalar kinds
SCALAR_NULL = 0
SCALAR_FALSE = 1
SCALAR_TRUE = 2
SCALAR_INT = 3
SCALAR_FLOAT = 4
SCALAR_STR = 5

DEFAULT_CODEC = "json"
