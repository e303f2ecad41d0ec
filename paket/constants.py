# Cipher geometry (AES)
BLOCK_SIZE = 16                 # nonce length == one cipher block
KEY_SIZES = (16, 24, 32)        # AES-128 / AES-192 / AES-256
CFB_SEGMENT_BITS = 128          # full-block CFB

# Bounds for generated keys
RANDOM_KEY_MIN = 16
RANDOM_KEY_MAX = 32
DEFAULT_KEY_SIZE = 32

# Table persistence
TABLE_FORMAT = "paket-table"
TABLE_VERSION = 1
TABLE_SUFFIX = ".json"

# CLI configuration
KEY_ENV_VAR = "PAKET_KEY"
DEFAULT_JOBS = 4
