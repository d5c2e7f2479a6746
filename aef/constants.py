# Magic
HEADER_MAGIC = b"\xffAEF"   # 4 bytes: 0xFF 'A' 'E' 'F'

# Key derivation (scrypt)
SALT_SIZE = 64
KEY_SIZE = 32
DEFAULT_SCRYPT_LOG_N = 20
DEFAULT_SCRYPT_R = 8
DEFAULT_SCRYPT_P = 1

# Chunk framing (AES-256-GCM)
NONCE_SIZE = 12
TAG_SIZE = 16
MAX_CHUNK_LEN = 0xFFFF
MAX_CHUNK_PLAINTEXT = MAX_CHUNK_LEN - TAG_SIZE  # 65519

# Header compression flag
COMPRESS_OFF = 0
COMPRESS_ON = 1

# Entry file types
FTYPE_DIRECTORY = 0
FTYPE_FILE = 1

# Permissions sentinel: 0 is stored when no permissions were recorded
NONE_PERMISSIONS = 0

# Brotli quality range; window is an encoder setting only
MIN_COMPRESS_LEVEL = 0
MAX_COMPRESS_LEVEL = 11
DEFAULT_COMPRESS_LEVEL = MIN_COMPRESS_LEVEL
BROTLI_LGWIN = 22

# Private component separator for serialized paths
PATH_SEP = "\x1f"

BUF_SIZE = 8 * 1024
