# src/pathcrypt/constants.py
"""
Global constants for the pathcrypt engine.
"""
# Request Defaults
DEFAULT_ITERATIONS: int = 10
DEFAULT_THREADS: int = 8
DEFAULT_MODE: str = "gcm"
DEFAULT_HASH: str = "pbkdf2"

OPERATIONS: tuple = ("encrypt", "decrypt")
CIPHER_MODES: tuple = ("gcm", "cbc")
HASH_ALGORITHMS: tuple = ("pbkdf2", "argon2")

# Key Derivation
KEY_LENGTH: int = 32  # AES-256
ARGON2_MEMORY_COST_KIB: int = 19_456
ARGON2_PARALLELISM: int = 4
ARGON2_MIN_SALT_LENGTH: int = 8

# Envelope
ENVELOPE_MAGIC: bytes = b"PCRY"
ENVELOPE_VERSION: int = 1
ENVELOPE_HEADER_LENGTH: int = 7  # magic + version + mode id + flags
FLAG_NAME_EMBEDDED: int = 0x01
MODE_IDS: dict = {"gcm": 1, "cbc": 2}
GCM_NONCE_LENGTH: int = 12
CBC_IV_LENGTH: int = 16
CBC_TAG_LENGTH: int = 32  # HMAC-SHA256
NAME_LENGTH_PREFIX: int = 2
MAX_EMBEDDED_NAME_LENGTH: int = 0xFFFF
HKDF_INFO_ENC: bytes = b"pathcrypt cbc enc"
HKDF_INFO_MAC: bytes = b"pathcrypt cbc mac"
HKDF_INFO_NAME: bytes = b"pathcrypt name"

# Files
ENCRYPTED_EXTENSION: str = ".enom"
TEMP_FILE_PREFIX: str = ".pc"
TEMP_FILE_SUFFIX: str = ".pcpart"

# Source paths that are never processed
ILLEGAL_SOURCE_LOCATIONS: tuple = (
    "/", "/root", "/home", "/boot", "/usr", "/lib", "/lib64", "/lib32",
    "/libx32", "/mnt", "/dev", "/sys", "/run", "/bin", "/sbin", "/proc",
    "/media", "/var", "/etc", "/srv", "/opt", "C:\\", "C:/", "C:", "c:",
)

# Logging
LOG_FILE_BASENAME: str = "pathcrypt"
LOG_FILE_TIMESTAMP_FORMAT: str = "%Y%m%d_%H%M%S"
LOG_FORMAT: str = (
    "%(asctime)s.%(msecs)d - %(levelname)s - %(threadName)s - (%(funcName)s.%(lineno)s): %(message)s"
)
LOG_DATE_FORMAT: str = "%d-%b-%y %H:%M:%S"
