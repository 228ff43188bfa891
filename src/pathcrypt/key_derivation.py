# src/pathcrypt/key_derivation.py
"""
Password-based key derivation (PBKDF2-HMAC-SHA256 or Argon2id) and
in-place wiping of secret buffers.
"""
import logging
from dataclasses import dataclass, field
from typing import Union

from argon2.exceptions import HashingError
from argon2.low_level import Type, hash_secret_raw
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .constants import (ARGON2_MEMORY_COST_KIB, ARGON2_MIN_SALT_LENGTH,
                        ARGON2_PARALLELISM, HASH_ALGORITHMS, KEY_LENGTH)
from .errors import InvalidParameters, UnsupportedAlgorithm


def wipe_buffer(buffer: bytearray) -> None:
    """Overwrites a mutable buffer with zeros in place."""
    if isinstance(buffer, bytearray) and buffer:
        memoryview(buffer)[:] = bytes(len(buffer))


@dataclass(eq=False, slots=True)
class DerivedKeyMaterial:
    """
    Symmetric key for one request, plus the parameters that reproduce it.
    The key is held in a bytearray so it can be zeroed when the run ends.
    """

    key: bytearray = field(repr=False)
    salt: bytes = field(repr=False)
    iterations: int
    hash_algorithm: str

    @property
    def wiped(self) -> bool:
        return not any(self.key)

    def wipe(self) -> None:
        wipe_buffer(self.key)


def _as_bytes(value: Union[str, bytes, bytearray], name: str) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    raise InvalidParameters(f"{name} must be str or bytes, got {type(value).__name__}")


def _as_buffer(value: Union[str, bytes, bytearray], name: str) -> bytearray:
    """Private, wipeable copy of a secret."""
    if isinstance(value, str):
        return bytearray(value.encode("utf-8"))
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytearray(value)
    raise InvalidParameters(f"{name} must be str or bytes, got {type(value).__name__}")


def _pbkdf2(password: bytearray, salt: bytes, iterations: int) -> bytes:
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=salt,
        iterations=iterations,
    )
    return kdf.derive(password)


def _argon2(password: bytearray, salt: bytes, iterations: int) -> bytes:
    if len(salt) < ARGON2_MIN_SALT_LENGTH:
        raise InvalidParameters(
            f"Argon2 requires a salt of at least {ARGON2_MIN_SALT_LENGTH} bytes, got {len(salt)}."
        )
    try:
        return hash_secret_raw(
            secret=bytes(password),
            salt=salt,
            time_cost=iterations,
            memory_cost=ARGON2_MEMORY_COST_KIB,
            parallelism=ARGON2_PARALLELISM,
            hash_len=KEY_LENGTH,
            type=Type.ID,
        )
    except HashingError as e:
        raise InvalidParameters(f"Failed to generate key with Argon2id: {e}") from e


_DERIVERS = {
    "pbkdf2": _pbkdf2,
    "argon2": _argon2,
}


def derive(
    password: Union[str, bytes, bytearray],
    salt: Union[str, bytes],
    hash_algorithm: str,
    iterations: int,
) -> DerivedKeyMaterial:
    """
    Derives the 32-byte request key. Deterministic for identical arguments.

    The password is copied into a private bytearray that is zeroed before this
    returns, and the key is handed back in a bytearray that `wipe()` zeroes.
    The KDF backends return immutable `bytes` (and Argon2 takes `bytes` input),
    so short-lived copies inside the backends cannot be wiped; they are dropped
    as soon as the key has been copied out.

    Raises:
        InvalidParameters: empty password/salt or iterations < 1.
        UnsupportedAlgorithm: hash_algorithm is not one of HASH_ALGORITHMS.
    """
    if isinstance(iterations, bool) or not isinstance(iterations, int) or iterations < 1:
        raise InvalidParameters(f"Iterations must be a positive integer, got {iterations!r}")
    if not password:
        raise InvalidParameters("Password must not be empty.")
    if not salt:
        raise InvalidParameters("Salt must not be empty.")

    deriver = _DERIVERS.get(hash_algorithm)
    if deriver is None:
        raise UnsupportedAlgorithm(
            f"Unsupported key derivation algorithm '{hash_algorithm}'. Expected one of {HASH_ALGORITHMS}."
        )

    salt_bytes = _as_bytes(salt, "Salt")
    secret = _as_buffer(password, "Password")
    logging.info(f"Deriving key with {hash_algorithm} ({iterations} iterations)")
    try:
        raw_key = deriver(secret, salt_bytes, iterations)
        key = bytearray(raw_key)
        del raw_key
    finally:
        wipe_buffer(secret)
    return DerivedKeyMaterial(
        key=key,
        salt=salt_bytes,
        iterations=iterations,
        hash_algorithm=hash_algorithm,
    )
