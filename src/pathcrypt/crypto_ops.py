# src/pathcrypt/crypto_ops.py
"""
Cryptographic operations: the on-disk envelope format, AES-256 encryption and
decryption in GCM or CBC+HMAC mode, and keyed filename anonymization.

Envelope layout:
    magic (4) | version (1) | mode id (1) | flags (1) | mode body

    gcm body: nonce (12) | ciphertext with GCM tag
    cbc body: iv (16) | ciphertext | HMAC-SHA256 tag (32)

The header is authenticated in both modes (AAD for GCM, MAC input for CBC).
The encrypted payload is `u16 name length | name | content`.
"""
import hashlib
import hmac
import logging
import os
import struct
from typing import Optional, Tuple

from cryptography.exceptions import InvalidSignature, InvalidTag
from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.primitives import hmac as crypto_hmac
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from .constants import (CBC_IV_LENGTH, CBC_TAG_LENGTH, CIPHER_MODES,
                        ENVELOPE_HEADER_LENGTH, ENVELOPE_MAGIC,
                        ENVELOPE_VERSION, FLAG_NAME_EMBEDDED,
                        GCM_NONCE_LENGTH, HKDF_INFO_ENC, HKDF_INFO_MAC,
                        HKDF_INFO_NAME, KEY_LENGTH, MAX_EMBEDDED_NAME_LENGTH,
                        MODE_IDS, NAME_LENGTH_PREFIX)
from .errors import DecryptionFailed, InvalidParameters, UnsupportedAlgorithm
from .key_derivation import DerivedKeyMaterial

GCM_TAG_LENGTH = 16
AES_BLOCK_BYTES = algorithms.AES.block_size // 8


def _check_mode(mode: str) -> int:
    mode_id = MODE_IDS.get(mode)
    if mode_id is None:
        raise UnsupportedAlgorithm(
            f"Unsupported cipher mode '{mode}'. Expected one of {CIPHER_MODES}."
        )
    return mode_id


def _build_header(mode_id: int, flags: int) -> bytes:
    return ENVELOPE_MAGIC + bytes((ENVELOPE_VERSION, mode_id, flags))


def _subkey(material: DerivedKeyMaterial, info: bytes) -> bytes:
    return HKDF(algorithm=hashes.SHA256(), length=KEY_LENGTH, salt=None, info=info).derive(
        material.key
    )


# --- Filename Anonymization ---
def anonymize_filename(name: str, material: DerivedKeyMaterial) -> str:
    """Opaque, deterministic replacement for a filename, keyed by a subkey of the request key."""
    name_key = _subkey(material, HKDF_INFO_NAME)
    return hmac.new(name_key, name.encode("utf-8"), hashlib.sha256).hexdigest()


# --- Payload Framing ---
def _frame_payload(plaintext: bytes, original_name: Optional[str]) -> Tuple[bytes, int]:
    name_bytes = original_name.encode("utf-8") if original_name else b""
    if len(name_bytes) > MAX_EMBEDDED_NAME_LENGTH:
        raise InvalidParameters(f"Filename too long to embed ({len(name_bytes)} bytes)")
    flags = FLAG_NAME_EMBEDDED if name_bytes else 0
    return struct.pack(">H", len(name_bytes)) + name_bytes + plaintext, flags


def _unframe_payload(payload: bytes, flags: int) -> Tuple[bytes, Optional[str]]:
    if len(payload) < NAME_LENGTH_PREFIX:
        raise DecryptionFailed("Decrypted payload is too short.")
    (name_length,) = struct.unpack(">H", payload[:NAME_LENGTH_PREFIX])
    name_end = NAME_LENGTH_PREFIX + name_length
    if len(payload) < name_end:
        raise DecryptionFailed("Decrypted payload is shorter than its embedded filename.")
    if bool(name_length) != bool(flags & FLAG_NAME_EMBEDDED):
        raise DecryptionFailed("Envelope flags do not match the embedded filename.")
    if not name_length:
        return payload[name_end:], None
    try:
        name = payload[NAME_LENGTH_PREFIX:name_end].decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecryptionFailed("Embedded filename is not valid UTF-8.") from e
    return payload[name_end:], name


# --- CBC + HMAC helpers ---
def _cbc_subkeys(material: DerivedKeyMaterial) -> Tuple[bytes, bytes]:
    return _subkey(material, HKDF_INFO_ENC), _subkey(material, HKDF_INFO_MAC)


def _cbc_tag(mac_key: bytes, *parts: bytes) -> crypto_hmac.HMAC:
    h = crypto_hmac.HMAC(mac_key, hashes.SHA256())
    for part in parts:
        h.update(part)
    return h


def _encrypt_cbc(header: bytes, payload: bytes, material: DerivedKeyMaterial) -> bytes:
    enc_key, mac_key = _cbc_subkeys(material)
    iv = os.urandom(CBC_IV_LENGTH)
    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    padded = padder.update(payload) + padder.finalize()
    encryptor = Cipher(algorithms.AES(enc_key), modes.CBC(iv)).encryptor()
    ciphertext = encryptor.update(padded) + encryptor.finalize()
    tag = _cbc_tag(mac_key, header, iv, ciphertext).finalize()
    return iv + ciphertext + tag


def _decrypt_cbc(header: bytes, body: bytes, material: DerivedKeyMaterial) -> bytes:
    if len(body) < CBC_IV_LENGTH + AES_BLOCK_BYTES + CBC_TAG_LENGTH:
        raise DecryptionFailed("Envelope is truncated.")
    iv = body[:CBC_IV_LENGTH]
    ciphertext = body[CBC_IV_LENGTH:-CBC_TAG_LENGTH]
    tag = body[-CBC_TAG_LENGTH:]
    if len(ciphertext) % AES_BLOCK_BYTES:
        raise DecryptionFailed("Ciphertext is not a whole number of blocks.")

    enc_key, mac_key = _cbc_subkeys(material)
    try:
        _cbc_tag(mac_key, header, iv, ciphertext).verify(tag)
    except InvalidSignature as e:
        raise DecryptionFailed("Integrity check failed (wrong key or tampered data).") from e

    decryptor = Cipher(algorithms.AES(enc_key), modes.CBC(iv)).decryptor()
    padded = decryptor.update(ciphertext) + decryptor.finalize()
    unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
    try:
        return unpadder.update(padded) + unpadder.finalize()
    except ValueError as e:
        raise DecryptionFailed("Invalid padding.") from e


# --- GCM helpers ---
def _encrypt_gcm(header: bytes, payload: bytes, material: DerivedKeyMaterial) -> bytes:
    nonce = os.urandom(GCM_NONCE_LENGTH)
    return nonce + AESGCM(material.key).encrypt(nonce, payload, header)


def _decrypt_gcm(header: bytes, body: bytes, material: DerivedKeyMaterial) -> bytes:
    if len(body) < GCM_NONCE_LENGTH + GCM_TAG_LENGTH:
        raise DecryptionFailed("Envelope is truncated.")
    nonce, ciphertext = body[:GCM_NONCE_LENGTH], body[GCM_NONCE_LENGTH:]
    try:
        return AESGCM(material.key).decrypt(nonce, ciphertext, header)
    except InvalidTag as e:
        raise DecryptionFailed("Authentication failed (wrong key or tampered data).") from e


_ENCRYPTORS = {"gcm": _encrypt_gcm, "cbc": _encrypt_cbc}
_DECRYPTORS = {"gcm": _decrypt_gcm, "cbc": _decrypt_cbc}


# --- Core Encryption/Decryption of Content ---
def encode(
    plaintext: bytes,
    material: DerivedKeyMaterial,
    mode: str,
    original_name: Optional[str] = None,
) -> bytes:
    """
    Wraps plaintext (and optionally the original filename) in an envelope.

    Raises:
        UnsupportedAlgorithm for an unknown mode.
        InvalidParameters if the filename is too long to embed.
    """
    mode_id = _check_mode(mode)
    payload, flags = _frame_payload(plaintext, original_name)
    header = _build_header(mode_id, flags)
    return header + _ENCRYPTORS[mode](header, payload, material)


def decode(
    envelope: bytes, material: DerivedKeyMaterial, mode: str
) -> Tuple[bytes, Optional[str]]:
    """
    Opens an envelope written by `encode` with the same key and mode.

    Returns:
        (plaintext, embedded original filename or None)
    Raises:
        UnsupportedAlgorithm for an unknown mode.
        DecryptionFailed for a wrong key, a mode mismatch, or a truncated or
        tampered envelope.
    """
    mode_id = _check_mode(mode)
    if len(envelope) < ENVELOPE_HEADER_LENGTH:
        raise DecryptionFailed("Envelope is truncated.")
    header = bytes(envelope[:ENVELOPE_HEADER_LENGTH])
    if header[:4] != ENVELOPE_MAGIC:
        raise DecryptionFailed("Not a pathcrypt envelope.")
    version, found_mode_id, flags = header[4], header[5], header[6]
    if version != ENVELOPE_VERSION:
        raise DecryptionFailed(f"Unsupported envelope version {version}.")
    if found_mode_id != mode_id:
        raise DecryptionFailed(f"Envelope was not written with cipher mode '{mode}'.")
    if flags & ~FLAG_NAME_EMBEDDED:
        raise DecryptionFailed(f"Unknown envelope flags {flags:#04x}.")

    payload = _DECRYPTORS[mode](header, bytes(envelope[ENVELOPE_HEADER_LENGTH:]), material)
    plaintext, name = _unframe_payload(payload, flags)
    logging.debug(f"Decoded envelope ({mode}, {len(plaintext)} bytes)")
    return plaintext, name
