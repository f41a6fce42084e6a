"""Authenticated encryption and secure randomness.

The bundle is encrypted with AES-256-GCM. Every call to encrypt() draws a
fresh random 16-byte nonce; callers can never supply one, so a (key, nonce)
pair is never reused by construction. The 16-byte GCM tag authenticates the
ciphertext under the key.

Decryption failures are reported with a single generic message. A wrong
master password and a tampered envelope must look the same to the caller.
"""

from __future__ import annotations

import logging
import math
import os
import secrets
from typing import NamedTuple

from Cryptodome.Cipher import AES

from credvault.exceptions import AuthenticationError, InvalidParameterError

logger = logging.getLogger(__name__)

KEY_SIZE = 32  # AES-256
NONCE_SIZE = 16
TAG_SIZE = 16

# Nonces read back from an envelope may be shorter than what we write,
# but never below the 96 bits GCM is designed around.
MIN_NONCE_SIZE = 12
MAX_NONCE_SIZE = 255


class EncryptedPayload(NamedTuple):
    """Output of encrypt(): everything decrypt() needs besides the key."""

    ciphertext: bytes
    nonce: bytes
    tag: bytes


def secure_random_bytes(n: int) -> bytes:
    """Return n cryptographically secure random bytes."""
    if n < 1:
        raise InvalidParameterError(f"Byte count must be positive, got {n}")
    return os.urandom(n)


def generate_secret(length: int) -> str:
    """Generate a URL-safe random secret of exactly ``length`` characters.

    The secret uses the URL-safe base64 alphabet without padding. It is
    built from ceil(3 * length / 4) random bytes, which always encode to at
    least ``length`` characters.

    Args:
        length: Number of characters to return

    Returns:
        Random string of the requested length

    Raises:
        InvalidParameterError: If length is less than 1
    """
    if not isinstance(length, int) or isinstance(length, bool) or length < 1:
        raise InvalidParameterError(f"Secret length must be a positive integer, got {length!r}")
    n_bytes = math.ceil(length * 3 / 4)
    return secrets.token_urlsafe(n_bytes)[:length]


def _check_key(key: bytes) -> None:
    if not isinstance(key, (bytes, bytearray)) or len(key) != KEY_SIZE:
        size = len(key) if isinstance(key, (bytes, bytearray)) else type(key).__name__
        raise InvalidParameterError(f"Key must be {KEY_SIZE} bytes, got {size}")


def encrypt(plaintext: bytes, key: bytes) -> EncryptedPayload:
    """Encrypt plaintext with AES-256-GCM under a fresh random nonce.

    Args:
        plaintext: Data to encrypt
        key: 32-byte encryption key

    Returns:
        EncryptedPayload of (ciphertext, 16-byte nonce, 16-byte tag).
        The ciphertext has the same length as the plaintext.

    Raises:
        InvalidParameterError: If key is not 32 bytes
    """
    _check_key(key)

    nonce = os.urandom(NONCE_SIZE)
    cipher = AES.new(bytes(key), AES.MODE_GCM, nonce=nonce, mac_len=TAG_SIZE)
    ciphertext, tag = cipher.encrypt_and_digest(plaintext)

    logger.debug("Encrypted payload (ciphertext length: %d)", len(ciphertext))
    return EncryptedPayload(ciphertext=ciphertext, nonce=nonce, tag=tag)


def decrypt(ciphertext: bytes, key: bytes, nonce: bytes, tag: bytes) -> bytes:
    """Decrypt and authenticate AES-256-GCM ciphertext.

    Args:
        ciphertext: Encrypted data
        key: 32-byte encryption key
        nonce: Nonce used at encryption (12 to 255 bytes)
        tag: 16-byte authentication tag

    Returns:
        Decrypted plaintext

    Raises:
        InvalidParameterError: If key, nonce or tag has an invalid size
        AuthenticationError: If the key is wrong or the data was modified
    """
    _check_key(key)
    if not MIN_NONCE_SIZE <= len(nonce) <= MAX_NONCE_SIZE:
        raise InvalidParameterError(
            f"Nonce must be between {MIN_NONCE_SIZE} and {MAX_NONCE_SIZE} bytes, "
            f"got {len(nonce)}"
        )
    if len(tag) != TAG_SIZE:
        raise InvalidParameterError(f"Tag must be {TAG_SIZE} bytes, got {len(tag)}")

    cipher = AES.new(bytes(key), AES.MODE_GCM, nonce=bytes(nonce), mac_len=TAG_SIZE)
    try:
        plaintext = cipher.decrypt_and_verify(ciphertext, tag)
    except ValueError:
        raise AuthenticationError() from None

    logger.debug("Decrypted payload (plaintext length: %d)", len(plaintext))
    return plaintext
