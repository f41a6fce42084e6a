"""Key derivation for the credential store envelope.

The master password is stretched with PBKDF2-HMAC-SHA256 into a 256-bit
AES key. The envelope format does not record the iteration count, so
PBKDF2_ITERATIONS is a format constant: every envelope ever written was
derived with it, and changing it would make existing stores unreadable.

Security considerations:
- A fresh random salt is generated for every write of the envelope
- Derived keys are returned as SecureBytes for explicit zeroization
"""

from __future__ import annotations

import logging
import os

from Cryptodome.Hash import SHA256
from Cryptodome.Protocol.KDF import PBKDF2

from credvault.exceptions import InvalidParameterError

from .memory import SecureBytes

logger = logging.getLogger(__name__)

PBKDF2_ITERATIONS = 100_000
KEY_LENGTH = 32  # AES-256
SALT_LENGTH = 32

# Shorter salts are accepted on read for forward compatibility of the
# envelope, but never below 128 bits.
MIN_SALT_LENGTH = 16
MAX_SALT_LENGTH = 255


def generate_salt() -> bytes:
    """Generate a random 32-byte salt for key derivation."""
    return os.urandom(SALT_LENGTH)


def derive_key(password: str, salt: bytes) -> SecureBytes:
    """Derive a 32-byte key from a master password using PBKDF2-HMAC-SHA256.

    This is deliberately slow. Hosts running an event loop should call it
    from a worker thread.

    Args:
        password: Master password
        salt: Salt stored in the envelope (16 to 255 bytes)

    Returns:
        32-byte derived key wrapped in SecureBytes

    Raises:
        InvalidParameterError: If password is empty or salt has an invalid length
    """
    if not isinstance(password, str) or not password:
        raise InvalidParameterError("Master password must be a non-empty string")
    if not isinstance(salt, (bytes, bytearray)):
        raise InvalidParameterError("Salt must be bytes")
    if not MIN_SALT_LENGTH <= len(salt) <= MAX_SALT_LENGTH:
        raise InvalidParameterError(
            f"Salt must be between {MIN_SALT_LENGTH} and {MAX_SALT_LENGTH} bytes, "
            f"got {len(salt)}"
        )

    derived = PBKDF2(
        password.encode("utf-8"),
        bytes(salt),
        dkLen=KEY_LENGTH,
        count=PBKDF2_ITERATIONS,
        hmac_hash_module=SHA256,
    )
    logger.debug("Derived %d-byte key (%d iterations)", KEY_LENGTH, PBKDF2_ITERATIONS)
    return SecureBytes(derived)
