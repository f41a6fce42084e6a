"""Security-critical components for credvault.

This module contains all security-sensitive code including:
- Secure memory handling (SecureBytes)
- Authenticated encryption and secret generation
- Master password key derivation
- Account password hashing

All code in this module should be audited carefully.
"""

from .crypto import (
    KEY_SIZE,
    NONCE_SIZE,
    TAG_SIZE,
    EncryptedPayload,
    decrypt,
    encrypt,
    generate_secret,
    secure_random_bytes,
)
from .kdf import (
    KEY_LENGTH,
    PBKDF2_ITERATIONS,
    SALT_LENGTH,
    derive_key,
    generate_salt,
)
from .memory import SecureBytes
from .password import (
    PasswordHashConfig,
    hash_password,
    needs_rehash,
    verify_password,
)

__all__ = [
    # Memory
    "SecureBytes",
    # Crypto
    "KEY_SIZE",
    "NONCE_SIZE",
    "TAG_SIZE",
    "EncryptedPayload",
    "decrypt",
    "encrypt",
    "generate_secret",
    "secure_random_bytes",
    # KDF
    "KEY_LENGTH",
    "PBKDF2_ITERATIONS",
    "SALT_LENGTH",
    "derive_key",
    "generate_salt",
    # Password hashing
    "PasswordHashConfig",
    "hash_password",
    "needs_rehash",
    "verify_password",
]
