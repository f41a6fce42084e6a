"""Custom exception hierarchy for credvault.

All exceptions inherit from CredVaultError so callers can catch every
library-specific failure in one place.

Exception Hierarchy:
    CredVaultError (base)
    ├── InvalidParameterError
    ├── FormatError
    │   └── MalformedEnvelopeError
    │       └── InvalidBundleError
    ├── CryptoError
    │   ├── AuthenticationError
    │   └── InvalidHashError
    ├── CredentialError
    │   └── WeakMasterPasswordError
    └── StoreError
        ├── StoreNotFoundError
        └── StoreExistsError

Security Note:
    Messages never contain the master password, derived keys or any
    decrypted secret. A wrong master password and a corrupted envelope
    produce the same AuthenticationError message.
"""

from __future__ import annotations


class CredVaultError(Exception):
    """Base exception for all credvault errors."""


class InvalidParameterError(CredVaultError):
    """Malformed sizes or arguments passed to a primitive.

    This is a programming error and will fail the same way on retry.
    """


# --- Format Errors ---


class FormatError(CredVaultError):
    """Error in the on-disk format of the credential store."""


class MalformedEnvelopeError(FormatError):
    """Envelope blob is truncated or structurally invalid.

    Raised when the blob is shorter than its declared sections or a
    required section declares length zero.
    """


class InvalidBundleError(MalformedEnvelopeError):
    """Decrypted payload is not a valid secret bundle."""

    def __init__(self, message: str = "Decrypted payload is not a valid secret bundle") -> None:
        super().__init__(message)


# --- Crypto Errors ---


class CryptoError(CredVaultError):
    """Error in cryptographic operations."""


class AuthenticationError(CryptoError):
    """Authenticated decryption failed.

    Covers both a wrong master password and a tampered or corrupted
    envelope. The two cases are deliberately indistinguishable.
    """

    def __init__(self, message: str = "Invalid master password or corrupted data") -> None:
        super().__init__(message)


class InvalidHashError(CryptoError):
    """Stored password hash is not a recognized Argon2 encoding."""

    def __init__(self, message: str = "Unrecognized password hash format") -> None:
        super().__init__(message)


# --- Credential Errors ---


class CredentialError(CredVaultError):
    """Error with the supplied master password."""


class WeakMasterPasswordError(CredentialError):
    """Master password does not meet the minimum length policy."""

    def __init__(self, min_length: int) -> None:
        self.min_length = min_length
        super().__init__(f"Master password must be at least {min_length} characters long")


# --- Store Errors ---


class StoreError(CredVaultError):
    """Error in credential store lifecycle operations."""


class StoreNotFoundError(StoreError):
    """No envelope exists at the configured location."""

    def __init__(self, path: object) -> None:
        self.path = path
        super().__init__(f"No credential store found at {path}")


class StoreExistsError(StoreError):
    """An envelope already exists and would be overwritten."""

    def __init__(self, path: object) -> None:
        self.path = path
        super().__init__(f"Credential store already exists at {path}")
