"""One-way hashing for user account passwords.

This is unrelated to the reversible credential store: account passwords
(admin panel users, mailbox users) are hashed with Argon2id and can only be
verified by recomputation, never decrypted.

Hashes are emitted in the standard PHC encoding (``$argon2id$v=19$...``)
with the parameters and a random per-call salt embedded, so verification
needs nothing but the stored string.
"""

from __future__ import annotations

from dataclasses import dataclass

from argon2 import PasswordHasher, Type, extract_parameters
from argon2.exceptions import InvalidHashError as Argon2InvalidHashError
from argon2.exceptions import VerificationError, VerifyMismatchError

from credvault.exceptions import InvalidHashError, InvalidParameterError

# Minimum Argon2 parameters accepted for account password hashing
# Based on OWASP recommendations (as of 2024)
ARGON2_MIN_MEMORY_KIB = 16 * 1024  # 16 MiB minimum
ARGON2_MIN_ITERATIONS = 3
ARGON2_MIN_PARALLELISM = 1


@dataclass(frozen=True, slots=True)
class PasswordHashConfig:
    """Argon2id parameters for account password hashing.

    Attributes:
        memory_kib: Memory usage in KiB
        iterations: Number of passes (time cost)
        parallelism: Number of lanes
        hash_len: Length of the raw hash in bytes
        salt_len: Length of the random salt in bytes
    """

    memory_kib: int = 64 * 1024  # 64 MiB
    iterations: int = 3
    parallelism: int = 2
    hash_len: int = 32
    salt_len: int = 16

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if self.hash_len < 16:
            raise InvalidParameterError("Argon2 hash length must be at least 16 bytes")
        if self.salt_len < 16:
            raise InvalidParameterError("Argon2 salt must be at least 16 bytes")

    def validate_security(self) -> None:
        """Check that parameters meet minimum security requirements.

        Raises:
            InvalidParameterError: If parameters are below security minimums
        """
        issues = []
        if self.memory_kib < ARGON2_MIN_MEMORY_KIB:
            issues.append(
                f"Memory {self.memory_kib} KiB is below minimum "
                f"{ARGON2_MIN_MEMORY_KIB} KiB"
            )
        if self.iterations < ARGON2_MIN_ITERATIONS:
            issues.append(
                f"Iterations {self.iterations} is below minimum "
                f"{ARGON2_MIN_ITERATIONS}"
            )
        if self.parallelism < ARGON2_MIN_PARALLELISM:
            issues.append(
                f"Parallelism {self.parallelism} is below minimum "
                f"{ARGON2_MIN_PARALLELISM}"
            )
        if issues:
            raise InvalidParameterError("Weak Argon2 parameters: " + "; ".join(issues))

    def hasher(self) -> PasswordHasher:
        """Build an argon2-cffi PasswordHasher for these parameters."""
        self.validate_security()
        return PasswordHasher(
            time_cost=self.iterations,
            memory_cost=self.memory_kib,
            parallelism=self.parallelism,
            hash_len=self.hash_len,
            salt_len=self.salt_len,
            type=Type.ID,
        )


DEFAULT_CONFIG = PasswordHashConfig()


def hash_password(password: str, config: PasswordHashConfig | None = None) -> str:
    """Hash an account password with Argon2id.

    Hashing the same password twice yields different strings because each
    call draws a new random salt.

    Args:
        password: Plaintext password
        config: Optional Argon2 parameters (DEFAULT_CONFIG if omitted)

    Returns:
        PHC-encoded Argon2id hash string
    """
    if not isinstance(password, str):
        raise InvalidParameterError("Password must be a string")
    return (config or DEFAULT_CONFIG).hasher().hash(password)


def _check_hash_format(hash_string: str) -> None:
    """Reject strings that are not a parseable Argon2 PHC encoding.

    Raises:
        InvalidHashError: If hash_string cannot be parsed
    """
    if not isinstance(hash_string, str) or not hash_string.startswith("$argon2"):
        raise InvalidHashError()
    try:
        extract_parameters(hash_string)
    except (Argon2InvalidHashError, ValueError, UnicodeError):
        raise InvalidHashError() from None


def verify_password(
    hash_string: str,
    password: str,
    config: PasswordHashConfig | None = None,
) -> bool:
    """Verify a password against a stored Argon2 hash.

    Args:
        hash_string: Stored PHC-encoded hash
        password: Candidate plaintext password

    Returns:
        True if the password matches, False otherwise

    Raises:
        InvalidHashError: If hash_string is not a recognized Argon2 encoding
    """
    _check_hash_format(hash_string)
    try:
        return (config or DEFAULT_CONFIG).hasher().verify(hash_string, password)
    except VerifyMismatchError:
        return False
    except (Argon2InvalidHashError, VerificationError, UnicodeError):
        # argon2 reports an undecodable hash body as a plain VerificationError
        raise InvalidHashError() from None


def needs_rehash(hash_string: str, config: PasswordHashConfig | None = None) -> bool:
    """Check whether a stored hash was made with different parameters.

    Raises:
        InvalidHashError: If hash_string is not a recognized Argon2 encoding
    """
    _check_hash_format(hash_string)
    try:
        return (config or DEFAULT_CONFIG).hasher().check_needs_rehash(hash_string)
    except (Argon2InvalidHashError, ValueError):
        raise InvalidHashError() from None
