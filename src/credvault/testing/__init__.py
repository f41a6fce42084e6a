"""Test utilities for credvault.

WARNING: The helpers in this module are for TESTING ONLY. The deterministic
secret factory produces predictable values and must never be used to
populate a real credential store.
"""

from __future__ import annotations

from collections.abc import Callable

from credvault.models import SecretBundle

TEST_MASTER_PASSWORD = "correct-horse-battery-1"
WRONG_MASTER_PASSWORD = "wrong-password-xxxxxxxx"


def counting_secret_factory(prefix: str = "secret") -> Callable[[int], str]:
    """Return a secret factory producing predictable, distinct secrets.

    Each call returns ``prefix`` plus a counter, padded or cut to the
    requested length.

    Example:
        >>> factory = counting_secret_factory()
        >>> factory(10)
        'secret0000'
    """
    counter = 0

    def factory(length: int) -> str:
        nonlocal counter
        value = f"{prefix}{counter}".ljust(length, "0")[:length]
        counter += 1
        return value

    return factory


def make_bundle(prefix: str = "secret") -> SecretBundle:
    """Create a bundle with predictable secrets."""
    return SecretBundle.generate(counting_secret_factory(prefix))


def flip_bit(data: bytes, index: int, bit: int = 0) -> bytes:
    """Return a copy of data with one bit inverted."""
    if not 0 <= bit < 8:
        raise ValueError("bit must be in range 0-7")
    mutated = bytearray(data)
    mutated[index] ^= 1 << bit
    return bytes(mutated)


__all__ = [
    "TEST_MASTER_PASSWORD",
    "WRONG_MASTER_PASSWORD",
    "counting_secret_factory",
    "flip_bit",
    "make_bundle",
]
