"""Data models for the decrypted credential bundle."""

from .bundle import (
    SERVICE_SLOTS,
    PasswordRecord,
    SecretBundle,
    ServiceSlot,
    SessionRecord,
    get_slot,
)

__all__ = [
    "SERVICE_SLOTS",
    "PasswordRecord",
    "SecretBundle",
    "ServiceSlot",
    "SessionRecord",
    "get_slot",
]
