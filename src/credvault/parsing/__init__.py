"""Binary format parsing and building.

This module handles the on-disk envelope of the credential store.
"""

from .envelope import (
    MAX_SECTION_LENGTH,
    Envelope,
    parse_envelope,
    serialize_envelope,
)

__all__ = [
    "MAX_SECTION_LENGTH",
    "Envelope",
    "parse_envelope",
    "serialize_envelope",
]
