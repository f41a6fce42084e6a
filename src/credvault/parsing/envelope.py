"""Binary envelope format for the encrypted credential file.

Layout (each length is a single unsigned byte, values follow immediately):

    [saltLen][salt][nonceLen][nonce][tagLen][tag][ciphertext ...]

The ciphertext runs to the end of the blob and may be empty. Salt, nonce
and tag are required and must be non-empty. Because each length fits in
one byte, no section can exceed 255 bytes; this is part of the on-disk
format and is kept as-is for compatibility with existing files.
"""

from __future__ import annotations

from dataclasses import dataclass

from credvault.exceptions import InvalidParameterError, MalformedEnvelopeError

MAX_SECTION_LENGTH = 255


@dataclass(frozen=True, slots=True)
class Envelope:
    """Parsed contents of an envelope file."""

    salt: bytes
    nonce: bytes
    tag: bytes
    ciphertext: bytes

    def to_bytes(self) -> bytes:
        """Serialize to the binary envelope format."""
        return serialize_envelope(self.salt, self.nonce, self.tag, self.ciphertext)

    @classmethod
    def parse(cls, data: bytes) -> Envelope:
        """Parse an envelope from its binary form."""
        return parse_envelope(data)

    def __repr__(self) -> str:
        return (
            f"Envelope(salt=<{len(self.salt)} bytes>, nonce=<{len(self.nonce)} bytes>, "
            f"tag=<{len(self.tag)} bytes>, ciphertext=<{len(self.ciphertext)} bytes>)"
        )


def serialize_envelope(salt: bytes, nonce: bytes, tag: bytes, ciphertext: bytes) -> bytes:
    """Build an envelope blob.

    Args:
        salt: KDF salt (1-255 bytes)
        nonce: Cipher nonce (1-255 bytes)
        tag: Authentication tag (1-255 bytes)
        ciphertext: Encrypted payload (any length)

    Returns:
        Serialized envelope

    Raises:
        InvalidParameterError: If a prefixed section is empty or too long
    """
    out = bytearray()
    for name, section in (("salt", salt), ("nonce", nonce), ("tag", tag)):
        if not 1 <= len(section) <= MAX_SECTION_LENGTH:
            raise InvalidParameterError(
                f"Envelope {name} must be 1-{MAX_SECTION_LENGTH} bytes, got {len(section)}"
            )
        out.append(len(section))
        out += section
    out += ciphertext
    return bytes(out)


class _EnvelopeReader:
    """Sequential reader over an envelope blob."""

    def __init__(self, data: bytes) -> None:
        self._data = data
        self._offset = 0

    def read_section(self, name: str) -> bytes:
        """Read one length-prefixed section."""
        if self._offset >= len(self._data):
            raise MalformedEnvelopeError(
                f"Envelope truncated: missing {name} length at offset {self._offset}"
            )
        length = self._data[self._offset]
        self._offset += 1
        if length == 0:
            raise MalformedEnvelopeError(f"Envelope {name} length is zero")
        end = self._offset + length
        if end > len(self._data):
            raise MalformedEnvelopeError(
                f"Envelope truncated: {name} declares {length} bytes, "
                f"{len(self._data) - self._offset} available"
            )
        section = self._data[self._offset : end]
        self._offset = end
        return section

    def read_rest(self) -> bytes:
        rest = self._data[self._offset :]
        self._offset = len(self._data)
        return rest


def parse_envelope(data: bytes) -> Envelope:
    """Parse an envelope blob into its sections.

    Args:
        data: Complete envelope file contents

    Returns:
        Envelope with salt, nonce, tag and ciphertext

    Raises:
        MalformedEnvelopeError: If the blob is truncated or a required
            section has length zero
    """
    reader = _EnvelopeReader(bytes(data))
    salt = reader.read_section("salt")
    nonce = reader.read_section("nonce")
    tag = reader.read_section("tag")
    return Envelope(salt=salt, nonce=nonce, tag=tag, ciphertext=reader.read_rest())
