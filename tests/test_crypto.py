"""Tests for AES-256-GCM encryption and secret generation."""

import os
import re

import pytest

from credvault.exceptions import AuthenticationError, InvalidParameterError
from credvault.security.crypto import (
    KEY_SIZE,
    NONCE_SIZE,
    TAG_SIZE,
    EncryptedPayload,
    decrypt,
    encrypt,
    generate_secret,
    secure_random_bytes,
)
from credvault.testing import flip_bit

URLSAFE = re.compile(r"^[A-Za-z0-9_-]+$")


@pytest.fixture
def key() -> bytes:
    return os.urandom(KEY_SIZE)


class TestEncrypt:
    """Tests for encrypt()."""

    def test_output_sizes(self, key: bytes) -> None:
        """Test nonce and tag sizes, and that ciphertext matches plaintext length."""
        plaintext = b"service secrets payload"
        payload = encrypt(plaintext, key)

        assert isinstance(payload, EncryptedPayload)
        assert len(payload.nonce) == NONCE_SIZE
        assert len(payload.tag) == TAG_SIZE
        assert len(payload.ciphertext) == len(plaintext)
        assert payload.ciphertext != plaintext

    def test_fresh_nonce_every_call(self, key: bytes) -> None:
        """Test that encrypting the same plaintext twice uses different nonces."""
        first = encrypt(b"same", key)
        second = encrypt(b"same", key)

        assert first.nonce != second.nonce
        assert first.ciphertext != second.ciphertext

    def test_empty_plaintext(self, key: bytes) -> None:
        """Test that an empty plaintext still produces a tag."""
        payload = encrypt(b"", key)
        assert payload.ciphertext == b""
        assert decrypt(payload.ciphertext, key, payload.nonce, payload.tag) == b""

    @pytest.mark.parametrize("size", [0, 16, 31, 33])
    def test_wrong_key_size_rejected(self, size: int) -> None:
        """Test that keys other than 32 bytes are rejected."""
        with pytest.raises(InvalidParameterError, match="32 bytes"):
            encrypt(b"data", b"k" * size)


class TestDecrypt:
    """Tests for decrypt()."""

    def test_roundtrip(self, key: bytes) -> None:
        """Test that decrypt() reverses encrypt()."""
        plaintext = b'{"postgres":{"password":"abc"}}'
        payload = encrypt(plaintext, key)

        assert decrypt(payload.ciphertext, key, payload.nonce, payload.tag) == plaintext

    def test_wrong_key_fails(self, key: bytes) -> None:
        """Test that a different key fails authentication."""
        payload = encrypt(b"secret", key)
        other = os.urandom(KEY_SIZE)

        with pytest.raises(AuthenticationError, match="Invalid master password or corrupted data"):
            decrypt(payload.ciphertext, other, payload.nonce, payload.tag)

    def test_tampered_ciphertext_fails(self, key: bytes) -> None:
        """Test that any flipped ciphertext bit is detected."""
        payload = encrypt(b"secret data", key)

        for index in range(len(payload.ciphertext)):
            tampered = flip_bit(payload.ciphertext, index, bit=index % 8)
            with pytest.raises(AuthenticationError):
                decrypt(tampered, key, payload.nonce, payload.tag)

    def test_tampered_tag_fails(self, key: bytes) -> None:
        """Test that any flipped tag bit is detected."""
        payload = encrypt(b"secret data", key)

        for index in range(TAG_SIZE):
            with pytest.raises(AuthenticationError):
                decrypt(payload.ciphertext, key, payload.nonce, flip_bit(payload.tag, index, 7))

    def test_tampered_nonce_fails(self, key: bytes) -> None:
        """Test that a modified nonce is detected."""
        payload = encrypt(b"secret data", key)

        with pytest.raises(AuthenticationError):
            decrypt(payload.ciphertext, key, flip_bit(payload.nonce, 0), payload.tag)

    def test_short_tag_rejected(self, key: bytes) -> None:
        """Test that a truncated tag is a parameter error, not a silent pass."""
        payload = encrypt(b"secret", key)

        with pytest.raises(InvalidParameterError, match="Tag"):
            decrypt(payload.ciphertext, key, payload.nonce, payload.tag[:8])

    def test_short_nonce_rejected(self, key: bytes) -> None:
        """Test that nonces below 96 bits are rejected."""
        with pytest.raises(InvalidParameterError, match="Nonce"):
            decrypt(b"x", key, b"n" * 8, b"t" * TAG_SIZE)

    def test_error_message_has_no_plaintext(self, key: bytes) -> None:
        """Test that the failure message is generic."""
        payload = encrypt(b"hunter2-very-secret", key)

        with pytest.raises(AuthenticationError) as exc_info:
            decrypt(payload.ciphertext, os.urandom(KEY_SIZE), payload.nonce, payload.tag)
        assert "hunter2" not in str(exc_info.value)


class TestGenerateSecret:
    """Tests for generate_secret()."""

    @pytest.mark.parametrize("length", [1, 2, 3, 4, 5, 16, 24, 32, 33, 64, 100])
    def test_exact_length(self, length: int) -> None:
        """Test that secrets have exactly the requested length."""
        assert len(generate_secret(length)) == length

    def test_urlsafe_alphabet(self) -> None:
        """Test that secrets only use URL-safe characters and no padding."""
        for _ in range(50):
            secret = generate_secret(32)
            assert URLSAFE.match(secret)
            assert "=" not in secret

    def test_unique(self) -> None:
        """Test that secrets do not repeat."""
        secrets = {generate_secret(24) for _ in range(200)}
        assert len(secrets) == 200

    @pytest.mark.parametrize("length", [0, -1])
    def test_invalid_length(self, length: int) -> None:
        """Test that non-positive lengths are rejected."""
        with pytest.raises(InvalidParameterError):
            generate_secret(length)

    def test_secure_random_bytes(self) -> None:
        """Test secure_random_bytes() size and validation."""
        assert len(secure_random_bytes(32)) == 32
        with pytest.raises(InvalidParameterError):
            secure_random_bytes(0)
