"""Tests for Argon2id account password hashing."""

import pytest

from credvault.exceptions import InvalidHashError, InvalidParameterError
from credvault.security.password import (
    DEFAULT_CONFIG,
    PasswordHashConfig,
    hash_password,
    needs_rehash,
    verify_password,
)

# Minimum accepted parameters keep the suite fast
FAST = PasswordHashConfig(memory_kib=16 * 1024, iterations=3, parallelism=1)


class TestHashPassword:
    """Tests for hash_password()."""

    def test_phc_format(self) -> None:
        """Test that hashes use the Argon2id PHC encoding."""
        hashed = hash_password("admin-password", FAST)
        assert hashed.startswith("$argon2id$")
        assert "m=16384,t=3,p=1" in hashed

    def test_random_salt(self) -> None:
        """Test that the same password hashes differently each time."""
        assert hash_password("admin-password", FAST) != hash_password("admin-password", FAST)

    def test_default_config(self) -> None:
        """Test hashing with the default parameters."""
        hashed = hash_password("admin-password")
        assert "m=65536,t=3,p=2" in hashed
        assert verify_password(hashed, "admin-password")

    def test_non_string_rejected(self) -> None:
        """Test that bytes passwords are rejected."""
        with pytest.raises(InvalidParameterError):
            hash_password(b"bytes", FAST)  # type: ignore[arg-type]


class TestVerifyPassword:
    """Tests for verify_password()."""

    def test_correct_password(self) -> None:
        """Test that the original password verifies."""
        hashed = hash_password("mailbox-secret", FAST)
        assert verify_password(hashed, "mailbox-secret", FAST) is True

    def test_wrong_password(self) -> None:
        """Test that a different password does not verify."""
        hashed = hash_password("mailbox-secret", FAST)
        assert verify_password(hashed, "mailbox-secreT", FAST) is False

    def test_empty_password(self) -> None:
        """Test hashing and verifying the empty string."""
        hashed = hash_password("", FAST)
        assert verify_password(hashed, "", FAST)
        assert not verify_password(hashed, " ", FAST)

    def test_parameters_read_from_hash(self) -> None:
        """Test that verification uses the parameters embedded in the hash."""
        hashed = hash_password("mailbox-secret", FAST)
        assert verify_password(hashed, "mailbox-secret", DEFAULT_CONFIG)

    @pytest.mark.parametrize(
        "garbage",
        [
            "",
            "plaintext",
            "$2b$12$abcdefghijklmnopqrstuv",
            "$pbkdf2-sha256$29000$abc",
            "$argon2idd",
            "$argon2id$\u00e9",
            "$argon2id$v=19$m=16384,t=3,p=1",
        ],
    )
    def test_invalid_hash(self, garbage: str) -> None:
        """Test that unrecognized encodings raise InvalidHashError."""
        with pytest.raises(InvalidHashError):
            verify_password(garbage, "anything", FAST)

    def test_corrupt_hash_body(self) -> None:
        """Test that an undecodable salt is a format error, not a mismatch."""
        prefix, salt, digest = hash_password("mailbox-secret", FAST).rsplit("$", 2)
        corrupt = f"{prefix}${'!' * len(salt)}${digest}"

        with pytest.raises(InvalidHashError):
            verify_password(corrupt, "mailbox-secret", FAST)

    def test_non_string_hash(self) -> None:
        """Test that a non-string hash raises InvalidHashError."""
        with pytest.raises(InvalidHashError):
            verify_password(None, "anything", FAST)  # type: ignore[arg-type]


class TestNeedsRehash:
    """Tests for needs_rehash()."""

    def test_same_parameters(self) -> None:
        """Test that a hash matching the config needs no rehash."""
        assert needs_rehash(hash_password("pw", FAST), FAST) is False

    def test_different_parameters(self) -> None:
        """Test that a hash made with weaker parameters needs a rehash."""
        assert needs_rehash(hash_password("pw", FAST), DEFAULT_CONFIG) is True

    def test_invalid_hash(self) -> None:
        """Test that garbage raises InvalidHashError."""
        with pytest.raises(InvalidHashError):
            needs_rehash("not-a-hash", FAST)
        with pytest.raises(InvalidHashError):
            needs_rehash("$argon2idd", FAST)


class TestPasswordHashConfig:
    """Tests for PasswordHashConfig validation."""

    def test_weak_memory_rejected(self) -> None:
        """Test that memory below 16 MiB is refused when hashing."""
        weak = PasswordHashConfig(memory_kib=1024)
        with pytest.raises(InvalidParameterError, match="Memory"):
            hash_password("pw", weak)

    def test_weak_iterations_rejected(self) -> None:
        """Test that fewer than 3 passes is refused."""
        with pytest.raises(InvalidParameterError, match="Iterations"):
            PasswordHashConfig(iterations=1).validate_security()

    def test_short_salt_rejected(self) -> None:
        """Test that salts under 16 bytes are refused at construction."""
        with pytest.raises(InvalidParameterError, match="salt"):
            PasswordHashConfig(salt_len=8)

    def test_defaults_pass(self) -> None:
        """Test that the default parameters meet the minimums."""
        DEFAULT_CONFIG.validate_security()
