"""Tests for SecureBytes."""

import pytest

from credvault.security.memory import SecureBytes


class TestSecureBytes:
    """Tests for zeroizable key containers."""

    def test_data_copy(self) -> None:
        """Test that data returns the original contents."""
        sb = SecureBytes(b"key material")
        assert sb.data == b"key material"
        assert len(sb) == 12

    def test_zeroize(self) -> None:
        """Test that zeroize() clears the buffer and blocks access."""
        sb = SecureBytes(b"key material")
        sb.zeroize()

        assert sb.is_zeroized
        assert sb == b"\x00" * 12
        with pytest.raises(ValueError, match="zeroized"):
            _ = sb.data

    def test_context_manager_zeroizes(self) -> None:
        """Test that leaving the with-block zeroizes."""
        with SecureBytes(b"abc") as sb:
            assert sb.data == b"abc"
        assert sb.is_zeroized

    def test_context_manager_zeroizes_on_error(self) -> None:
        """Test that zeroization happens even if the block raises."""
        with pytest.raises(RuntimeError):
            with SecureBytes(b"abc") as sb:
                raise RuntimeError("boom")
        assert sb.is_zeroized

    def test_repr_hides_contents(self) -> None:
        """Test that repr() does not reveal the bytes."""
        sb = SecureBytes(b"supersecret")
        assert "supersecret" not in repr(sb)
        assert repr(sb) == "SecureBytes(<11 bytes>)"

    def test_equality(self) -> None:
        """Test comparison against SecureBytes and bytes."""
        assert SecureBytes(b"a") == SecureBytes(b"a")
        assert SecureBytes(b"a") != SecureBytes(b"b")
        assert SecureBytes(b"a") == b"a"

    def test_unhashable(self) -> None:
        """Test that SecureBytes cannot be used as a dict key."""
        with pytest.raises(TypeError):
            hash(SecureBytes(b"a"))
