"""Zeroizable container for key material.

Python offers no guarantee that freed memory is wiped, and immutable
``bytes`` objects cannot be overwritten at all. SecureBytes keeps its
contents in a mutable bytearray so that derived keys can be cleared as soon
as they are no longer needed.
"""

from __future__ import annotations

import hmac
from types import TracebackType


class SecureBytes:
    """Mutable byte buffer that can be explicitly zeroized.

    Example:
        >>> with SecureBytes(b"key material") as key:
        ...     use(key.data)
        >>> # buffer is zeroized here
    """

    __slots__ = ("_buffer", "_zeroized")

    def __init__(self, data: bytes | bytearray) -> None:
        self._buffer = bytearray(data)
        self._zeroized = False

    @property
    def data(self) -> bytes:
        """Return a bytes copy of the contents.

        Raises:
            ValueError: If the buffer has already been zeroized
        """
        if self._zeroized:
            raise ValueError("SecureBytes has been zeroized")
        return bytes(self._buffer)

    @property
    def is_zeroized(self) -> bool:
        return self._zeroized

    def zeroize(self) -> None:
        """Overwrite the buffer with zeros. Safe to call more than once."""
        for i in range(len(self._buffer)):
            self._buffer[i] = 0
        self._zeroized = True

    def __len__(self) -> int:
        return len(self._buffer)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SecureBytes):
            return hmac.compare_digest(self._buffer, other._buffer)
        if isinstance(other, (bytes, bytearray)):
            return hmac.compare_digest(self._buffer, other)
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __enter__(self) -> SecureBytes:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.zeroize()

    def __repr__(self) -> str:
        """Return string representation (hides contents)."""
        return f"SecureBytes(<{len(self._buffer)} bytes>)"
