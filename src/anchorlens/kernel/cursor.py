"""Forward-only byte cursor used by the value decoder."""

from typing import List, Optional

from anchorlens.codes import ErrorCode
from .errors import DecodeError


class ByteCursor:
    """Reads from an immutable byte buffer, tracking the consumed offset."""

    def __init__(self, data: bytes, offset: int = 0):
        self._data = bytes(data)
        self._offset = offset

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def remaining(self) -> int:
        return len(self._data) - self._offset

    def read(self, size: int, path: Optional[List[str]] = None) -> bytes:
        """Consume exactly ``size`` bytes.

        Raises:
            DecodeError: CURSOR_UNDERRUN if fewer than ``size`` bytes remain.
        """
        if size > self.remaining:
            raise DecodeError(
                f"Needed {size} bytes at offset {self._offset}, only {self.remaining} remaining",
                ErrorCode.CURSOR_UNDERRUN,
                path,
            )
        chunk = self._data[self._offset:self._offset + size]
        self._offset += size
        return chunk

    def read_uint(self, size: int, path: Optional[List[str]] = None) -> int:
        return int.from_bytes(self.read(size, path), "little", signed=False)

    def read_int(self, size: int, path: Optional[List[str]] = None) -> int:
        return int.from_bytes(self.read(size, path), "little", signed=True)

    def rest(self) -> bytes:
        """Bytes not yet consumed (does not advance)."""
        return self._data[self._offset:]
