"""Exception taxonomy for schema construction and decoding."""

from typing import List, Optional, Sequence

from anchorlens.codes import ErrorCode


def format_path(path: Sequence[str]) -> str:
    """Join path segments, attaching index segments like ``[3]`` without a dot."""
    out = ""
    for segment in path:
        if segment.startswith("[") or not out:
            out += segment
        else:
            out += "." + segment
    return out


class AnchorLensError(Exception):
    """Base exception for schema and decode errors.

    Every error carries a machine-readable code and the path of
    type/field names visited when it was raised.
    """

    def __init__(self, message: str, code: ErrorCode, path: Optional[Sequence[str]] = None):
        self.code = code
        self.path: List[str] = list(path or [])
        self.reason = message
        if self.path:
            message = f"{message} (at {format_path(self.path)})"
        super().__init__(message)


class SchemaError(AnchorLensError):
    """Raised when schema bytes are malformed or reference undefined types."""

    def __init__(self, message: str, code: ErrorCode = ErrorCode.INVALID_SCHEMA_STRUCTURE,
                 path: Optional[Sequence[str]] = None):
        super().__init__(message, code, path)


class DiscriminatorMismatch(AnchorLensError):
    """Raised when no declared account type or instruction matches a key."""

    def __init__(self, kind: str, key: bytes):
        self.kind = kind
        self.key = bytes(key)
        super().__init__(
            f"Could not match {kind} data against any discriminator: {self.key.hex()}",
            ErrorCode.UNKNOWN_DISCRIMINATOR,
        )


class DecodeError(AnchorLensError):
    """Raised when bytes cannot be decoded against a type."""

    def __init__(self, message: str, code: ErrorCode, path: Optional[Sequence[str]] = None):
        super().__init__(message, code, path)
