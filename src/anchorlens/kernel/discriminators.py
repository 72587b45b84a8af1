"""Anchor discriminator construction.

Explicit discriminators shipped with a definition (0.30+ IDLs) are treated
as opaque keys. Legacy IDLs carry none, so the Anchor namespace rule is
applied instead: the first 8 bytes of ``sha256("<namespace>:<name>")``.
"""

import hashlib
import re
from typing import Optional, Sequence

from anchorlens.codes import ErrorCode
from .errors import SchemaError


DISCRIMINATOR_SIZE = 8

ACCOUNT_NAMESPACE = "account"
INSTRUCTION_NAMESPACE = "global"

_SNAKE_BOUNDARY_1 = re.compile(r"([A-Z]+)([A-Z][a-z])")
_SNAKE_BOUNDARY_2 = re.compile(r"([a-z0-9])([A-Z])")


def to_snake_case(name: str) -> str:
    """Convert a camelCase/PascalCase identifier to snake_case.

    ``initializeV2`` -> ``initialize_v2``, ``setHTTPRoute`` -> ``set_http_route``.
    Already snake_case names pass through unchanged.
    """
    s = _SNAKE_BOUNDARY_1.sub(r"\1_\2", name)
    s = _SNAKE_BOUNDARY_2.sub(r"\1_\2", s)
    return s.replace("-", "_").lower()


def sighash(namespace: str, name: str) -> bytes:
    """First 8 bytes of sha256("<namespace>:<name>")."""
    preimage = f"{namespace}:{name}".encode("utf-8")
    return hashlib.sha256(preimage).digest()[:DISCRIMINATOR_SIZE]


def account_discriminator(name: str) -> bytes:
    """Discriminator of an account type by its declared (PascalCase) name."""
    return sighash(ACCOUNT_NAMESPACE, name)


def instruction_discriminator(name: str) -> bytes:
    """Discriminator of an instruction by its declared name."""
    return sighash(INSTRUCTION_NAMESPACE, to_snake_case(name))


def coerce_discriminator(raw: Optional[Sequence[int]], fallback: bytes,
                         path: Optional[Sequence[str]] = None) -> bytes:
    """Use an explicit discriminator when present, otherwise ``fallback``.

    Raises:
        SchemaError: if the explicit discriminator is not 8 bytes in range 0..255.
    """
    if raw is None:
        return fallback
    try:
        key = bytes(raw)
    except (TypeError, ValueError) as e:
        raise SchemaError(f"Invalid discriminator {raw!r}: {e}", ErrorCode.INVALID_DISCRIMINATOR, path) from e
    if len(key) != DISCRIMINATOR_SIZE:
        raise SchemaError(
            f"Discriminator must be {DISCRIMINATOR_SIZE} bytes, got {len(key)}",
            ErrorCode.INVALID_DISCRIMINATOR,
            path,
        )
    return key


def pad_discriminator(data: bytes) -> bytes:
    """Leading 8 bytes of ``data``, zero-padded when shorter."""
    head = bytes(data[:DISCRIMINATOR_SIZE])
    return head + b"\x00" * (DISCRIMINATOR_SIZE - len(head))
