"""On-chain IDL account: address derivation and payload unpacking.

Anchor stores a program's IDL in an account at
``create_with_seed(find_program_address([], program_id), "anchor:idl", program_id)``.

Layout:
  [0..8)     account discriminator
  [8..40)    authority pubkey
  [40..44)   u32 little-endian length L of the payload
  [44..44+L) zlib-compressed IDL JSON
"""

import logging
import struct
import zlib

from solders.pubkey import Pubkey

from anchorlens.codes import ErrorCode
from anchorlens.kernel.errors import SchemaError


logger = logging.getLogger(__name__)

IDL_SEED = "anchor:idl"

_HEADER_SIZE = 8 + 32
_LENGTH_SIZE = 4


def idl_address(program_id: str) -> str:
    """Derive the IDL account address of a program (base58 in, base58 out)."""
    program = Pubkey.from_string(program_id)
    base, _bump = Pubkey.find_program_address([], program)
    address = Pubkey.create_with_seed(base, IDL_SEED, program)
    logger.debug("IDL address for %s is %s", program_id, address)
    return str(address)


def unpack_idl_account(data: bytes) -> bytes:
    """Extract the compressed IDL payload from raw IDL account data.

    Raises:
        SchemaError: if the account is too short or the length is inconsistent.
    """
    if len(data) < _HEADER_SIZE + _LENGTH_SIZE:
        raise SchemaError(
            f"IDL account too small to contain header + length ({len(data)} bytes)",
            ErrorCode.INVALID_SCHEMA_BYTES,
        )
    (length,) = struct.unpack_from("<I", data, _HEADER_SIZE)
    start = _HEADER_SIZE + _LENGTH_SIZE
    end = start + length
    if end > len(data):
        raise SchemaError(
            f"IDL length {length} exceeds account data size {len(data)}",
            ErrorCode.INVALID_SCHEMA_BYTES,
        )
    return bytes(data[start:end])


def decompress_idl(payload: bytes) -> bytes:
    """Inflate a zlib-compressed IDL payload into JSON bytes."""
    try:
        return zlib.decompress(payload)
    except zlib.error as e:
        raise SchemaError(f"Could not decompress IDL data: {e}", ErrorCode.INVALID_SCHEMA_BYTES) from e


def idl_json_from_account(data: bytes) -> bytes:
    """Raw IDL account data -> decompressed IDL JSON bytes."""
    return decompress_idl(unpack_idl_account(data))
