"""Account decode pipeline: discriminator match, then payload decode."""

from typing import Any, Tuple

from .cursor import ByteCursor
from .decoder import DEFAULT_MAX_DEPTH, TypeDecoder
from .discriminators import DISCRIMINATOR_SIZE, pad_discriminator
from .errors import DiscriminatorMismatch
from .idl import SchemaIndex, TypeDefinition


def match_account_type(schema: SchemaIndex, raw_bytes: bytes) -> TypeDefinition:
    """Resolve the declared account type from the leading 8 bytes.

    Data shorter than 8 bytes is zero-padded for the lookup.

    Raises:
        DiscriminatorMismatch: if no declared account type has this key.
    """
    key = pad_discriminator(raw_bytes)
    type_def = schema.account_index.get(key)
    if type_def is None:
        raise DiscriminatorMismatch("account", key)
    return type_def


def decode_account(schema: SchemaIndex, raw_bytes: bytes,
                   max_depth: int = DEFAULT_MAX_DEPTH) -> Tuple[str, Any]:
    """Decode raw account data into (account type name, value).

    Bytes past what the type consumes are ignored (accounts may be
    over-allocated).

    Raises:
        DiscriminatorMismatch: unknown discriminator.
        DecodeError: payload does not fit the resolved type.
    """
    type_def = match_account_type(schema, raw_bytes)
    cursor = ByteCursor(bytes(raw_bytes[DISCRIMINATOR_SIZE:]))
    value = TypeDecoder(schema.type_table, max_depth=max_depth).decode_definition(type_def, cursor)
    return type_def.name, value
