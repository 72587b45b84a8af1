"""Error and status code constants for anchorlens.

These constants prevent stringly-typed codes and ensure client code
matches on the same values the decoder emits.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Failure codes carried by AnchorLensError subclasses."""

    # Schema construction (SchemaError)
    INVALID_SCHEMA_BYTES = "INVALID_SCHEMA_BYTES"
    INVALID_SCHEMA_STRUCTURE = "INVALID_SCHEMA_STRUCTURE"
    INVALID_DISCRIMINATOR = "INVALID_DISCRIMINATOR"
    UNKNOWN_TYPE_EXPRESSION = "UNKNOWN_TYPE_EXPRESSION"
    UNRESOLVED_TYPE = "UNRESOLVED_TYPE"

    # Discriminator lookup (DiscriminatorMismatch)
    UNKNOWN_DISCRIMINATOR = "UNKNOWN_DISCRIMINATOR"

    # Value decoding (DecodeError)
    CURSOR_UNDERRUN = "CURSOR_UNDERRUN"
    INVALID_UTF8 = "INVALID_UTF8"
    INVALID_OPTION_TAG = "INVALID_OPTION_TAG"
    INVALID_ENUM_TAG = "INVALID_ENUM_TAG"
    UNSUPPORTED_TYPE = "UNSUPPORTED_TYPE"
    DEPTH_EXCEEDED = "DEPTH_EXCEEDED"


class AccountMetaStatus(str, Enum):
    """Outcome of comparing an instruction account against its declared role."""

    OK = "OK"
    MISSING_SIGNER = "MISSING_SIGNER"  # Role expects a signer, account did not sign
    MISSING_WRITABLE = "MISSING_WRITABLE"  # Role expects mut, account is read-only
    MISSING_SIGNER_AND_WRITABLE = "MISSING_SIGNER_AND_WRITABLE"
    NOT_PROVIDED = "NOT_PROVIDED"  # Required role with no account left to match
