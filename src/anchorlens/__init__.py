"""anchorlens: decode Solana accounts and instructions with on-chain Anchor IDLs."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("anchorlens")
except PackageNotFoundError:
    __version__ = "dev"

# Public API exports
from anchorlens.api import AnchorLens, build_schema_index, decode_account, decode_transaction
from anchorlens.cache import InMemorySchemaCache, LockedSchemaCache
from anchorlens.codes import AccountMetaStatus, ErrorCode
from anchorlens.config import LensConfig
from anchorlens.contracts import AccountMetaEntry, RawAccount
from anchorlens.kernel.errors import AnchorLensError, DecodeError, DiscriminatorMismatch, SchemaError

__all__ = [
    "__version__",
    "AnchorLens",
    "build_schema_index",
    "decode_account",
    "decode_transaction",
    "InMemorySchemaCache",
    "LockedSchemaCache",
    "AccountMetaStatus",
    "ErrorCode",
    "LensConfig",
    "AccountMetaEntry",
    "RawAccount",
    "AnchorLensError",
    "DecodeError",
    "DiscriminatorMismatch",
    "SchemaError",
]
