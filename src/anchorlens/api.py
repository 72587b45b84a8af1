"""Public API for anchorlens.

High-level entry points: build a schema index, decode an account, decode a
transaction, and the AnchorLens orchestrator that sequences
fetch -> schema resolution -> decode around an injected chain accessor
and schema cache.
"""

import base64
import logging
from typing import Any, Dict, List, Optional, Protocol, Tuple

from anchorlens.cache import InMemorySchemaCache, SchemaCache
from anchorlens.config import LensConfig
from anchorlens.contracts import RawAccount
from anchorlens.kernel.account import decode_account
from anchorlens.kernel.idl import SchemaIndex, build_schema_index
from anchorlens.kernel.instruction import decode_transaction
from anchorlens.kernel.message import FetchedTransaction


logger = logging.getLogger(__name__)


class ChainAccessor(Protocol):
    """External collaborator that performs all chain I/O."""

    def fetch_raw_account(self, address: str) -> RawAccount:
        ...

    def fetch_schema_bytes(self, program_id: str) -> bytes:
        """Decompressed IDL JSON bytes for a program."""
        ...

    def fetch_transaction(self, signature: str) -> FetchedTransaction:
        ...


class AnchorLens:
    """Decodes accounts and transactions using IDLs published on chain.

    With caching enabled (the default), each program's IDL is fetched at
    most once per AnchorLens instance. Pass ``cache`` to share a cache
    between instances or to use ``LockedSchemaCache`` across threads.
    """

    def __init__(
        self,
        accessor: ChainAccessor,
        cache: Optional[SchemaCache] = None,
        config: Optional[LensConfig] = None,
    ):
        self.accessor = accessor
        self.config = config or LensConfig()
        if cache is None and self.config.cache_schemas:
            cache = InMemorySchemaCache()
        self.cache = cache

    @classmethod
    def from_config(cls, config: Optional[LensConfig] = None, cache: Optional[SchemaCache] = None) -> "AnchorLens":
        """AnchorLens backed by the JSON-RPC accessor configured in ``config``."""
        from anchorlens._internal.rpc import RpcChainAccessor

        config = config or LensConfig.from_env()
        return cls(RpcChainAccessor.from_config(config), cache=cache, config=config)

    def get_schema(self, program_id: str) -> SchemaIndex:
        """Resolve a program's schema, consulting the cache before fetching.

        ``program_id`` may also be the IDL account address itself.
        """
        if self.cache is not None:
            cached = self.cache.get(program_id)
            if cached is not None:
                logger.debug("Schema cache hit for %s", program_id)
                return cached
            logger.debug("Schema cache miss for %s", program_id)
        schema = build_schema_index(self.accessor.fetch_schema_bytes(program_id))
        if self.cache is not None:
            schema = self.cache.put(program_id, schema)
        return schema

    def get_account(self, address: str) -> RawAccount:
        return self.accessor.fetch_raw_account(address)

    def decode_account_record(self, schema: SchemaIndex, account: RawAccount) -> Tuple[str, Any]:
        """Decode an already-fetched account. Returns (account type name, value)."""
        return decode_account(schema, account.data, max_depth=self.config.max_type_depth)

    def fetch_and_decode_account(self, schema: SchemaIndex, address: str) -> Tuple[str, Any]:
        """Fetch an account and decode it with a schema the caller already holds."""
        return self.decode_account_record(schema, self.get_account(address))

    def fetch_and_decode_account_without_schema(self, address: str) -> Tuple[str, str, Any]:
        """Fetch an account, resolve its owner's schema, decode.

        Returns (program name, account type name, value).
        """
        account = self.get_account(address)
        schema = self.get_schema(account.owner)
        type_name, value = self.decode_account_record(schema, account)
        return schema.name, type_name, value

    def descriptive_account_json(self, schema: SchemaIndex, address: str,
                                 account: Optional[RawAccount] = None) -> Dict[str, Any]:
        """Account JSON usable with ``solana-test-validator --account``.

        The extra ``program_name``/``account_type``/``deserialized`` fields
        are ignored by the validator.
        """
        if account is None:
            account = self.get_account(address)
        account_type, deserialized = self.decode_account_record(schema, account)
        return {
            "pubkey": address,
            "account": {
                "data": [base64.b64encode(account.data).decode("ascii"), "base64"],
                "lamports": account.lamports,
                "owner": account.owner,
                "executable": account.executable,
                "rentEpoch": account.rent_epoch,
                "space": len(account.data),
            },
            "program_name": schema.name,
            "account_type": account_type,
            "deserialized": deserialized,
        }

    def get_transaction(self, signature: str) -> FetchedTransaction:
        return self.accessor.fetch_transaction(signature)

    def decode_transaction(self, transaction: FetchedTransaction) -> List[Dict[str, Any]]:
        """Decode every instruction, with account metas validated and inner instructions nested."""
        return decode_transaction(
            self.get_schema,
            transaction.message,
            transaction.inner_calls,
            max_inner_depth=self.config.max_inner_depth,
            max_type_depth=self.config.max_type_depth,
        )

    def fetch_and_decode_transaction(self, signature: str) -> List[Dict[str, Any]]:
        return self.decode_transaction(self.get_transaction(signature))


__all__ = [
    "AnchorLens",
    "ChainAccessor",
    "build_schema_index",
    "decode_account",
    "decode_transaction",
]
