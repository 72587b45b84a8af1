"""Transaction message model: compiled instructions and account key table.

Field aliases follow the JSON-RPC ``getTransaction`` response (``json``
encoding), so RPC results validate directly into these models.
"""

from typing import Any, Dict, List, Optional

import base58
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .account_meta import ObservedAccount


class MessageHeader(BaseModel):
    num_required_signatures: int = Field(..., alias="numRequiredSignatures")
    num_readonly_signed_accounts: int = Field(0, alias="numReadonlySignedAccounts")
    num_readonly_unsigned_accounts: int = Field(0, alias="numReadonlyUnsignedAccounts")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class CompiledInstruction(BaseModel):
    """A call referencing its program and accounts by index into the key table.

    ``data`` accepts raw bytes or a base58 string (the RPC wire form).
    ``stack_height`` is only present on inner instructions from newer nodes.
    """
    program_id_index: int = Field(..., alias="programIdIndex")
    accounts: List[int] = Field(default_factory=list)
    data: bytes = b""
    stack_height: Optional[int] = Field(None, alias="stackHeight")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("data", mode="before")
    @classmethod
    def decode_base58(cls, v: Any) -> Any:
        if isinstance(v, str):
            return base58.b58decode(v)
        return v


class LoadedAddresses(BaseModel):
    """Keys loaded from address lookup tables (v0 messages)."""
    writable: List[str] = Field(default_factory=list)
    readonly: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")


class Message(BaseModel):
    """Ordered calls plus static and address-table account keys."""
    header: MessageHeader
    account_keys: List[str] = Field(..., alias="accountKeys")
    instructions: List[CompiledInstruction] = Field(default_factory=list)
    loaded_addresses: LoadedAddresses = Field(default_factory=LoadedAddresses, alias="loadedAddresses")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def all_keys(self) -> List[str]:
        """Static keys, then lookup-table writable keys, then lookup-table readonly keys."""
        return list(self.account_keys) + list(self.loaded_addresses.writable) + list(self.loaded_addresses.readonly)

    def key_at(self, index: int) -> str:
        """Resolve a key table index. Raises IndexError when out of range."""
        return _key_at(self.all_keys(), index)

    def is_signer(self, index: int) -> bool:
        return index < self.header.num_required_signatures

    def is_writable(self, index: int) -> bool:
        h = self.header
        n_static = len(self.account_keys)
        if index < n_static:
            if index < h.num_required_signatures:
                return index < h.num_required_signatures - h.num_readonly_signed_accounts
            return index < n_static - h.num_readonly_unsigned_accounts
        return index - n_static < len(self.loaded_addresses.writable)

    def observed_account(self, index: int) -> ObservedAccount:
        return self.observed_accounts([index])[0]

    def observed_accounts(self, indices: List[int]) -> List[ObservedAccount]:
        """Observed accounts for a call's account indices, building the key table once."""
        keys = self.all_keys()
        return [
            ObservedAccount(
                address=_key_at(keys, index),
                is_signer=self.is_signer(index),
                is_writable=self.is_writable(index),
            )
            for index in indices
        ]


def _key_at(keys: List[str], index: int) -> str:
    if index < 0 or index >= len(keys):
        raise IndexError(f"Account index {index} out of range ({len(keys)} keys)")
    return keys[index]


def parse_inner_instructions(raw: Optional[List[Dict[str, Any]]]) -> Dict[int, List[CompiledInstruction]]:
    """Group RPC ``meta.innerInstructions`` by top-level instruction index."""
    inner: Dict[int, List[CompiledInstruction]] = {}
    for group in raw or []:
        calls = [CompiledInstruction.model_validate(ix) for ix in group.get("instructions", [])]
        inner.setdefault(int(group["index"]), []).extend(calls)
    return inner


class FetchedTransaction(BaseModel):
    """A historical transaction as needed for decoding."""
    signature: Optional[str] = None
    slot: Optional[int] = None
    message: Message
    inner_calls: Dict[int, List[CompiledInstruction]] = Field(default_factory=dict)

    @classmethod
    def from_rpc_result(cls, result: Dict[str, Any]) -> "FetchedTransaction":
        """Build from a ``getTransaction`` result (``json`` encoding)."""
        transaction = result["transaction"]
        meta = result.get("meta") or {}
        message_data = dict(transaction["message"])
        if meta.get("loadedAddresses"):
            message_data["loadedAddresses"] = meta["loadedAddresses"]
        signatures = transaction.get("signatures") or [None]
        return cls(
            signature=signatures[0],
            slot=result.get("slot"),
            message=Message.model_validate(message_data),
            inner_calls=parse_inner_instructions(meta.get("innerInstructions")),
        )
