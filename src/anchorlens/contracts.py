"""Public result models for anchorlens package."""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from anchorlens.codes import AccountMetaStatus


class AccountMetaEntry(BaseModel):
    """An instruction account matched against its declared role."""
    name: str  # Role name as declared in the IDL ("remaining_<n>" for extra accounts)
    address: Optional[str] = None  # base58; None when a required role had no account
    is_signer: bool = False  # Observed in the transaction
    is_writable: bool = False  # Observed in the transaction
    expected_signer: bool = False  # Declared in the IDL
    expected_writable: bool = False  # Declared in the IDL
    status: AccountMetaStatus = AccountMetaStatus.OK

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


class AccountMetaValidation(BaseModel):
    """Validator output: one entry per resolved role, plus unmatched trailing accounts."""
    entries: List[AccountMetaEntry] = Field(default_factory=list)
    remaining: List[AccountMetaEntry] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(e.status == AccountMetaStatus.OK for e in self.entries)


class RawAccount(BaseModel):
    """Account as fetched from the chain, before decoding."""
    address: str
    owner: str
    data: bytes = b""
    lamports: int = 0
    executable: bool = False
    rent_epoch: int = 0
